"""uservibe: annotate Reddit users with the subreddits they are most active in.

Fetches per-user activity from a remote service, caches it with a TTL and
coordinates fetches under the service's shared rate limit.
"""

__version__ = "1.0.0"
