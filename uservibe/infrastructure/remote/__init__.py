"""Remote Activity Service Adapters.

Contains the generic rate-limit aware fetcher and the concrete endpoint
descriptions it can talk to.
Bounded Context: Remote Lookup
"""
