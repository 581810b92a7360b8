"""Helpers for turning user-supplied references into subjects."""

import re
from typing import Optional

from uservibe.domain.models.common import Subject

# A bare profile URL on www/old reddit: no extra path segments, query or fragment.
USER_HREF_RE = re.compile(r"^https?://(www|old)\.reddit\.com/user/([^/?#]+)/?$")
# Shorthand forms accepted on the command line: "u/alice", "/u/alice", "/user/alice".
_SHORTHAND_RE = re.compile(r"^/?(?:u|user)/([^/?#\s]+)/?$")
_USERNAME_RE = re.compile(r"^[A-Za-z0-9_-]{1,32}$")


def extract_username(href: str, text: Optional[str] = None) -> Optional[Subject]:
    """Extracts the username from a profile link.

    Args:
        href: The link target.
        text: Optional visible link text. When given it must contain the
            username (case-insensitive), which filters out links like
            "view profile" that merely point at a user.

    Returns:
        The username with its case preserved, or None if the link does not qualify.
    """
    match = USER_HREF_RE.match(href or "")
    if not match:
        return None
    username = match.group(2)
    if text is not None and username.lower() not in text.strip().lower():
        return None
    return Subject(username)


def parse_subject(reference: str) -> Optional[Subject]:
    """Accepts a bare username, a ``u/name`` shorthand or a profile URL."""
    reference = reference.strip()
    if not reference:
        return None
    from_url = extract_username(reference)
    if from_url:
        return from_url
    shorthand = _SHORTHAND_RE.match(reference)
    if shorthand:
        reference = shorthand.group(1)
    if _USERNAME_RE.match(reference):
        return Subject(reference)
    return None
