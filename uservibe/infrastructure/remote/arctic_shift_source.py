"""Arctic Shift "subreddit interactions" endpoint.

Request: ``GET {url}?author=<user>&limit=<n>[&after=<window>]``
Response: ``{"data": [{"subreddit": "python", "count": 42}, ...]}``, already
sorted by count descending.
"""

import logging
from typing import Any, Dict, Optional

from uservibe.domain.interfaces.subject_source import SubjectSource
from uservibe.domain.models.activity import SubjectData, activity_from_records
from uservibe.domain.models.common import FetchParams, Subject

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://arctic-shift.photon-reddit.com/api/users/interactions/subreddits"


class SubredditInteractionsSource(SubjectSource):
    """Top subreddits a user has posted or commented in."""

    def __init__(self, url: str = DEFAULT_API_BASE):
        self.url = url

    def build_query(self, subject: Subject, params: FetchParams) -> Dict[str, str]:
        query = {"author": subject, "limit": str(params.limit)}
        if params.after:
            query["after"] = params.after
        return query

    def parse_payload(self, body: Any) -> Optional[SubjectData]:
        if not isinstance(body, dict):
            return None
        records = body.get("data")
        if not isinstance(records, list):
            return None
        try:
            return activity_from_records(records)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed record in subreddit payload: {e}")
            return None
