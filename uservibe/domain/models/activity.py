"""Payload returned by the remote service for one subject."""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class SubredditActivity:
    """How many interactions a user had with one subreddit."""
    subreddit: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"subreddit": self.subreddit, "count": self.count}


# Server ordering (count descending) is preserved, never re-sorted.
SubjectData = Tuple[SubredditActivity, ...]


def activity_from_records(records: List[Dict[str, Any]]) -> SubjectData:
    """Builds an immutable payload from raw ``{subreddit, count}`` records.

    Raises:
        KeyError, TypeError, ValueError: If a record is malformed.
    """
    return tuple(
        SubredditActivity(subreddit=str(record["subreddit"]), count=int(record["count"]))
        for record in records
    )


def activity_to_records(data: SubjectData) -> List[Dict[str, Any]]:
    """Inverse of :func:`activity_from_records`, used for persistence."""
    return [item.to_dict() for item in data]
