"""Interface describing one remote endpoint that yields subject data.

The fetch/cache/rate-limit core is generic; a source only knows how to
phrase the request for a subject and how to read the response body.
"""

import abc
from typing import Any, Dict, Optional

from uservibe.domain.models.activity import SubjectData
from uservibe.domain.models.common import FetchParams, Subject


class SubjectSource(abc.ABC):
    """Abstract Base Class for a remote subject endpoint."""

    #: Absolute URL of the endpoint.
    url: str

    @abc.abstractmethod
    def build_query(self, subject: Subject, params: FetchParams) -> Dict[str, str]:
        """Returns the query-string parameters for looking up ``subject``."""
        pass

    @abc.abstractmethod
    def parse_payload(self, body: Any) -> Optional[SubjectData]:
        """Converts a decoded JSON body into subject data.

        Returns:
            The parsed data, or None when the body carries no usable
            information (wrong shape, all nulls). An empty result that the
            service reports explicitly is valid data, not None.
        """
        pass
