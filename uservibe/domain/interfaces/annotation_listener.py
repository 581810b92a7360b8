"""Interface for the rendering layer that displays subject annotations.

The core never touches presentation; it only reports what happened to a
subject through these callbacks.
"""

import abc

from uservibe.domain.models.activity import SubjectData
from uservibe.domain.models.common import Subject


class AnnotationListener(abc.ABC):
    """Receives per-subject progress from the resolver."""

    @abc.abstractmethod
    def on_loading_started(self, subject: Subject) -> None:
        """A fresh resolution began (show a loading indicator)."""
        pass

    @abc.abstractmethod
    def on_data_ready(self, subject: Subject, data: SubjectData) -> None:
        """Data is available, either from cache or from a fetch."""
        pass

    @abc.abstractmethod
    def on_given_up(self, subject: Subject) -> None:
        """Resolution was abandoned; remove any loading indicator."""
        pass

    @abc.abstractmethod
    def on_rate_limit_tip_changed(self, subject: Subject, text: str) -> None:
        """The loading indicator's rate-limit hint should read ``text``."""
        pass


class NullAnnotationListener(AnnotationListener):
    """Listener that ignores every notification."""

    def on_loading_started(self, subject: Subject) -> None:
        pass

    def on_data_ready(self, subject: Subject, data: SubjectData) -> None:
        pass

    def on_given_up(self, subject: Subject) -> None:
        pass

    def on_rate_limit_tip_changed(self, subject: Subject, text: str) -> None:
        pass
