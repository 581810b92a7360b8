"""Interface for interacting with the user (output only).

Defines the contract for displaying information, errors, warnings and
subject annotations, allowing different UI implementations.
"""

import abc
from typing import Any, Dict, Mapping, Optional

from uservibe.domain.interfaces.annotation_listener import AnnotationListener
from uservibe.domain.models.activity import SubjectData


class UserInterface(AnnotationListener):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user.

        Args:
            warning_message: The warning message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user.

        Args:
            info_message: The informational message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_summary(self, results: Mapping[str, Optional[SubjectData]]) -> None:
        """Displays the final outcome of a batch of lookups.

        Args:
            results: Subject to data, None meaning the subject was unavailable.
        """
        pass

    def display_settings(self, settings: Dict[str, Any]) -> None:
        """Displays the effective settings.

        Args:
            settings: Flat mapping of setting name to value.
        """
        pass
