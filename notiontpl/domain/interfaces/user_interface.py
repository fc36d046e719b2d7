"""Interface for interacting with the user (output only).

Defines the contract for displaying progress, results, errors and warnings,
allowing different UI implementations (e.g., console, tests).
"""

import abc
from typing import Any, ContextManager


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: str, **kwargs: Any) -> None:
        """Writes raw output (e.g., exported JSON) to standard output.

        Args:
            output: The text to write, unformatted.
        """
        pass

    @abc.abstractmethod
    def display_success(self, message: str, **kwargs: Any) -> None:
        """Displays a success message (the final line of a command)."""
        pass

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
    def status(self, message: str) -> ContextManager[Any]:
        """Returns a context manager showing a progress indicator.

        Args:
            message: Text shown next to the spinner while work is running.
        """
        pass
