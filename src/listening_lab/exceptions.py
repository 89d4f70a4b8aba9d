"""Custom exceptions for Listening Lab."""

from typing import Sequence


class ListeningLabError(Exception):
    """Base class for errors reported to the user for a single command."""

    pass


class NotReadyError(ListeningLabError):
    """Raised when a command needs a paired Core and a selected zone."""

    def __init__(self, message: str = "Not connected or no zone selected"):
        super().__init__(message)


class UsageError(ListeningLabError):
    """Raised when a command argument is missing or invalid."""

    pass


class ActionNotFoundError(ListeningLabError):
    """Raised when an item's action menu has none of the wanted actions.

    Attributes:
        wanted: Action titles that were looked for
        available: Action titles the Core offered instead
    """

    def __init__(self, wanted: Sequence[str], available: Sequence[str]):
        self.wanted = list(wanted)
        self.available = list(available)
        super().__init__(
            f"{wanted[0]} action not found. Available actions: "
            f"{', '.join(self.available) or 'none'}"
        )


class CoachError(ListeningLabError):
    """Raised when the coach (OpenAI) request fails."""

    pass


class TrackNotFoundError(ListeningLabError):
    """Raised when a selected entry cannot be resolved to a playable item."""

    pass
