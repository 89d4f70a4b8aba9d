"""Exception classes for the Roon audio-controller adapter."""


class RoonError(Exception):
    """Base exception for all Roon adapter errors."""

    pass


class RoonNotConnectedError(RoonError):
    """Raised when a remote call is attempted before the Core is paired."""

    def __init__(self, message: str = "Not connected to Roon"):
        super().__init__(message)


class RoonConnectionTimeout(RoonError):
    """Raised when pairing with the Core does not finish within the allowed wait."""

    pass


class RoonBrowseError(RoonError):
    """Browse or load request failed.

    Attributes:
        request: Name of the failed request ("browse" or "load")
        opts: Options that were sent with the request
    """

    def __init__(self, request: str, opts: dict, reason: str):
        """Initialize browse error.

        Args:
            request: "browse" or "load"
            opts: Request options sent to the Core
            reason: Human-readable failure reason
        """
        self.request = request
        self.opts = opts
        self.reason = reason
        super().__init__(f"Roon {request} failed: {reason}")


class RoonControlError(RoonError):
    """Transport control (play/pause/stop/next) failed."""

    pass
