"""Roon Core adapter: pairing, zone subscription, browse/load and transport control."""

__version__ = "0.1.0"

from .client import RoonConnection
from .exceptions import (
    RoonBrowseError,
    RoonConnectionTimeout,
    RoonControlError,
    RoonError,
    RoonNotConnectedError,
)
from .models import (
    BrowseItem,
    NowPlaying,
    PlaybackState,
    RoonConfig,
    Zone,
    ZoneEvent,
    ZoneEventKind,
)

__all__ = [
    # Client
    "RoonConnection",
    # Models
    "RoonConfig",
    "Zone",
    "NowPlaying",
    "PlaybackState",
    "BrowseItem",
    "ZoneEvent",
    "ZoneEventKind",
    # Exceptions
    "RoonError",
    "RoonNotConnectedError",
    "RoonConnectionTimeout",
    "RoonBrowseError",
    "RoonControlError",
]
