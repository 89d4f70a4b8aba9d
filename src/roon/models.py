"""Data models for Roon zones, browse items and zone subscription events."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class PlaybackState(Enum):
    """Zone playback state as reported by the Core."""
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"
    LOADING = "loading"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PlaybackState":
        """Map a Core state string to a PlaybackState, defaulting to STOPPED."""
        try:
            return cls(value)
        except ValueError:
            logger.debug(f"Unknown zone state {value!r}, treating as stopped")
            return cls.STOPPED


def _format_seconds(seconds: int) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


@dataclass
class NowPlaying:
    """Now-playing summary of a zone.

    Attributes:
        line1: One-line track summary
        seek_position: Elapsed seconds, if known
        length: Total track length in seconds, if known
    """

    line1: str
    seek_position: Optional[int] = None
    length: Optional[int] = None

    @classmethod
    def from_roon(cls, data: Dict[str, Any]) -> "NowPlaying":
        one_line = data.get("one_line") or {}
        return cls(
            line1=one_line.get("line1", ""),
            seek_position=data.get("seek_position"),
            length=data.get("length"),
        )

    def progress(self) -> Optional[str]:
        """Render elapsed/total time, e.g. ``1:05 / 4:30``."""
        if self.seek_position is None:
            return None
        if self.length:
            return f"{_format_seconds(self.seek_position)} / {_format_seconds(self.length)}"
        return _format_seconds(self.seek_position)


@dataclass
class Zone:
    """A named playback endpoint in the Core.

    Zones only ever come from Core payloads; nothing creates them locally.
    """

    zone_id: str
    display_name: str
    state: PlaybackState = PlaybackState.STOPPED
    now_playing: Optional[NowPlaying] = None

    @classmethod
    def from_roon(cls, data: Dict[str, Any]) -> "Zone":
        """Build a Zone from the Core's zone dictionary.

        Args:
            data: Zone payload with ``zone_id``, ``display_name``, ``state``
                and optional ``now_playing``

        Returns:
            Zone instance

        Raises:
            ValueError: If the payload has no zone_id
        """
        zone_id = data.get("zone_id")
        if not zone_id:
            raise ValueError("Zone payload missing zone_id")
        now_playing = data.get("now_playing")
        return cls(
            zone_id=zone_id,
            display_name=data.get("display_name", zone_id),
            state=PlaybackState.parse(data.get("state")),
            now_playing=NowPlaying.from_roon(now_playing) if now_playing else None,
        )

    def summary(self) -> str:
        """Zone name with state and track, as shown by the ``zones`` command."""
        if self.now_playing:
            return f"{self.display_name} [{self.state.value}: {self.now_playing.line1}]"
        return self.display_name


@dataclass
class BrowseItem:
    """One entry of a browse/load response.

    Attributes:
        title: Display title
        subtitle: Secondary line (artist, album)
        item_key: Opaque key for the next browse call
        hint: Kind hint ("action", "action_list", "list", "header")
    """

    title: str
    subtitle: Optional[str] = None
    item_key: Optional[str] = None
    hint: Optional[str] = None

    @classmethod
    def from_roon(cls, data: Dict[str, Any]) -> "BrowseItem":
        return cls(
            title=data.get("title", ""),
            subtitle=data.get("subtitle") or None,
            item_key=data.get("item_key") or None,
            hint=data.get("hint") or None,
        )

    @property
    def is_actionable(self) -> bool:
        return self.hint == "action" or bool(self.item_key)

    def label(self) -> str:
        if self.subtitle:
            return f"{self.title} - {self.subtitle}"
        return self.title


class ZoneEventKind(Enum):
    """Kinds of zone subscription events."""
    SUBSCRIBED = "subscribed"
    CHANGED = "changed"
    REMOVED = "removed"
    DISCONNECTED = "disconnected"
    FAILED = "failed"


@dataclass
class ZoneEvent:
    """Zone update pushed by the Core subscription.

    ``FAILED`` carries no zones; ``error`` says why pairing did not finish.
    """

    kind: ZoneEventKind
    zones: List[Zone] = field(default_factory=list)
    removed_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class RoonConfig:
    """Connection settings for pairing with a Roon Core.

    Attributes:
        token_file: JSON file holding the pairing token and core id
        host: Core address; discovery is used when None
        port: Core websocket port
        extension_id: Extension identifier shown in Roon Settings > Extensions
        display_name: Extension name shown to the user
        display_version: Extension version
        publisher: Extension publisher
        email: Publisher contact
    """

    token_file: Path
    host: Optional[str] = None
    port: int = 9330
    extension_id: str = "com.listeninglab.cli"
    display_name: str = "Listening Lab"
    display_version: str = "0.1.0"
    publisher: str = "Listening Lab"
    email: str = "dev@example.com"

    def __post_init__(self):
        if self.port <= 0:
            raise ValueError("port must be positive")

    def appinfo(self) -> Dict[str, str]:
        """Extension registration info expected by the Roon SDK."""
        return {
            "extension_id": self.extension_id,
            "display_name": self.display_name,
            "display_version": self.display_version,
            "publisher": self.publisher,
            "email": self.email,
        }
