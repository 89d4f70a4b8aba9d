"""Session context shared by every command handler.

Holds the zones pushed by the Core subscription, the selected zone, and the
two lists that numbered ``play``/``queue`` commands can select from: the last
search results and the last coach suggestions. Only one of those lists is
authoritative at a time; setting one clears the other.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from src.roon.models import BrowseItem, Zone, ZoneEvent, ZoneEventKind

from .exceptions import UsageError

logger = logging.getLogger(__name__)

RESULTS = "results"
SUGGESTIONS = "suggestions"


@dataclass
class Suggestion:
    """Artist/track pair suggested by the coach."""

    artist: str
    track: str

    @property
    def query(self) -> str:
        """Search text used to resolve this suggestion in the library."""
        return f"{self.artist} {self.track}"

    def label(self) -> str:
        return f"{self.artist} - {self.track}"


SelectableItem = Union[BrowseItem, Suggestion]


@dataclass
class Session:
    """Mutable state of one interactive session."""

    zones: Dict[str, Zone] = field(default_factory=dict)
    active_zone_id: Optional[str] = None
    connected: bool = False
    connection_error: Optional[str] = None
    last_results: List[BrowseItem] = field(default_factory=list)
    last_suggestions: List[Suggestion] = field(default_factory=list)

    # -- Authoritative list ------------------------------------------------

    def set_search_results(self, items: List[BrowseItem]) -> None:
        self.last_results = list(items)
        self.last_suggestions = []

    def set_suggestions(self, suggestions: List[Suggestion]) -> None:
        self.last_suggestions = list(suggestions)
        self.last_results = []

    def authoritative_list(self) -> Tuple[Optional[str], List[SelectableItem]]:
        """Return which list numbered selection uses, and the list itself.

        Returns:
            ``(RESULTS, items)``, ``(SUGGESTIONS, items)`` or ``(None, [])``
        """
        if self.last_results:
            return RESULTS, self.last_results
        if self.last_suggestions:
            return SUGGESTIONS, self.last_suggestions
        return None, []

    # -- Zones -------------------------------------------------------------

    @property
    def active_zone(self) -> Optional[Zone]:
        if self.active_zone_id is None:
            return None
        return self.zones.get(self.active_zone_id)

    @property
    def is_ready(self) -> bool:
        """True when paired and a known zone is selected."""
        return self.connected and self.active_zone is not None

    def zone_list(self) -> List[Zone]:
        return list(self.zones.values())

    def select_zone(self, number: int) -> Zone:
        """Select a zone by its 1-based position in ``zone_list()``.

        Raises:
            UsageError: If the number is out of range
        """
        zones = self.zone_list()
        if not 0 < number <= len(zones):
            raise UsageError(f"Invalid zone number: {number} (1-{len(zones)} available)")
        zone = zones[number - 1]
        self.active_zone_id = zone.zone_id
        return zone

    def apply_zone_event(self, event: ZoneEvent) -> None:
        """Apply a zone subscription event pushed by the Core."""
        if event.kind == ZoneEventKind.SUBSCRIBED:
            self.connected = True
            self.connection_error = None
            self.zones = {zone.zone_id: zone for zone in event.zones}
        elif event.kind == ZoneEventKind.CHANGED:
            for zone in event.zones:
                self.zones[zone.zone_id] = zone
        elif event.kind == ZoneEventKind.REMOVED:
            for zone_id in event.removed_ids:
                self.zones.pop(zone_id, None)
        elif event.kind == ZoneEventKind.DISCONNECTED:
            self.connected = False
            self.zones.clear()
        elif event.kind == ZoneEventKind.FAILED:
            self.connection_error = event.error

        if self.active_zone_id is not None and self.active_zone_id not in self.zones:
            logger.info(f"Selected zone {self.active_zone_id} is gone")
            self.active_zone_id = None

        if self.active_zone_id is None and self.zones:
            self.active_zone_id = next(iter(self.zones))
            logger.info(f"Auto-selected zone: {self.zones[self.active_zone_id].display_name}")
