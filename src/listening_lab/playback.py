"""Transport control for the selected zone."""

import logging

from .exceptions import NotReadyError, UsageError
from .session import Session

logger = logging.getLogger(__name__)

PLAYBACK_ACTIONS = ("play", "pause", "stop", "next")


class PlaybackController:
    """Applies play/pause/stop/next to the session's selected zone.

    The resulting state change is not returned; it arrives later through the
    zone subscription.
    """

    def __init__(self, connection, session: Session):
        self.connection = connection
        self.session = session

    async def control(self, action: str) -> str:
        """Send ``action`` to the selected zone.

        Args:
            action: One of ``PLAYBACK_ACTIONS``

        Returns:
            Display name of the zone the command went to

        Raises:
            UsageError: If ``action`` is unknown
            NotReadyError: If not paired or no zone is selected
        """
        if action not in PLAYBACK_ACTIONS:
            raise UsageError(f"Unknown playback action: {action}")
        if not self.session.is_ready:
            raise NotReadyError()

        zone = self.session.active_zone
        logger.info(f"{action} -> {zone.display_name}")
        await self.connection.control(zone.zone_id, action)
        return zone.display_name
