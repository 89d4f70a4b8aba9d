"""
Non-interactive search-then-play check.

Connects, picks the first zone, searches the query and plays the first
result, printing each stage. Used to verify pairing and the browse walk
end to end without a terminal session.
"""

import asyncio
import logging

from src.roon.client import RoonConnection
from src.roon.exceptions import RoonError

from .browse_walker import BrowseWalker
from .exceptions import ActionNotFoundError
from .session import Session

logger = logging.getLogger(__name__)

MAX_LISTED_RESULTS = 5


async def wait_for_zone(connection: RoonConnection, session: Session) -> None:
    """Apply zone events until the session has a selected zone."""
    while session.active_zone is None:
        session.apply_zone_event(await connection.events.get())


async def run_single_play(query: str, connection: RoonConnection, timeout: float) -> int:
    """Search ``query`` and play the first match in the first zone.

    Args:
        query: Search text
        connection: Unconnected RoonConnection
        timeout: Seconds to wait for pairing, and again for a zone

    Returns:
        Exit code (0 on success, 1 on any failure)
    """
    session = Session()

    print("Connecting to Roon...\n")
    try:
        connected = await connection.connect(timeout)
    except RoonError as e:
        print(f"✗ {e}")
        return 1
    if not connected:
        print("✗ Timeout waiting for Roon")
        return 1
    print("✓ Connected to Roon Core")

    try:
        await asyncio.wait_for(wait_for_zone(connection, session), timeout)
    except asyncio.TimeoutError:
        print("✗ No zone available")
        return 1
    zone = session.active_zone
    print(f"✓ Zone: {zone.display_name}\n")

    walker = BrowseWalker(connection)
    try:
        print(f'Searching: "{query}"\n')
        tracks = await walker.search_tracks(query)
        playable = [track for track in tracks if track.item_key]
        if not playable:
            print("✗ No tracks found")
            return 1

        print(f"Found {len(tracks)} tracks:")
        for n, track in enumerate(tracks[:MAX_LISTED_RESULTS], 1):
            print(f"  {n}. {track.label()}")

        print(f"\nPlaying first track: {playable[0].title}\n")
        await walker.play_item(playable[0].item_key, zone.zone_id)
    except ActionNotFoundError as e:
        print(f"✗ {e}")
        return 1
    except RoonError as e:
        logger.debug("Single play failed", exc_info=True)
        print(f"✗ {e}")
        return 1

    print("✓ Play command sent")
    return 0
