"""
Command Dispatcher

Maps one line of user input to a handler. Handlers share the Session
context and report every failure as a printed message; only ``exit``/``quit``
ends the loop.
"""

import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from src.roon.exceptions import RoonBrowseError, RoonError, RoonNotConnectedError
from src.roon.models import BrowseItem, ZoneEvent, ZoneEventKind

from .browse_walker import BrowseWalker
from .coach import CoachClient, CoachReply
from .exceptions import (
    ActionNotFoundError,
    CoachError,
    NotReadyError,
    TrackNotFoundError,
    UsageError,
)
from .playback import PlaybackController
from .session import SelectableItem, Session, Suggestion

logger = logging.getLogger(__name__)

COMMANDS = (
    "zones", "zone", "search", "play", "queue", "pause", "stop", "next", "now",
    "ask", "suggest", "help", "exit", "quit",
)
ALIASES = {"s": "search", "p": "play", "q": "queue", "a": "ask", "mood": "suggest", "?": "help"}

NUMBER_SEPARATORS = re.compile(r"[\s,]+")

HELP_TEXT = """
Commands:
  zones              List available zones
  zone [n]           Select zone / show current
  search <query>     Search for tracks (alias: s)
  play [n]           Play from search/suggestions, or resume (alias: p)
  queue <n> [n ...]  Queue from search/suggestions (alias: q)
  pause              Pause playback
  stop               Stop playback
  next               Next track
  now                Show now playing

  ask <question>     Ask the audio coach (alias: a)
  suggest <mood>     Get track suggestions (playable with play <n>)

  help               Show this help
  exit               Quit
"""

SUGGEST_USAGE = """Usage: suggest <mood or purpose>
Examples:
  suggest sad set
  suggest show off bass
  suggest test imaging
  suggest chain weaknesses"""


def parse_command(line: str) -> Tuple[str, str]:
    """Split input into a canonical command name and its argument string.

    Args:
        line: Raw input line

    Returns:
        ``(command, argument)``; aliases are resolved and the command is
        lower-cased. Both are empty for blank input.
    """
    parts = line.strip().split(maxsplit=1)
    if not parts:
        return "", ""
    command = parts[0].lower()
    argument = parts[1].strip() if len(parts) > 1 else ""
    return ALIASES.get(command, command), argument


def parse_number(token: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise UsageError(f"Invalid number: {token}")


class CommandDispatcher:
    """Runs one command per call to ``dispatch``."""

    def __init__(
        self,
        session: Session,
        walker: BrowseWalker,
        playback: PlaybackController,
        coach: Optional[CoachClient] = None,
        output: Callable[[str], None] = print,
    ):
        self.session = session
        self.walker = walker
        self.playback = playback
        self.coach = coach
        self._out = output
        self._handlers: Dict[str, Callable[[str], Awaitable[None]]] = {
            "zones": self.cmd_zones,
            "zone": self.cmd_zone,
            "search": self.cmd_search,
            "play": self.cmd_play,
            "queue": self.cmd_queue,
            "pause": self.cmd_transport,
            "stop": self.cmd_transport,
            "next": self.cmd_transport,
            "now": self.cmd_now,
            "ask": self.cmd_ask,
            "suggest": self.cmd_suggest,
            "help": self.cmd_help,
        }

    async def dispatch(self, line: str) -> bool:
        """Run one line of input.

        Args:
            line: Raw input line

        Returns:
            False when the user asked to quit, True otherwise
        """
        command, argument = parse_command(line)
        if not command:
            return True
        if command in ("exit", "quit"):
            self._out("Goodbye!")
            return False

        handler = self._handlers.get(command)
        if handler is None:
            self._out('Unknown command. Type "help" for commands.')
            return True

        if command in ("pause", "stop", "next"):
            argument = command

        try:
            await handler(argument)
        except (UsageError, NotReadyError, TrackNotFoundError, ActionNotFoundError, CoachError) as e:
            self._out(str(e))
        except RoonNotConnectedError:
            self._out("Not yet connected to Roon")
        except RoonError as e:
            logger.debug(f"Roon failure in {command}", exc_info=True)
            self._out(f"Roon error: {e}")
        return True

    def completion_candidates(self, line: str) -> List[str]:
        """Candidates for tab completion of the word being typed."""
        words = line.split(" ")
        if len(words) <= 1:
            return sorted(set(COMMANDS) | set(ALIASES))

        command = ALIASES.get(words[0].lower(), words[0].lower())
        if command in ("play", "queue"):
            _, items = self.session.authoritative_list()
            return [str(n) for n in range(1, len(items) + 1)]
        return []

    # -- Helpers -----------------------------------------------------------

    def _require_connected(self) -> None:
        if self.session.connected:
            return
        if self.session.connection_error:
            raise NotReadyError(f"Could not connect to Roon: {self.session.connection_error}")
        raise NotReadyError("Not yet connected to Roon")

    def _require_ready(self) -> None:
        self._require_connected()
        if self.session.active_zone is None:
            raise NotReadyError("No zone selected. Use \"zones\" and \"zone <n>\"")

    def _select(self, number: int) -> SelectableItem:
        _, items = self.session.authoritative_list()
        if not items:
            raise UsageError("Invalid number. Use search or suggest first.")
        if not 0 < number <= len(items):
            raise UsageError(f"Invalid number: {number}")
        return items[number - 1]

    async def _resolve(self, item: SelectableItem) -> BrowseItem:
        if isinstance(item, Suggestion):
            self._out(f"Searching for: {item.query}...")
            results = await self.walker.search_tracks(item.query)
            found = next((result for result in results if result.item_key), None)
            if found is None:
                raise TrackNotFoundError(f"Track not found: {item.query}")
            return found

        if not item.item_key:
            raise TrackNotFoundError(f"{item.title} cannot be played")
        return item

    async def _play_number(self, number: int, queue: bool) -> None:
        item = self._select(number)
        self._require_ready()
        target = await self._resolve(item)
        zone_id = self.session.active_zone.zone_id

        if queue:
            self._out(f"Queueing: {target.label()}")
            await self.walker.queue_item(target.item_key, zone_id)
            self._out("Queued")
        else:
            self._out(f"Playing: {target.label()}")
            await self.walker.play_item(target.item_key, zone_id)

    def _show_reply(self, reply: CoachReply) -> None:
        self._out(reply.display_text)
        if reply.suggestions:
            self.session.set_suggestions(reply.suggestions)
            self._out("")
            for n, suggestion in enumerate(reply.suggestions, 1):
                self._out(f"  {n}. {suggestion.label()}")
            self._out(f'\n({len(reply.suggestions)} tracks ready - use "play <n>" to play)')

    def show_zones(self) -> None:
        zones = self.session.zone_list()
        self._out("Available zones:")
        if not zones:
            self._out("  (none)")
        for n, zone in enumerate(zones, 1):
            marker = "*" if zone.zone_id == self.session.active_zone_id else " "
            self._out(f" {marker}{n}. {zone.summary()}")

    def report_connection_event(self, event: ZoneEvent) -> None:
        """Announce pairing outcomes, whenever they arrive.

        Called after the event has been applied to the session.
        """
        if event.kind == ZoneEventKind.SUBSCRIBED:
            self._out("✓ Connected to Roon Core")
            self.show_zones()
            if self.session.active_zone is not None:
                self._out(f"\nAuto-selected zone: {self.session.active_zone.display_name}")
        elif event.kind == ZoneEventKind.FAILED:
            self._out(f"✗ Could not connect to Roon: {event.error}")

    # -- Commands ----------------------------------------------------------

    async def cmd_zones(self, argument: str) -> None:
        self.show_zones()

    async def cmd_zone(self, argument: str) -> None:
        if not argument:
            zone = self.session.active_zone
            self._out(f"Current: {zone.display_name if zone else 'none'}")
            return
        zone = self.session.select_zone(parse_number(argument))
        self._out(f"Selected: {zone.display_name}")

    async def cmd_search(self, argument: str) -> None:
        if not argument:
            raise UsageError("Usage: search <query>")
        self._require_connected()

        self._out(f'Searching "{argument}"...')
        results = await self.walker.search_tracks(argument)
        self.session.set_search_results(results)

        if not results:
            self._out("No tracks found")
            return
        self._out("\nResults:")
        for n, item in enumerate(results, 1):
            self._out(f"  {n}. {item.label()}")

    async def cmd_play(self, argument: str) -> None:
        if not argument:
            zone_name = await self.playback.control("play")
            self._out(f"Play ({zone_name})")
            return
        await self._play_number(parse_number(argument), queue=False)

    async def cmd_queue(self, argument: str) -> None:
        tokens = [token for token in NUMBER_SEPARATORS.split(argument) if token]
        if not tokens:
            raise UsageError("Usage: queue <n> [n2 n3 ...] or queue 2,3,4,5")

        for token in tokens:
            try:
                await self._play_number(parse_number(token), queue=True)
            except (UsageError, TrackNotFoundError, ActionNotFoundError, RoonBrowseError) as e:
                self._out(str(e))

    async def cmd_transport(self, action: str) -> None:
        zone_name = await self.playback.control(action)
        self._out(f"{action.capitalize()} ({zone_name})")

    async def cmd_now(self, argument: str) -> None:
        zone = self.session.active_zone
        if zone is None:
            self._out("No zone selected")
            return
        if zone.now_playing is None:
            self._out("Nothing playing")
            return

        self._out(f"Now playing: {zone.now_playing.line1}")
        self._out(f"State: {zone.state.value}")
        progress = zone.now_playing.progress()
        if progress:
            self._out(f"Time: {progress}")

    def _require_coach(self) -> CoachClient:
        if self.coach is None:
            raise CoachError("Coach unavailable: set OPENAI_API_KEY to enable ask/suggest")
        return self.coach

    async def cmd_ask(self, argument: str) -> None:
        if not argument:
            raise UsageError("Usage: ask <question>")
        coach = self._require_coach()

        self._out("\nThinking...\n")
        self._show_reply(await coach.ask(argument))

    async def cmd_suggest(self, argument: str) -> None:
        if not argument:
            raise UsageError(SUGGEST_USAGE)
        coach = self._require_coach()

        self._out(f'\nGetting suggestions for "{argument}"...\n')
        self._show_reply(await coach.suggest(argument))

    async def cmd_help(self, argument: str) -> None:
        self._out(HELP_TEXT)
