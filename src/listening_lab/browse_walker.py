"""
Browse Walker - Roon search and action resolution

The Roon browse API is stateful: each ``browse`` call moves the Core's
cursor one level through the ``search`` hierarchy and each ``load`` call
reads items at the current level. Going from a free-text query to a
"Play Now" action therefore takes a fixed sequence of round trips:

    search -> categories -> tracks                                (search_tracks)
    actions -> [nested_actions] -> terminal_action                (resolve_action)

Each arrow is one step of a small state machine. A step reads and updates a
``WalkContext`` and returns the next ``WalkStep``; the visited steps are kept
in ``BrowseWalker.trace`` for diagnostics and tests.

Failures from the transport propagate unchanged. Nothing is retried: every
walk is a single user-initiated interaction.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence

from src.roon.models import BrowseItem

from .exceptions import ActionNotFoundError

logger = logging.getLogger(__name__)

HIERARCHY = "search"
TRACKS_CATEGORY = "Tracks"
MAX_TRACK_RESULTS = 10

PLAY_ACTIONS = ("Play Now", "Play")
QUEUE_ACTIONS = ("Queue", "Add Next")


class BrowseTransport(Protocol):
    """Two-call browse/load protocol exposed by the Core connection."""

    async def browse(self, opts: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def load(self, opts: Dict[str, Any]) -> Dict[str, Any]:
        ...


class WalkStep(Enum):
    """States of a browse walk."""
    SEARCH = "search"
    CATEGORIES = "categories"
    TRACKS = "tracks"
    ACTIONS = "actions"
    NESTED_ACTIONS = "nested_actions"
    TERMINAL_ACTION = "terminal_action"
    DONE = "done"


@dataclass
class WalkContext:
    """Per-operation state carried between steps."""

    query: Optional[str] = None
    item_key: Optional[str] = None
    zone_id: Optional[str] = None
    action_titles: Sequence[str] = ()
    list_count: int = 0
    items: List[BrowseItem] = field(default_factory=list)
    result: Any = None


def _list_count(response: Dict[str, Any]) -> int:
    return (response.get("list") or {}).get("count") or 0


def _items(response: Dict[str, Any]) -> List[BrowseItem]:
    return [BrowseItem.from_roon(item) for item in response.get("items") or []]


class BrowseWalker:
    """Walks the Roon ``search`` hierarchy for searches and play/queue actions.

    Attributes:
        transport: Object with async ``browse``/``load`` (a RoonConnection)
        trace: Steps visited by the most recent operation
    """

    def __init__(self, transport: BrowseTransport):
        self.transport = transport
        self.trace: List[WalkStep] = []
        self._steps: Dict[WalkStep, Callable[[WalkContext], Awaitable[WalkStep]]] = {
            WalkStep.SEARCH: self._search,
            WalkStep.CATEGORIES: self._categories,
            WalkStep.TRACKS: self._tracks,
            WalkStep.ACTIONS: self._actions,
            WalkStep.NESTED_ACTIONS: self._nested_actions,
            WalkStep.TERMINAL_ACTION: self._terminal_action,
        }

    async def _run(self, start: WalkStep, ctx: WalkContext) -> Any:
        self.trace = []
        step = start
        while step is not WalkStep.DONE:
            self.trace.append(step)
            logger.debug(f"Browse walk step: {step.value}")
            step = await self._steps[step](ctx)
        return ctx.result

    async def _browse(self, **opts) -> Dict[str, Any]:
        return await self.transport.browse({"hierarchy": HIERARCHY, **opts})

    async def _load(self, count: int) -> List[BrowseItem]:
        response = await self.transport.load({"hierarchy": HIERARCHY, "count": count})
        return _items(response)

    # -- Search walk -------------------------------------------------------

    async def search_tracks(self, query: str) -> List[BrowseItem]:
        """Search the library and return playable track items.

        Args:
            query: Free-text search

        Returns:
            Up to 10 items from the "Tracks" category, or the actionable
            top-level entries when there is no such category. Empty when
            nothing matched.
        """
        logger.info(f"Searching Roon for {query!r}")
        return await self._run(WalkStep.SEARCH, WalkContext(query=query, result=[]))

    async def _search(self, ctx: WalkContext) -> WalkStep:
        response = await self._browse(input=ctx.query, pop_all=True)
        ctx.list_count = _list_count(response)
        if not ctx.list_count:
            logger.info(f"No results for {ctx.query!r}")
            return WalkStep.DONE
        return WalkStep.CATEGORIES

    async def _categories(self, ctx: WalkContext) -> WalkStep:
        categories = await self._load(ctx.list_count)
        if not categories:
            return WalkStep.DONE
        logger.debug(f"Categories: {', '.join(item.title for item in categories)}")

        tracks = next((item for item in categories if item.title == TRACKS_CATEGORY), None)
        if tracks is None or not tracks.item_key:
            ctx.result = [item for item in categories if item.is_actionable]
            return WalkStep.DONE

        ctx.item_key = tracks.item_key
        return WalkStep.TRACKS

    async def _tracks(self, ctx: WalkContext) -> WalkStep:
        response = await self._browse(item_key=ctx.item_key)
        count = _list_count(response)
        if count:
            ctx.result = (await self._load(min(MAX_TRACK_RESULTS, count)))[:MAX_TRACK_RESULTS]
        return WalkStep.DONE

    # -- Action walk -------------------------------------------------------

    async def resolve_action(self, item_key: str, zone_id: str, action_titles: Sequence[str]) -> str:
        """Open an item's action menu and run the first wanted action in a zone.

        Args:
            item_key: Key of a track item from ``search_tracks``
            zone_id: Zone the action is scoped to
            action_titles: Acceptable action titles, most preferred first

        Returns:
            Title of the action that was executed

        Raises:
            ActionNotFoundError: If none of ``action_titles`` is offered
        """
        ctx = WalkContext(item_key=item_key, zone_id=zone_id, action_titles=tuple(action_titles))
        return await self._run(WalkStep.ACTIONS, ctx)

    async def play_item(self, item_key: str, zone_id: str) -> str:
        return await self.resolve_action(item_key, zone_id, PLAY_ACTIONS)

    async def queue_item(self, item_key: str, zone_id: str) -> str:
        return await self.resolve_action(item_key, zone_id, QUEUE_ACTIONS)

    async def _open_menu(self, ctx: WalkContext) -> None:
        response = await self._browse(item_key=ctx.item_key)
        count = _list_count(response)
        ctx.items = await self._load(count) if count else []
        logger.debug(f"Actions: {', '.join(f'{a.title} ({a.hint})' for a in ctx.items)}")

    async def _actions(self, ctx: WalkContext) -> WalkStep:
        await self._open_menu(ctx)
        # Version disambiguation collapses into a single nested action list.
        if len(ctx.items) == 1 and ctx.items[0].hint == "action_list" and ctx.items[0].item_key:
            ctx.item_key = ctx.items[0].item_key
            return WalkStep.NESTED_ACTIONS
        return WalkStep.TERMINAL_ACTION

    async def _nested_actions(self, ctx: WalkContext) -> WalkStep:
        await self._open_menu(ctx)
        return WalkStep.TERMINAL_ACTION

    async def _terminal_action(self, ctx: WalkContext) -> WalkStep:
        action = None
        for title in ctx.action_titles:
            action = next(
                (item for item in ctx.items if item.title == title and item.item_key), None
            )
            if action is not None:
                break

        if action is None:
            raise ActionNotFoundError(ctx.action_titles, [item.title for item in ctx.items])

        await self._browse(item_key=action.item_key, zone_or_output_id=ctx.zone_id)
        logger.info(f"Executed {action.title!r} in zone {ctx.zone_id}")
        ctx.result = action.title
        return WalkStep.DONE
