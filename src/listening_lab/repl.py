"""
Interactive read-eval-print loop.

Commands run strictly one at a time: a line is read, dispatched and fully
awaited before the next prompt. Zone updates from the Core arrive on a
queue and are applied to the session by ``ZoneEventPump``, which runs
alongside the loop on the same event loop thread.
"""

import asyncio
import logging
import signal
import sys
from typing import Awaitable, Callable, Optional

from src.roon.models import ZoneEvent

from .dispatcher import CommandDispatcher
from .history import CommandHistory
from .session import Session

logger = logging.getLogger(__name__)

PROMPT = "> "


class ZoneEventPump:
    """Applies queued zone events to the session.

    ``listener``, when given, is called with each event after it has been
    applied.
    """

    def __init__(
        self,
        events: "asyncio.Queue[ZoneEvent]",
        session: Session,
        listener: Optional[Callable[[ZoneEvent], None]] = None,
    ):
        self.events = events
        self.session = session
        self.listener = listener
        self._task: Optional[asyncio.Task] = None

    def _apply(self, event: ZoneEvent) -> None:
        logger.debug(f"Zone event: {event.kind.value}")
        self.session.apply_zone_event(event)
        if self.listener is not None:
            self.listener(event)

    def drain(self) -> int:
        """Apply every event already queued, without waiting.

        Returns:
            Number of events applied
        """
        applied = 0
        while True:
            try:
                event = self.events.get_nowait()
            except asyncio.QueueEmpty:
                return applied
            self._apply(event)
            applied += 1

    async def run(self) -> None:
        while True:
            self._apply(await self.events.get())

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


async def read_stdin(prompt: str) -> str:
    """Read one line from the terminal without blocking the event loop."""
    return await asyncio.to_thread(input, prompt)


class Repl:
    """Prompt loop driving a CommandDispatcher."""

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        pump: ZoneEventPump,
        history: Optional[CommandHistory] = None,
        read_line: Callable[[str], Awaitable[str]] = read_stdin,
    ):
        self.dispatcher = dispatcher
        self.pump = pump
        self.history = history
        self.read_line = read_line

    def _install_interrupt_hint(self) -> None:
        if sys.platform == "win32":
            return
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(
            signal.SIGINT,
            lambda: print('\n(Ctrl-C pressed. Type "exit" to quit, or Ctrl-D)'),
        )

    def _remove_interrupt_hint(self) -> None:
        if sys.platform == "win32":
            return
        asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)

    async def run(self, handle_interrupts: bool = True) -> int:
        """Run until exit or EOF.

        Returns:
            Exit code (always 0; startup failures are handled by the caller)
        """
        self.pump.start()
        if handle_interrupts:
            self._install_interrupt_hint()
        try:
            while True:
                try:
                    line = await self.read_line(PROMPT)
                except EOFError:
                    print("\nGoodbye!")
                    return 0

                self.pump.drain()
                try:
                    keep_going = await self.dispatcher.dispatch(line)
                except Exception as e:
                    logger.debug("Unhandled command error", exc_info=True)
                    print(f"Error: {e}")
                    keep_going = True

                if self.history is not None:
                    self.history.append(line)
                if not keep_going:
                    return 0
                print("")
        finally:
            if handle_interrupts:
                self._remove_interrupt_hint()
            await self.pump.stop()
