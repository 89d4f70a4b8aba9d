"""
Unit Tests for the Interactive Loop

Tests line-by-line dispatch, exit handling, history recording and zone
event draining, with scripted input instead of a terminal.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, Mock

from roon_fakes import make_zone
from src.listening_lab.history import CommandHistory
from src.listening_lab.repl import PROMPT, Repl, ZoneEventPump
from src.listening_lab.session import Session
from src.roon.models import ZoneEvent, ZoneEventKind


def scripted(*lines):
    """Return a read_line coroutine that feeds ``lines`` then hits EOF."""
    pending = list(lines)
    prompts = []

    async def read_line(prompt):
        prompts.append(prompt)
        if not pending:
            raise EOFError
        return pending.pop(0)

    read_line.prompts = prompts
    return read_line


@pytest.mark.asyncio
class TestZoneEventPump:
    """Test suite for ZoneEventPump."""

    async def test_drain_applies_queued_events(self):
        session = Session()
        events = asyncio.Queue()
        events.put_nowait(ZoneEvent(ZoneEventKind.SUBSCRIBED, zones=[make_zone("z1")]))
        events.put_nowait(ZoneEvent(ZoneEventKind.CHANGED, zones=[make_zone("z2", "Office")]))

        applied = ZoneEventPump(events, session).drain()

        assert applied == 2
        assert [z.zone_id for z in session.zone_list()] == ["z1", "z2"]

    async def test_drain_on_empty_queue(self):
        assert ZoneEventPump(asyncio.Queue(), Session()).drain() == 0

    async def test_background_task_applies_events(self):
        session = Session()
        events = asyncio.Queue()
        pump = ZoneEventPump(events, session)
        pump.start()

        await events.put(ZoneEvent(ZoneEventKind.SUBSCRIBED, zones=[make_zone()]))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await pump.stop()

        assert session.is_ready is True

    async def test_stop_without_start(self):
        await ZoneEventPump(asyncio.Queue(), Session()).stop()


@pytest.mark.asyncio
class TestRepl:
    """Test suite for Repl.run."""

    async def test_eof_says_goodbye(self, dispatcher, capsys):
        repl = Repl(dispatcher, ZoneEventPump(asyncio.Queue(), dispatcher.session), read_line=scripted())

        assert await repl.run(handle_interrupts=False) == 0
        assert "Goodbye!" in capsys.readouterr().out

    async def test_exit_stops_before_remaining_lines(self, fake_roon, dispatcher):
        read_line = scripted("pause", "exit", "play")
        repl = Repl(dispatcher, ZoneEventPump(asyncio.Queue(), dispatcher.session), read_line=read_line)

        assert await repl.run(handle_interrupts=False) == 0

        assert fake_roon.controls == [("zone-1", "pause")]
        assert read_line.prompts == [PROMPT, PROMPT]

    async def test_commands_recorded_in_history(self, dispatcher, tmp_path):
        history = CommandHistory(tmp_path / "history")
        repl = Repl(
            dispatcher,
            ZoneEventPump(asyncio.Queue(), dispatcher.session),
            history=history,
            read_line=scripted("help", "", "bogus", "quit"),
        )

        await repl.run(handle_interrupts=False)

        assert history.load() == ["help", "bogus", "quit"]

    async def test_queued_zone_events_applied_before_command(self, dispatcher, capsys):
        events = asyncio.Queue()
        events.put_nowait(ZoneEvent(ZoneEventKind.CHANGED, zones=[make_zone("zone-2", "Office")]))
        repl = Repl(dispatcher, ZoneEventPump(events, dispatcher.session), read_line=scripted("zone 2"))

        await repl.run(handle_interrupts=False)

        assert "Selected: Office" in capsys.readouterr().out
        assert dispatcher.session.active_zone_id == "zone-2"

    async def test_unexpected_error_does_not_end_loop(self, capsys):
        dispatcher = Mock()
        dispatcher.dispatch = AsyncMock(side_effect=[RuntimeError("boom"), False])
        repl = Repl(dispatcher, ZoneEventPump(asyncio.Queue(), Session()), read_line=scripted("now", "exit"))

        assert await repl.run(handle_interrupts=False) == 0

        assert dispatcher.dispatch.await_count == 2
        assert "Error: boom" in capsys.readouterr().out

    async def test_pump_stopped_on_exit(self, dispatcher):
        pump = ZoneEventPump(asyncio.Queue(), dispatcher.session)

        await Repl(dispatcher, pump, read_line=scripted("exit")).run(handle_interrupts=False)

        assert pump._task is None


@pytest.mark.asyncio
class TestPumpListener:
    """Test suite for notifying a listener of applied events."""

    async def test_listener_sees_late_pairing_outcome(self):
        session = Session()
        events = asyncio.Queue()
        seen = []
        pump = ZoneEventPump(events, session, listener=lambda event: seen.append((event.kind, session.connected)))

        events.put_nowait(ZoneEvent(ZoneEventKind.FAILED, error="No Roon Core found on the network"))
        events.put_nowait(ZoneEvent(ZoneEventKind.SUBSCRIBED, zones=[make_zone()]))
        pump.drain()

        assert seen == [(ZoneEventKind.FAILED, False), (ZoneEventKind.SUBSCRIBED, True)]

    async def test_background_task_notifies_listener(self):
        events = asyncio.Queue()
        seen = []
        pump = ZoneEventPump(events, Session(), listener=seen.append)
        pump.start()

        await events.put(ZoneEvent(ZoneEventKind.FAILED, error="timed out"))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await pump.stop()

        assert [event.error for event in seen] == ["timed out"]
