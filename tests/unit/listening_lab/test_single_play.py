"""
Unit Tests for the Single-Query Play Mode

Tests each stage of the non-interactive search-then-play run and its
exit codes against a scripted connection.
"""

import asyncio

import pytest

from roon_fakes import FakeRoon, action_menu, item, make_zone
from src.listening_lab.single_play import run_single_play
from src.roon.exceptions import RoonError
from src.roon.models import ZoneEvent, ZoneEventKind


class FakeConnection(FakeRoon):
    """FakeRoon that also pairs and pushes the initial zone subscription."""

    def __init__(self, zones=None, paired=True, connect_error=None, **kwargs):
        super().__init__(**kwargs)
        self.events = asyncio.Queue()
        self.zones = [make_zone()] if zones is None else zones
        self.paired = paired
        self.connect_error = connect_error

    async def connect(self, timeout):
        if self.connect_error:
            raise self.connect_error
        if self.paired:
            await self.events.put(ZoneEvent(ZoneEventKind.SUBSCRIBED, zones=self.zones))
        return self.paired


def idioteque_library(**kwargs):
    return FakeConnection(
        searches={"Radiohead Idioteque": [item("Tracks", key="cat-tracks")]},
        levels={
            "cat-tracks": [
                item("Idioteque", key="t1", subtitle="Radiohead"),
                item("Idioteque (Live)", key="t2", subtitle="Radiohead"),
            ],
            "t1": action_menu("Play Now", "Queue", prefix="t1"),
        },
        **kwargs,
    )


@pytest.mark.asyncio
class TestRunSinglePlay:
    """Test suite for run_single_play."""

    async def test_plays_first_match(self, capsys):
        connection = idioteque_library()

        exit_code = await run_single_play("Radiohead Idioteque", connection, timeout=1)

        assert exit_code == 0
        assert connection.executed == [
            {"hierarchy": "search", "item_key": "t1-0", "zone_or_output_id": "zone-1"}
        ]
        out = capsys.readouterr().out
        assert "✓ Connected to Roon Core" in out
        assert "✓ Zone: Living Room" in out
        assert "Found 2 tracks:" in out
        assert "Playing first track: Idioteque" in out
        assert "✓ Play command sent" in out

    async def test_uses_first_zone(self):
        connection = idioteque_library(zones=[make_zone("z-den", "Den"), make_zone("z-office", "Office")])

        await run_single_play("Radiohead Idioteque", connection, timeout=1)

        assert connection.executed[0]["zone_or_output_id"] == "z-den"

    async def test_pairing_timeout(self, capsys):
        connection = idioteque_library(paired=False)

        assert await run_single_play("Radiohead Idioteque", connection, timeout=1) == 1
        assert "✗ Timeout waiting for Roon" in capsys.readouterr().out
        assert connection.calls == []

    async def test_pairing_failure(self, capsys):
        connection = idioteque_library(connect_error=RoonError("No Roon Core found on the network"))

        assert await run_single_play("Radiohead Idioteque", connection, timeout=1) == 1
        assert "✗ No Roon Core found on the network" in capsys.readouterr().out

    async def test_no_zone(self, capsys):
        connection = idioteque_library(zones=[])

        assert await run_single_play("Radiohead Idioteque", connection, timeout=0.05) == 1
        assert "✗ No zone available" in capsys.readouterr().out
        assert connection.calls == []

    async def test_no_tracks(self, capsys):
        connection = idioteque_library()

        assert await run_single_play("Nothing At All", connection, timeout=1) == 1
        assert "✗ No tracks found" in capsys.readouterr().out
        assert connection.executed == []

    async def test_missing_play_action(self, capsys):
        connection = idioteque_library()
        connection.levels["t1"] = action_menu("Start Radio", prefix="t1")

        assert await run_single_play("Radiohead Idioteque", connection, timeout=1) == 1
        assert "✗ Play Now action not found" in capsys.readouterr().out
