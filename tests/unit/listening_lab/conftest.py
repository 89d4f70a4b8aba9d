"""Shared fixtures for Listening Lab unit tests."""

import pytest

from roon_fakes import FakeRoon, make_zone
from src.listening_lab.browse_walker import BrowseWalker
from src.listening_lab.dispatcher import CommandDispatcher
from src.listening_lab.playback import PlaybackController
from src.listening_lab.session import Session
from src.roon.models import ZoneEvent, ZoneEventKind


@pytest.fixture
def fake_roon():
    return FakeRoon()


@pytest.fixture
def session():
    """Connected session with one zone selected."""
    s = Session()
    s.apply_zone_event(ZoneEvent(ZoneEventKind.SUBSCRIBED, zones=[make_zone()]))
    return s


@pytest.fixture
def dispatcher(session, fake_roon):
    return CommandDispatcher(
        session,
        BrowseWalker(fake_roon),
        PlaybackController(fake_roon, session),
        coach=None,
    )
