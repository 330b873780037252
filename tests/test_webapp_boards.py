from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from board_explorer import main
from board_explorer.services.errors import LaunchError
from board_explorer.services.query_service import QueryService
from board_explorer.services.session_manager import SessionManager, SessionState
from tests.utils.fakes import FakeChannel, FakeSupervisor

if TYPE_CHECKING:
    from nicegui.testing import User
    from pytest import MonkeyPatch


@pytest.mark.unit
@pytest.mark.module_under_test(main)
async def test_list_supported_boards_button(user: User, monkeypatch: MonkeyPatch):
    """Drive the real page: a failed start is reported, a retry lists boards in daemon order."""
    channel = FakeChannel(boards=[("Uno", "arduino:avr:uno"), ("Nano", "arduino:avr:nano")])
    supervisor = FakeSupervisor(error=LaunchError("executable not found"))
    session = SessionManager(channel, supervisor=supervisor, startup_grace_s=0)
    monkeypatch.setattr(main, "session_manager", session, raising=True)
    monkeypatch.setattr(main, "query_service", QueryService(session, channel), raising=True)

    await user.open("/")
    await user.should_see("List Supported Boards")

    user.find("List Supported Boards").click()
    await user.should_see("daemon unavailable")
    assert session.state is SessionState.FAILED
    assert channel.requests == []

    supervisor.error = None
    user.find("List Supported Boards").click()
    await user.should_see("2 boards")
    await user.should_see("arduino:avr:uno")
    await user.should_see("Nano")

    assert session.state is SessionState.READY
    assert supervisor.launches == 1
    assert len(channel.requests) == 1
