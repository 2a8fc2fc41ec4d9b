from unittest.mock import AsyncMock

import pytest

from services.monitoring_service import monitor_sessions
from services.session_registry import SessionRegistry
from services.session_service import QuizSession, QuizState


@pytest.fixture
def registry(sample_quiz):
    def factory(user_id, brand, cricket_format):
        return QuizSession(brand, cricket_format, AsyncMock(return_value=sample_quiz), AsyncMock(return_value=None),
                           user_id=user_id, answer_delay_ms=60000)

    sessions = SessionRegistry(factory=factory)
    yield sessions
    sessions.shutdown()


@pytest.mark.asyncio
async def test_start_creates_playing_session(registry):
    session = await registry.start("u1", "Acme", "T20")

    assert session.state == QuizState.PLAYING
    assert registry.get("u1") is session
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_new_quiz_replaces_previous_session(registry):
    first = await registry.start("u1", "Acme", "T20")
    first.submit_answer("A")

    second = await registry.start("u1", "Acme", "ODI")

    assert not first.alive
    assert second.alive
    assert registry.get("u1") is second
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_end_tears_down(registry):
    session = await registry.start("u1", "Acme", "T20")

    assert registry.end("u1")
    assert not session.alive
    assert registry.get("u1") is None
    assert not registry.end("u1")


@pytest.mark.asyncio
async def test_sweep_removes_idle_sessions(registry):
    idle = await registry.start("idle", "Acme", "T20")
    active = await registry.start("active", "Acme", "T20")
    idle.last_activity -= 3600

    assert registry.sweep(idle_seconds=1800) == 1
    assert not idle.alive
    assert active.alive
    assert registry.get("idle") is None


@pytest.mark.asyncio
async def test_monitor_sweeps_registry(registry):
    session = await registry.start("u1", "Acme", "T20")
    session.last_activity -= 10 ** 6

    assert await monitor_sessions(registry) == 1
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_shutdown_tears_down_everything(registry):
    sessions = [await registry.start(f"u{i}", "Acme", "T20") for i in range(3)]

    registry.shutdown()

    assert len(registry) == 0
    assert not any(s.alive for s in sessions)
