"""
MoodScape - Test Configuration and Fixtures
"""
import pytest

from moodscape.audio import ToneContext
from moodscape.breathing import BreathingSession
from moodscape.patterns import BreathingPattern
from moodscape.storage import MemoryStore


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def played():
    """WAV payloads handed to the audio sink, in order."""
    return []


@pytest.fixture
def make_session(clock, store, played):
    """Build started sessions sharing the fake clock and in-memory store."""
    created = []

    def factory(pattern=None, title="Test Pattern", on_close=None, start=True):
        session = BreathingSession(
            pattern or BreathingPattern(4, 4, 4, 4),
            title,
            on_close=on_close,
            store=store,
            tone_context_factory=lambda: ToneContext(sink=played.append, clock=clock),
            clock=clock,
        )
        if start:
            session.start()
        created.append(session)
        return session

    yield factory

    for session in created:
        session.close()
