import os
import sys
import threading

import pytest

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from smartlogger.history import History, LogEntry
from smartlogger.levels import LogLevel, parse_level


class FakeClock:
    """monotonic clock the tests move by hand."""
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def test_first_entry_is_admitted(clock):
    history = History(max_count=5, stale_seconds=60, clock=clock)
    assert history.admit("hello", LogLevel.INFO)
    assert len(history) == 1

def test_duplicate_is_rejected(clock):
    history = History(max_count=5, stale_seconds=60, clock=clock)
    assert history.admit("hello", LogLevel.INFO)
    clock.advance(1)
    assert not history.admit("hello", LogLevel.INFO)
    assert len(history) == 1

def test_same_message_different_level_is_not_duplicate(clock):
    history = History(max_count=5, stale_seconds=60, clock=clock)
    assert history.admit("hello", LogLevel.INFO)
    assert history.admit("hello", LogLevel.ERROR)

def test_duplicate_anywhere_in_history(clock):
    """not only the most recent entry counts."""
    history = History(max_count=5, stale_seconds=60, clock=clock)
    for message in ("a", "b", "c"):
        assert history.admit(message, LogLevel.INFO)
    assert not history.admit("a", LogLevel.INFO)

def test_entry_admitted_again_after_window(clock):
    history = History(max_count=5, stale_seconds=10, clock=clock)
    assert history.admit("hello", LogLevel.WARNING)
    clock.advance(9.5)
    assert not history.admit("hello", LogLevel.WARNING)
    clock.advance(1)
    assert history.admit("hello", LogLevel.WARNING)

def test_size_never_exceeds_max(clock):
    history = History(max_count=3, stale_seconds=60, clock=clock)
    for i in range(10):
        history.admit(f"message {i}", LogLevel.INFO)
        assert len(history) <= 3
    assert [e.message for e in history.snapshot()] == ["message 7", "message 8", "message 9"]

def test_oversized_history_forgets_oldest(clock):
    history = History(max_count=2, stale_seconds=60, clock=clock)
    history.admit("a", LogLevel.INFO)
    history.admit("b", LogLevel.INFO)
    history.admit("c", LogLevel.INFO)
    # "a" fell out, so it is no longer a duplicate
    assert history.admit("a", LogLevel.INFO)

@pytest.mark.parametrize("max_count, stale_seconds", [(0, 60), (5, 0)])
def test_zero_settings_disable_suppression(clock, max_count, stale_seconds):
    history = History(max_count=max_count, stale_seconds=stale_seconds, clock=clock)
    for _ in range(5):
        assert history.admit("same", LogLevel.INFO)

def test_timestamps_are_non_decreasing(clock):
    history = History(max_count=10, stale_seconds=60, clock=clock)
    for i in range(5):
        clock.advance(0.1)
        history.admit(str(i), LogLevel.DEBUG)
    stamps = [e.timestamp for e in history.snapshot()]
    assert stamps == sorted(stamps)

def test_clear(clock):
    history = History(max_count=5, stale_seconds=60, clock=clock)
    history.admit("hello", LogLevel.INFO)
    history.clear()
    assert len(history) == 0
    assert history.admit("hello", LogLevel.INFO)

def test_log_entry_is_immutable():
    entry = LogEntry(message="x", level=LogLevel.INFO, timestamp=1.0)
    with pytest.raises(AttributeError):
        entry.message = "y"

def test_concurrent_duplicates_admitted_once():
    history = History(max_count=50, stale_seconds=60)
    results = []
    results_lock = threading.Lock()
    barrier = threading.Barrier(16)

    def worker():
        barrier.wait()
        accepted = history.admit("race", LogLevel.ERROR)
        with results_lock:
            results.append(accepted)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1

# --- levels ---

def test_level_display_names():
    assert LogLevel.INFO.display_name == "Info"
    assert LogLevel.IMPORTANT.display_name == "Important"
    assert LogLevel.NONE.display_name == "None"

@pytest.mark.parametrize("raw, expected", [
    ("info", LogLevel.INFO),
    (" Warning ", LogLevel.WARNING),
    ("SUCCESS", LogLevel.SUCCESS),
    (16, LogLevel.ERROR),
    (0, LogLevel.NONE),
    (LogLevel.VERBOSE, LogLevel.VERBOSE),
])
def test_parse_level(raw, expected):
    assert parse_level(raw) is expected

def test_parse_level_unknown():
    with pytest.raises(ValueError):
        parse_level("fatal")

@pytest.mark.parametrize("raw", [3, 128, -4, True, False, LogLevel.DEBUG | LogLevel.INFO, "debug|info"])
def test_parse_level_rejects_combinations_and_bools(raw):
    with pytest.raises(ValueError):
        parse_level(raw)
