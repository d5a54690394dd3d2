"""
Unit tests for the cooldown tracker.
"""
import threading

from chatbot.services.ai.cooldown import CooldownTracker
from chatbot.services.ai.schema import BackendId


def test_unknown_backend_is_not_suppressed(clock):
    tracker = CooldownTracker(window_seconds=300, clock=clock)
    assert tracker.is_suppressed(BackendId.GROQ) is False


def test_suppression_holds_through_window_boundary(clock):
    """Suppressed for t0 <= t <= t0 + window, released for t > t0 + window."""
    tracker = CooldownTracker(window_seconds=300, clock=clock)
    t0 = clock()
    tracker.mark_suppressed(BackendId.GROQ, now=t0)

    assert tracker.is_suppressed(BackendId.GROQ, now=t0)
    assert tracker.is_suppressed(BackendId.GROQ, now=t0 + 150)
    assert tracker.is_suppressed(BackendId.GROQ, now=t0 + 300)
    assert not tracker.is_suppressed(BackendId.GROQ, now=t0 + 300.001)


def test_expired_entry_is_pruned_on_lookup(clock):
    tracker = CooldownTracker(window_seconds=60, clock=clock)
    tracker.mark_suppressed(BackendId.GEMINI)
    clock.advance(61)

    assert tracker.is_suppressed(BackendId.GEMINI) is False
    assert BackendId.GEMINI not in tracker._suppressed_since


def test_new_suppression_overwrites_timestamp(clock):
    tracker = CooldownTracker(window_seconds=100, clock=clock)
    tracker.mark_suppressed(BackendId.OPENAI)
    clock.advance(90)
    tracker.mark_suppressed(BackendId.OPENAI)
    clock.advance(90)

    # 180s after the first mark, 90s after the second
    assert tracker.is_suppressed(BackendId.OPENAI)
    assert len(tracker._suppressed_since) == 1


def test_suppression_is_per_backend(clock):
    tracker = CooldownTracker(window_seconds=300, clock=clock)
    tracker.mark_suppressed(BackendId.GROQ)

    assert tracker.is_suppressed(BackendId.GROQ)
    assert not tracker.is_suppressed(BackendId.GEMINI)


def test_snapshot_reports_remaining_seconds(clock):
    tracker = CooldownTracker(window_seconds=300, clock=clock)
    tracker.mark_suppressed(BackendId.GROQ)
    clock.advance(100)
    tracker.mark_suppressed(BackendId.GEMINI)
    clock.advance(250)

    snapshot = tracker.snapshot()

    assert snapshot == {"gemini": 50.0}
    assert BackendId.GROQ not in tracker._suppressed_since


def test_concurrent_marks_are_not_lost(clock):
    """Suppressions from many threads all land; none is silently dropped."""
    tracker = CooldownTracker(window_seconds=300, clock=clock)
    backends = list(BackendId)
    barrier = threading.Barrier(len(backends) * 4)

    def worker(backend_id):
        barrier.wait()
        tracker.mark_suppressed(backend_id)
        tracker.is_suppressed(backend_id)

    threads = [
        threading.Thread(target=worker, args=(backend_id,))
        for backend_id in backends
        for _ in range(4)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(tracker.is_suppressed(backend_id) for backend_id in backends)
