"""Tests for per-model health tracking."""

import threading

from prompt_studio.orchestrator.health import HealthTracker

MODEL = "x-ai/grok-test"
MINUTE_MS = 60_000


def make_tracker(now_ms):
    return HealthTracker(clock=lambda: now_ms[0])


def test_unknown_model_is_healthy():
    tracker = HealthTracker()
    assert tracker.is_healthy(MODEL)
    assert tracker.get(MODEL) is None


def test_failure_increments_streak_only():
    now = [1_000_000.0]
    tracker = make_tracker(now)

    tracker.record_outcome(MODEL, True, 400)
    tracker.record_outcome(MODEL, False)

    record = tracker.get(MODEL)
    assert record.consecutive_failures == 1
    assert record.last_success_at == 1_000_000.0
    assert record.avg_response_time_ms == 200


def test_success_updates_average_with_half_weight():
    tracker = HealthTracker()

    tracker.record_outcome(MODEL, True, 1000)
    tracker.record_outcome(MODEL, True, 500)
    tracker.record_outcome(MODEL, True)

    assert tracker.get(MODEL).avg_response_time_ms == 500


def test_success_decrements_instead_of_resetting():
    tracker = HealthTracker()
    for _ in range(5):
        tracker.record_outcome(MODEL, False)

    tracker.record_outcome(MODEL, True, 100)
    assert tracker.get(MODEL).consecutive_failures == 4

    for _ in range(3):
        tracker.record_outcome(MODEL, True, 100)
    assert tracker.get(MODEL).consecutive_failures == 1


def test_failures_never_negative():
    tracker = HealthTracker()
    tracker.record_outcome(MODEL, True, 10)
    tracker.record_outcome(MODEL, True, 10)

    assert tracker.get(MODEL).consecutive_failures == 0


def test_unhealthy_requires_streak_and_stale_success():
    now = [0.0]
    tracker = make_tracker(now)
    tracker.record_outcome(MODEL, True, 100)
    for _ in range(4):
        tracker.record_outcome(MODEL, False)

    assert not tracker.is_healthy(MODEL, now=10 * MINUTE_MS)
    assert tracker.is_healthy(MODEL, now=1 * MINUTE_MS)


def test_short_streak_is_healthy_even_when_stale():
    now = [0.0]
    tracker = make_tracker(now)
    tracker.record_outcome(MODEL, True, 100)
    for _ in range(3):
        tracker.record_outcome(MODEL, False)

    assert tracker.is_healthy(MODEL, now=60 * MINUTE_MS)


def test_never_succeeded_model_with_streak_is_unhealthy():
    tracker = HealthTracker()
    for _ in range(4):
        tracker.record_outcome(MODEL, False)

    assert not tracker.is_healthy(MODEL)


def test_snapshot_is_a_copy():
    tracker = HealthTracker()
    tracker.record_outcome(MODEL, False)

    snapshot = tracker.snapshot()
    snapshot[MODEL].consecutive_failures = 99

    assert tracker.get(MODEL).consecutive_failures == 1


def test_snapshot_dict_is_json_ready():
    now = [0.0]
    tracker = make_tracker(now)
    tracker.record_outcome(MODEL, True, 250)
    tracker.record_outcome("deepseek/deepseek-test", False)

    data = tracker.snapshot_dict()

    assert data[MODEL] == {
        "last_success_at": "1970-01-01T00:00:00+00:00",
        "consecutive_failures": 0,
        "avg_response_time_ms": 125.0,
    }
    assert data["deepseek/deepseek-test"]["last_success_at"] is None


def test_concurrent_failures_are_not_lost():
    tracker = HealthTracker()
    threads, per_thread = 8, 2000
    start = threading.Barrier(threads)

    def hammer():
        start.wait()
        for _ in range(per_thread):
            tracker.record_outcome(MODEL, False)

    workers = [threading.Thread(target=hammer) for _ in range(threads)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert tracker.get(MODEL).consecutive_failures == threads * per_thread


def test_concurrent_first_touch_creates_one_record():
    tracker = HealthTracker()
    threads = 16
    start = threading.Barrier(threads)

    def touch():
        start.wait()
        tracker.record_outcome("deepseek/deepseek-test", False)

    workers = [threading.Thread(target=touch) for _ in range(threads)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert list(tracker.snapshot()) == ["deepseek/deepseek-test"]
    assert tracker.get("deepseek/deepseek-test").consecutive_failures == threads
