from __future__ import annotations

import threading
import time

import pytest

from stackwright.engine.scheduler import GraphScheduler


class Tracker:
    """Records start/finish order and peak concurrency of scheduled work."""

    def __init__(self, fail: set[str] | None = None, delay: float = 0.0) -> None:
        self.fail = fail or set()
        self.delay = delay
        self.started: list[str] = []
        self.finished: list[str] = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def __call__(self, node: str) -> str:
        with self._lock:
            self.started.append(node)
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if node in self.fail:
                raise RuntimeError(f"{node} failed")
            return f"id-{node}"
        finally:
            with self._lock:
                self.active -= 1
                self.finished.append(node)


def test_prerequisites_complete_before_dependents() -> None:
    tracker = Tracker()
    committed: list[str] = []
    outcome = GraphScheduler(max_workers=4).run(
        ["users", "role", "fn", "route"],
        {"role": ["users"], "fn": ["users", "role"], "route": ["fn"]},
        tracker,
        on_success=lambda node, _: committed.append(node),
        stop_on_failure=True,
    )
    assert committed == ["users", "role", "fn", "route"]
    assert outcome.completed == committed
    assert not outcome.failed


def test_callbacks_receive_results() -> None:
    results: dict[str, str] = {}
    GraphScheduler().run(
        ["a", "b"],
        {},
        Tracker(),
        on_success=lambda node, value: results.__setitem__(node, value),
        stop_on_failure=True,
    )
    assert results == {"a": "id-a", "b": "id-b"}


def test_concurrency_is_bounded() -> None:
    tracker = Tracker(delay=0.02)
    nodes = [f"n{i}" for i in range(8)]
    outcome = GraphScheduler(max_workers=3).run(
        nodes, {}, tracker, on_success=lambda *_: None, stop_on_failure=True
    )
    assert sorted(outcome.completed) == sorted(nodes)
    assert 1 <= tracker.peak <= 3


def test_single_worker_runs_in_given_order() -> None:
    tracker = Tracker()
    GraphScheduler(max_workers=1).run(
        ["c", "a", "b"], {}, tracker, on_success=lambda *_: None, stop_on_failure=True
    )
    assert tracker.started == ["c", "a", "b"]


def test_stop_on_failure_halts_dispatch() -> None:
    tracker = Tracker(fail={"a"})
    outcome = GraphScheduler(max_workers=1).run(
        ["a", "b", "c"],
        {"c": ["b"]},
        tracker,
        on_success=lambda *_: None,
        stop_on_failure=True,
    )
    assert list(outcome.failed) == ["a"]
    assert tracker.started == ["a"]
    assert outcome.not_started == ["b", "c"]


def test_failure_blocks_only_downstream_without_stop() -> None:
    tracker = Tracker(fail={"a"})
    outcome = GraphScheduler(max_workers=2).run(
        ["a", "b", "c", "d"],
        {"b": ["a"], "c": ["b"]},
        tracker,
        on_success=lambda *_: None,
        stop_on_failure=False,
    )
    assert list(outcome.failed) == ["a"]
    assert outcome.blocked == {"b": ["a"], "c": ["b"]}
    assert outcome.completed == ["d"]
    assert "b" not in tracker.started


def test_callback_error_is_reraised_after_drain() -> None:
    def on_success(node: str, _: object) -> None:
        if node == "a":
            raise OSError("state write failed")

    tracker = Tracker()
    with pytest.raises(OSError, match="state write failed"):
        GraphScheduler(max_workers=1).run(
            ["a", "b"], {}, tracker, on_success=on_success, stop_on_failure=True
        )
    assert tracker.started == ["a"]


def test_outside_prerequisites_count_as_satisfied() -> None:
    outcome = GraphScheduler().run(
        ["fn"],
        {"fn": ["already-there"]},
        Tracker(),
        on_success=lambda *_: None,
        stop_on_failure=True,
    )
    assert outcome.completed == ["fn"]


def test_invalid_worker_count() -> None:
    with pytest.raises(ValueError):
        GraphScheduler(max_workers=0)
