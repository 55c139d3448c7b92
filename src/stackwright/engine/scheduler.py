"""Bounded, dependency-aware fan-out of provider calls."""

from __future__ import annotations

import heapq
import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)


@dataclass
class ScheduleOutcome:
    """What happened to each node of one scheduler run.

    Attributes:
        completed: Nodes whose work and success callback both finished
        failed: Node -> exception raised by its work
        blocked: Node -> prerequisites that failed or were themselves blocked
        not_started: Nodes never dispatched because the run stopped early
    """

    completed: list[str] = field(default_factory=list)
    failed: dict[str, BaseException] = field(default_factory=dict)
    blocked: dict[str, list[str]] = field(default_factory=dict)
    not_started: list[str] = field(default_factory=list)


class GraphScheduler:
    """Run work for a set of nodes, never before the node's prerequisites completed.

    Work runs on a bounded thread pool; every callback (``on_success``) runs on
    the coordinating thread, so callers can write shared state there without
    extra locking.  With ``stop_on_failure`` the first failure stops dispatch
    while calls already in flight finish and are reported normally; without it,
    only nodes downstream of the failure are held back.
    """

    def __init__(self, max_workers: int = 4) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers

    def run(
        self,
        nodes: Sequence[str],
        prerequisites: Mapping[str, Iterable[str]],
        work: Callable[[str], Any],
        *,
        on_success: Callable[[str, Any], None],
        stop_on_failure: bool,
    ) -> ScheduleOutcome:
        """Dispatch *nodes* in the given order as their prerequisites complete.

        Prerequisites outside *nodes* count as already satisfied.  An exception
        raised by ``on_success`` stops the run and is re-raised once in-flight
        work has drained.  ``KeyboardInterrupt`` is re-raised the same way.
        """
        priority = {n: i for i, n in enumerate(nodes)}
        waiting: dict[str, set[str]] = {
            n: {p for p in prerequisites.get(n, ()) if p in priority and p != n} for n in nodes
        }
        dependents: dict[str, list[str]] = {n: [] for n in nodes}
        for n, reqs in waiting.items():
            for p in reqs:
                dependents[p].append(n)

        ready = [(priority[n], n) for n, reqs in waiting.items() if not reqs]
        heapq.heapify(ready)

        outcome = ScheduleOutcome()
        in_flight: dict[Future[Any], str] = {}
        stopping = False
        interrupted = False
        fatal: BaseException | None = None

        def block_downstream(origin: str) -> None:
            stack = [origin]
            while stack:
                current = stack.pop()
                for child in dependents[current]:
                    reasons = outcome.blocked.setdefault(child, [])
                    if current not in reasons:
                        reasons.append(current)
                    if len(reasons) == 1:
                        stack.append(child)

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="stackwright"
        ) as pool:
            while ready or in_flight:
                while ready and not stopping and len(in_flight) < self.max_workers:
                    _, node = heapq.heappop(ready)
                    if node in outcome.blocked:
                        continue
                    logger.debug("Dispatching %s", node)
                    in_flight[pool.submit(work, node)] = node
                if not in_flight:
                    break

                try:
                    done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                except KeyboardInterrupt:
                    if interrupted:
                        raise
                    logger.warning(
                        "Interrupted; waiting for %d in-flight call(s) to finish", len(in_flight)
                    )
                    interrupted = stopping = True
                    continue

                for fut in sorted(done, key=lambda f: priority[in_flight[f]]):
                    node = in_flight.pop(fut)
                    exc = fut.exception()
                    if exc is not None:
                        logger.debug("%s failed: %s", node, exc)
                        outcome.failed[node] = exc
                        block_downstream(node)
                        if stop_on_failure:
                            stopping = True
                        continue
                    if fatal is not None:
                        logger.warning("%s finished after the run was aborted", node)
                        continue
                    try:
                        on_success(node, fut.result())
                    except BaseException as e:
                        fatal = e
                        stopping = True
                        continue
                    outcome.completed.append(node)
                    for child in dependents[node]:
                        waiting[child].discard(node)
                        if not waiting[child] and child not in outcome.blocked:
                            heapq.heappush(ready, (priority[child], child))

        if fatal is not None:
            raise fatal
        if interrupted:
            raise KeyboardInterrupt

        settled = set(outcome.completed) | set(outcome.failed) | set(outcome.blocked)
        outcome.not_started = [n for n in nodes if n not in settled]
        return outcome
