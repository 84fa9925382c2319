"""Fixed-concurrency task pool with a full-barrier join."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, NamedTuple, TypeVar

from .errors import FetchFailure
from .progress import NullProgressReporter, ProgressReporter

logger = logging.getLogger("fanharvest.pool")

T = TypeVar("T")


class PoolResult(NamedTuple):
    results: list[tuple[int, Any]]
    errors: list[tuple[int, FetchFailure]]


class BoundedWorkerPool:
    """Run independent tasks with at most ``max_workers`` in flight.

    Every task runs exactly once and :meth:`run` returns only after all of
    them have finished. A task raising :class:`FetchFailure` is recorded in
    ``errors`` and its siblings carry on. Any other exception is treated as a
    bug: it is re-raised once the barrier has been reached.
    """

    def __init__(self, max_workers: int) -> None:
        self.max_workers = max_workers
        self.peak_in_flight = 0

    def run(
        self,
        tasks: Sequence[Callable[[], T]],
        progress: ProgressReporter | None = None,
    ) -> PoolResult:
        limit = min(self.max_workers, len(tasks))
        if limit <= 0:
            return PoolResult([], [])

        reporter = progress or NullProgressReporter()
        slots = threading.BoundedSemaphore(limit)
        lock = threading.Lock()
        results: list[tuple[int, T]] = []
        errors: list[tuple[int, FetchFailure]] = []
        fatal: list[BaseException] = []
        in_flight = 0

        def _run_one(index: int, task: Callable[[], T]) -> None:
            nonlocal in_flight
            with slots:
                with lock:
                    in_flight += 1
                    self.peak_in_flight = max(self.peak_in_flight, in_flight)
                try:
                    value = task()
                except FetchFailure as exc:
                    with lock:
                        errors.append((index, exc))
                except Exception as exc:
                    logger.error("Task %d raised an unexpected %s: %s", index, type(exc).__name__, exc)
                    with lock:
                        fatal.append(exc)
                else:
                    with lock:
                        results.append((index, value))
                finally:
                    with lock:
                        in_flight -= 1
                    reporter.on_item_done()

        reporter.on_start(len(tasks))
        with ThreadPoolExecutor(max_workers=limit, thread_name_prefix="fanharvest") as executor:
            futures = [executor.submit(_run_one, i, task) for i, task in enumerate(tasks)]
            wait(futures)
        reporter.on_finish(bool(errors or fatal))

        for future in futures:
            future.result()
        if fatal:
            raise fatal[0]

        results.sort(key=lambda item: item[0])
        errors.sort(key=lambda item: item[0])
        return PoolResult(results, errors)
