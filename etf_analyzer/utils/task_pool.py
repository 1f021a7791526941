"""Bounded thread pool for independent, side-effect-free tasks."""

from __future__ import annotations

import os
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Sequence, TypeVar

from etf_analyzer.utils.logger import setup_logger

logger = setup_logger("task_pool")

T = TypeVar("T")


class PairTaskPool:
    """Fan independent zero-argument tasks out to worker threads.

    Results are collected into a buffer indexed by task position, so the
    returned list lines up with the submitted tasks regardless of the order
    in which workers finish. If worker threads cannot be started, the
    remaining tasks run on the calling thread and produce the same results.

    Attributes:
        max_workers: Upper bound on worker threads (defaults to CPU count).
        last_run_sequential: True when the most recent ``run()`` finished
            without the thread pool, either by choice or by fallback.
    """

    def __init__(self, max_workers: int | None = None) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = max_workers or os.cpu_count() or 1
        self.last_run_sequential = False

    def run(self, tasks: Sequence[Callable[[], T]]) -> list[T]:
        results: list = [None] * len(tasks)

        if self.max_workers == 1 or len(tasks) <= 1:
            self.last_run_sequential = True
            for idx, task in enumerate(tasks):
                results[idx] = task()
            return results

        self.last_run_sequential = False
        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(tasks)))
        future_to_index: dict[Future, int] = {}

        try:
            for idx, task in enumerate(tasks):
                try:
                    future = executor.submit(task)
                except RuntimeError as exc:
                    logger.warning(
                        "Worker pool unavailable (%s); running %d remaining tasks sequentially",
                        exc, len(tasks) - idx,
                    )
                    self.last_run_sequential = True
                    for rest in range(idx, len(tasks)):
                        results[rest] = tasks[rest]()
                    break
                future_to_index[future] = idx

            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
        except BaseException:
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        else:
            executor.shutdown(wait=True)

        logger.debug("Completed %d tasks on %d workers", len(tasks), self.max_workers)
        return results
