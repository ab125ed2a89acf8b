"""Run an operation over a collection with a pool of worker threads."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import TypeVar

T = TypeVar("T")


class Parallel:
    """Blocking ``for_each`` over a lazily created thread pool.

    Threads share the innovation registry and species sets, which are
    guarded by their own locks.
    """

    def __init__(self, workers: int = 0) -> None:
        if workers < 0:
            msg = "workers must be non-negative."
            raise ValueError(msg)
        self.workers = workers or os.cpu_count() or 1
        self._executor: ThreadPoolExecutor | None = None

    def for_each(self, elements: Iterable[T], operation: Callable[[T], object]) -> None:
        """Apply ``operation`` to every element and wait for all of them.

        The first exception raised by a worker is re-raised here; elements
        that had not started yet are cancelled.
        """
        items = list(elements)
        if not items:
            return
        if self.workers == 1 or len(items) == 1:
            for item in items:
                operation(item)
            return

        executor = self._ensure_executor()
        futures: list[Future[object]] = [executor.submit(operation, item) for item in items]
        _, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in pending:
            future.cancel()
        wait(pending)
        for future in futures:
            if future.cancelled():
                continue
            error = future.exception()
            if error is not None:
                raise error

    def _ensure_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.workers,
                thread_name_prefix="neatevo",
            )
        return self._executor

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> Parallel:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


__all__ = ["Parallel"]
