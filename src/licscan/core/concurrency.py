# concurrency.py
# SPDX-License-Identifier: MIT
"""Bounded thread-pool execution for scanning many files.

A :class:`~licscan.core.store.Store` is read-only during analysis, so one
store can be shared by every worker; each worker runs its own independent
``scan`` call.
"""
from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TypeVar

from .config import CrawlConfig
from .log import get_logger

log = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class ExecutorConfig:
    """Immutable executor settings.

    Attributes:
        max_workers (int): Maximum number of worker threads.
        window (int): Maximum number of in-flight tasks before submission
            blocks on completions.
    """
    max_workers: int
    window: int

    @classmethod
    def from_crawl_config(cls, cfg: CrawlConfig) -> ExecutorConfig:
        workers = cfg.max_workers if cfg.max_workers > 0 else min(8, os.cpu_count() or 1)
        window = cfg.window if cfg.window else workers * 4
        return cls(max_workers=workers, window=window)


class Executor:
    """Run tasks in a thread pool with bounded submission.

    At most ``cfg.window`` tasks are in flight; results are delivered to
    callbacks in completion order, not submission order.
    """

    def __init__(self, cfg: ExecutorConfig) -> None:
        self.cfg = cfg

    def _make_executor(self) -> ThreadPoolExecutor:
        if self.cfg.max_workers < 1:
            raise ValueError("Executor requires max_workers >= 1")
        return ThreadPoolExecutor(max_workers=self.cfg.max_workers)

    def map_unordered(
        self,
        items: Iterable[T],
        fn: Callable[[T], R],
        on_result: Callable[[R], None],
        *,
        fail_fast: bool = False,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        """Submit items to workers and consume results as they complete.

        Args:
            items (Iterable[T]): Items to process.
            fn (Callable[[T], R]): Worker function invoked for each item.
            on_result (Callable[[R], None]): Called with each successful result.
            fail_fast (bool): Re-raise the first worker error and stop.
            on_error (Callable[[BaseException], None] | None): Called with
                each worker error.

        Raises:
            Exception: The first worker error when ``fail_fast`` is True.
        """
        window = max(self.cfg.window, self.cfg.max_workers)
        with self._make_executor() as pool:
            pending: list[Future[R]] = []

            def _drain(block: bool = False) -> None:
                nonlocal pending
                if not pending:
                    return
                done, still = wait(
                    pending,
                    timeout=None if block else 0.0,
                    return_when=FIRST_COMPLETED,
                )
                pending = list(still)
                for fut in done:
                    try:
                        result = fut.result()
                    except Exception as exc:  # noqa: BLE001
                        if on_error:
                            on_error(exc)
                        if fail_fast:
                            raise
                        continue
                    on_result(result)

            for item in items:
                pending.append(pool.submit(fn, item))
                if len(pending) >= window:
                    _drain(block=True)

            while pending:
                _drain(block=True)
