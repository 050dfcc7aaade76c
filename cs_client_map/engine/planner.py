"""Pagination planning and the concurrent fetch, normalize, dedup loop."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping

import structlog

from ..config import DEFAULT_PAGE_LIMIT, DEFAULT_PATH_DEPTH, DEFAULT_WORKERS, RunSettings
from ..errors import ClientMapError, ConfigurationError
from ..logging_conf import component_logger
from ..ui import ProgressObserver, ProgressTracker
from .dedup import DeduplicationStore
from .fetcher import ActivityPage, PageFetcher, PageRequest
from .normalizer import normalize
from .thread_pool import WorkerPool, WorkQueue


@dataclass(frozen=True)
class RunResult:
    """Immutable outcome of one aggregation run."""

    count: int
    jobs: int
    keys: frozenset[str]
    occurrences: Mapping[str, int] = field(repr=False)
    pages_fetched: int


def jobs_for(count: int, limit: int) -> int:
    """Number of ``limit``-sized pages needed to cover ``count`` records."""

    if limit <= 0:
        raise ConfigurationError(f"page limit must be > 0, got {limit}")
    if count <= 0:
        return 0
    return math.ceil(count / limit)


class PaginationPlanner:
    """Probe the record count, then drain every page with a pool of workers.

    The probe fetches offset 0 and its records are reused as the first page,
    so each record is processed exactly once and the pages requested are
    ``0, limit, 2 * limit, ...``. Any fatal error (bad credentials, a page
    that cannot be fetched) cancels the remaining workers and is re-raised.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        from_time: int,
        to_time: int,
        limit: int = DEFAULT_PAGE_LIMIT,
        workers: int = DEFAULT_WORKERS,
        depth: int = DEFAULT_PATH_DEPTH,
        observer: ProgressObserver | None = None,
        on_count: Callable[[int, int, int], None] | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if limit <= 0:
            raise ConfigurationError(f"page limit must be > 0, got {limit}")
        if workers < 1:
            raise ConfigurationError(f"worker count must be >= 1, got {workers}")
        if depth < 0:
            raise ConfigurationError(f"path depth must be >= 0, got {depth}")
        self.fetcher = fetcher
        self.from_time = from_time
        self.to_time = to_time
        self.limit = limit
        self.workers = workers
        self.depth = depth
        self.observer = observer
        self.on_count = on_count
        self.logger = logger or component_logger("planner")

    @classmethod
    def from_settings(
        cls,
        settings: RunSettings,
        fetcher: PageFetcher,
        observer: ProgressObserver | None = None,
        on_count: Callable[[int, int, int], None] | None = None,
    ) -> "PaginationPlanner":
        return cls(
            fetcher,
            settings.from_time,
            settings.to_time,
            limit=settings.page_limit,
            workers=settings.workers,
            depth=settings.path_depth,
            observer=observer,
            on_count=on_count,
        )

    def request_for(self, index: int) -> PageRequest:
        return PageRequest(self.from_time, self.to_time, index * self.limit, self.limit)

    def run(self) -> RunResult:
        probe = self.fetcher.fetch(self.request_for(0))
        count = probe.count
        jobs = jobs_for(count, self.limit)
        self.logger.info("run_planned", count=count, jobs=jobs, workers=self.workers)
        if self.on_count is not None:
            self.on_count(count, self.from_time, self.to_time)
        if jobs == 0:
            return RunResult(
                count=count, jobs=0, keys=frozenset(), occurrences=MappingProxyType({}), pages_fetched=1
            )

        store = DeduplicationStore()
        tracker = ProgressTracker(count, self.workers, self.observer)
        queue = WorkQueue(jobs)
        for index in range(jobs):
            queue.put(index)
        queue.close()

        prefetched: dict[int, ActivityPage] = {0: probe}
        pages_by_worker = [0] * self.workers
        pool = WorkerPool(self.workers)

        def work(worker_id: int) -> None:
            while not pool.cancelled:
                index = queue.get()
                if index is None:
                    return
                page = prefetched.pop(index, None)
                if page is None:
                    page = self.fetcher.fetch(self.request_for(index), cancel_event=pool.cancel_event)
                    pages_by_worker[worker_id] += 1
                for record in page.results:
                    if pool.cancelled:
                        return
                    store.insert(normalize(record, self.depth))
                    tracker.advance(worker_id)

        try:
            pool.run(work)
        except ClientMapError as exc:
            self.logger.error("run_aborted", code=exc.code, detail=exc.detail)
            raise

        result = RunResult(
            count=count,
            jobs=jobs,
            keys=store.items(),
            occurrences=store.counts(),
            pages_fetched=1 + sum(pages_by_worker),
        )
        self.logger.info(
            "run_completed",
            unique_keys=len(result.keys),
            pages_fetched=result.pages_fetched,
            records=tracker.done,
        )
        return result


__all__ = ["PaginationPlanner", "RunResult", "jobs_for"]
