"""Engine components orchestrating probe → fetch → normalize → dedup."""

from .dedup import DeduplicationStore
from .fetcher import Activity, ActivityPage, PageFetcher, PageRequest
from .normalizer import normalize, truncate_path
from .planner import PaginationPlanner, RunResult, jobs_for
from .retry import RetryPolicy
from .thread_pool import WorkerPool, WorkQueue

__all__ = [
    "Activity",
    "ActivityPage",
    "DeduplicationStore",
    "PageFetcher",
    "PageRequest",
    "PaginationPlanner",
    "RetryPolicy",
    "RunResult",
    "WorkQueue",
    "WorkerPool",
    "jobs_for",
    "normalize",
    "truncate_path",
]
