"""Fixed-size worker pool draining a closeable queue of page indices."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait
from queue import Empty, Full, Queue
from threading import Event, Lock
from typing import Callable, Sequence

from ..errors import AuthenticationError, RunCancelled


class WorkQueue:
    """Bounded queue that reports exhaustion once closed and drained."""

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        self.capacity = capacity
        # Queue(maxsize=0) would be unbounded; an empty run never enqueues anyway.
        self._queue: Queue[int] = Queue(maxsize=max(capacity, 1))
        self._closed = Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def put(self, item: int) -> None:
        if self._closed.is_set():
            raise RuntimeError("cannot put into a closed WorkQueue")
        if self.capacity == 0:
            raise Full
        self._queue.put_nowait(item)

    def close(self) -> None:
        self._closed.set()

    def get(self, poll_interval: float = 0.1) -> int | None:
        """Return the next item, or None once the queue is closed and empty."""

        while True:
            if self._closed.is_set():
                try:
                    return self._queue.get_nowait()
                except Empty:
                    return None
            try:
                return self._queue.get(timeout=poll_interval)
            except Empty:
                continue


def _most_severe(errors: Sequence[BaseException]) -> BaseException:
    for error in errors:
        if isinstance(error, AuthenticationError):
            return error
    for error in errors:
        if not isinstance(error, RunCancelled):
            return error
    return errors[0]


class WorkerPool:
    """Run ``workers`` copies of a worker function and wait for all of them.

    The first failing worker sets the shared cancellation event so the others
    stop picking up work. Once every worker has returned, the most severe
    failure is re-raised in the caller's thread.
    """

    def __init__(self, workers: int, thread_name_prefix: str = "cs-worker") -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.workers = workers
        self.thread_name_prefix = thread_name_prefix
        self.cancel_event = Event()
        self._errors: list[BaseException] = []
        self._lock = Lock()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def run(self, target: Callable[[int], None]) -> None:
        """Call ``target(worker_id)`` on every worker thread; ids start at 0."""

        executor = ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix=self.thread_name_prefix
        )
        try:
            futures = [
                executor.submit(self._guard, target, worker_id)
                for worker_id in range(self.workers)
            ]
            wait(futures)
        except BaseException:
            self.cancel_event.set()
            raise
        finally:
            executor.shutdown(wait=True)
        with self._lock:
            errors = list(self._errors)
        if errors:
            raise _most_severe(errors)

    def _guard(self, target: Callable[[int], None], worker_id: int) -> None:
        try:
            target(worker_id)
        except Exception as exc:
            with self._lock:
                self._errors.append(exc)
            self.cancel_event.set()


__all__ = ["WorkQueue", "WorkerPool"]
