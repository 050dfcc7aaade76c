"""Run-wide progress accounting and terminal rendering."""

from __future__ import annotations

import sys
from threading import Lock
from typing import Protocol, TextIO

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)


class ProgressObserver(Protocol):
    """Receives the aggregate percentage whenever it changes."""

    def update(self, percent: int) -> None:
        """Render a new percentage."""

    def close(self) -> None:
        """Finish rendering once the run is over."""


class ProgressTracker:
    """Per-worker completion counters folded into one global percentage.

    Each worker only ever advances its own slot. The aggregate is
    ``100 * sum(slots) // total`` (global completion), clamped to 100, which
    never decreases while slots only grow. The observer is notified under the
    tracker lock, and only when the integer percentage changes, so emissions
    arrive in order and at most 101 times per run.
    """

    def __init__(self, total: int, workers: int, observer: ProgressObserver | None = None) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.total = total
        self.observer = observer
        self._slots = [0] * workers
        self._percent = 0
        self._lock = Lock()

    def advance(self, worker_id: int, count: int = 1) -> int:
        with self._lock:
            self._slots[worker_id] += count
            percent = self._compute()
            if percent != self._percent:
                self._percent = percent
                if self.observer is not None:
                    self.observer.update(percent)
        return percent

    @property
    def percent(self) -> int:
        with self._lock:
            return self._percent

    @property
    def done(self) -> int:
        with self._lock:
            return sum(self._slots)

    def snapshot(self) -> tuple[int, ...]:
        with self._lock:
            return tuple(self._slots)

    def _compute(self) -> int:
        if self.total <= 0:
            return 100
        return min(100, 100 * sum(self._slots) // self.total)


class LineProgressObserver:
    """Rewrite a single ``Done N%`` line on a text stream (stderr by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stderr

    def update(self, percent: int) -> None:
        self.stream.write(f"\rDone {percent}%")
        self.stream.flush()

    def close(self) -> None:
        self.stream.write("\n")
        self.stream.flush()


class RichProgressObserver:
    """Rich progress bar rendered on a stderr console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)
        self.enabled = True
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None

    def _start(self) -> None:
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            TaskProgressColumn(show_speed=False),
            TimeElapsedColumn(),
            console=self.console,
            refresh_per_second=12,
            expand=True,
        )
        try:
            self._progress.start()
        except LiveError:
            # Another live display owns the console; stay silent.
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task("Done", total=100)

    def update(self, percent: int) -> None:
        if not self.enabled:
            return
        if self._progress is None:
            self._start()
        if self._progress is not None and self._task_id is not None:
            self._progress.update(self._task_id, completed=percent)

    def close(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
        self._task_id = None


def build_observer(enabled: bool = True, console: Console | None = None) -> ProgressObserver | None:
    """Pick the renderer for the current stderr: a bar on a terminal, a plain line otherwise."""

    if not enabled:
        return None
    console = console or Console(stderr=True)
    if console.is_terminal:
        return RichProgressObserver(console)
    return LineProgressObserver()


__all__ = [
    "LineProgressObserver",
    "ProgressObserver",
    "ProgressTracker",
    "RichProgressObserver",
    "build_observer",
]
