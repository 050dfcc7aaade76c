"""User interaction helpers."""

from .progress import (
    LineProgressObserver,
    ProgressObserver,
    ProgressTracker,
    RichProgressObserver,
    build_observer,
)

__all__ = [
    "LineProgressObserver",
    "ProgressObserver",
    "ProgressTracker",
    "RichProgressObserver",
    "build_observer",
]
