"""Turn raw activity records into aggregation keys."""

from __future__ import annotations

from .fetcher import Activity

KEY_SEPARATOR = "\t"
PATH_SEPARATOR = "/"


def truncate_path(path: str, depth: int) -> str:
    """Keep the first ``depth + 1`` segments of a slash-separated path.

    A leading slash marks the root and is not counted as a segment, so
    ``/a/b/c`` at depth 1 becomes ``/a/b`` and ``a/b/c`` becomes ``a/b``.
    Paths with fewer segments are returned whole.
    """

    if depth < 0:
        raise ValueError("depth must be >= 0")
    root = PATH_SEPARATOR if path.startswith(PATH_SEPARATOR) else ""
    segments = path[len(root):].split(PATH_SEPARATOR)
    return root + PATH_SEPARATOR.join(segments[: depth + 1])


def normalize(record: Activity, depth: int) -> str:
    """Return ``accessLocation<TAB>truncated path`` for one record."""

    return f"{record.access_location}{KEY_SEPARATOR}{truncate_path(record.entity_path, depth)}"


def split_key(key: str) -> tuple[str, str]:
    location, _, path = key.partition(KEY_SEPARATOR)
    return location, path


__all__ = ["KEY_SEPARATOR", "normalize", "split_key", "truncate_path"]
