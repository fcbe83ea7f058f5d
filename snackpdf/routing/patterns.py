"""Route pattern matching.

Patterns are plain paths where a segment starting with ``:`` binds to whatever
segment sits at the same position, e.g. ``/files/:id`` matches ``/files/42``.
There are no wildcards and no per-parameter constraints.
"""

from __future__ import annotations

from typing import Dict, List


def split_segments(path: str) -> List[str]:
    """Split on ``/`` and drop empty segments, so ``/a/`` and ``/a`` are the same."""
    return [s for s in (path or "").split("/") if s]


def is_param(segment: str) -> bool:
    return segment.startswith(":")


def match(pattern: str, path: str) -> bool:
    pattern_parts = split_segments(pattern)
    path_parts = split_segments(path)
    if len(pattern_parts) != len(path_parts):
        return False
    return all(is_param(p) or p == q for p, q in zip(pattern_parts, path_parts))


def extract_params(pattern: str, path: str) -> Dict[str, str]:
    """Map each ``:name`` segment of *pattern* to the segment of *path* at that position.

    Callers should check :func:`match` first. A name used twice keeps the last value.
    """
    params: Dict[str, str] = {}
    for p, q in zip(split_segments(pattern), split_segments(path)):
        if is_param(p):
            params[p[1:]] = q
    return params
