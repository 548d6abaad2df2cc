"""Build log excerpting."""

from __future__ import annotations

from collections import deque
from pathlib import Path

from shipline.core.log import logger

PLACEHOLDER = "No build log available"
DEFAULT_LINES = 50


def tail_log(path: Path | str | None, lines: int = DEFAULT_LINES) -> str:
    """Return the last `lines` lines of a build log.

    Never raises: an absent, unreadable or empty log yields
    PLACEHOLDER. Undecodable bytes are replaced rather than rejected.
    """
    if path is None:
        return PLACEHOLDER

    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            tail = deque(f, maxlen=max(lines, 1))
    except OSError as e:
        logger.debug("Build log unreadable", path=str(path), error=str(e))
        return PLACEHOLDER

    excerpt = "".join(tail).rstrip("\n")
    if not excerpt.strip():
        return PLACEHOLDER
    return excerpt
