"""Task identifier encoding.

Task IDs look like ``fe-0001`` / ``be-0042``: a platform prefix and a
zero-padded sequence number. Numbers of 10000 and above simply widen.
"""

from __future__ import annotations

import re
from typing import Iterable, NamedTuple, Optional

PLATFORM_PREFIXES = {
    "frontend": "fe",
    "backend": "be",
}
PREFIX_PLATFORMS = {prefix: platform for platform, prefix in PLATFORM_PREFIXES.items()}

TASK_ID_PATTERN = re.compile(r"^(fe|be)-(\d+)$")
ID_PAD_WIDTH = 4


class ParsedTaskId(NamedTuple):
    platform: str
    number: int


def prefix_for(platform: str) -> str:
    """Return the ID prefix for a platform."""
    try:
        return PLATFORM_PREFIXES[platform]
    except KeyError:
        raise ValueError(f"Unknown platform: {platform!r}") from None


def parse_task_id(task_id: object) -> Optional[ParsedTaskId]:
    """Split a task ID into platform and number.

    Returns ``None`` for anything that is not a task ID so callers can use it
    to filter mixed collections.
    """
    if not isinstance(task_id, str):
        return None
    match = TASK_ID_PATTERN.match(task_id)
    if not match:
        return None
    platform = PREFIX_PLATFORMS.get(match.group(1))
    if platform is None:
        return None
    return ParsedTaskId(platform, int(match.group(2)))


def is_task_id(value: object) -> bool:
    return parse_task_id(value) is not None


def format_task_id(platform: str, number: int) -> str:
    """Render a task ID from its parts."""
    if number < 1:
        raise ValueError(f"Task number must be positive, got: {number}")
    return f"{prefix_for(platform)}-{number:0{ID_PAD_WIDTH}d}"


def next_task_id(platform: str, existing_ids: Iterable[str]) -> str:
    """Allocate the ID following the highest one already used on a platform.

    Only IDs whose text starts with the platform prefix are considered;
    entries that do not parse count as 0. Uses the maximum, not the count,
    so gaps left by removed tasks are never reused.
    """
    prefix = prefix_for(platform)
    highest = 0
    for task_id in existing_ids:
        if not task_id.startswith(prefix):
            continue
        parsed = parse_task_id(task_id)
        highest = max(highest, parsed.number if parsed else 0)
    return format_task_id(platform, highest + 1)
