"""Newline-delimited JSON helpers for plan task files."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Optional


@dataclass(slots=True)
class NdjsonLine:
    """One non-blank line of an NDJSON file: parsed data or the parse error."""

    index: int
    line: str
    data: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def iter_ndjson_lines(content: str) -> Iterator[NdjsonLine]:
    """Parse NDJSON text lazily; JSON errors are yielded, never raised."""
    for index, line in enumerate(content.splitlines()):
        if not line.strip():
            continue
        try:
            yield NdjsonLine(index=index, line=line, data=json.loads(line))
        except json.JSONDecodeError as exc:
            yield NdjsonLine(index=index, line=line, error=exc)


def read_ndjson(path: Path) -> Iterator[NdjsonLine]:
    """Iterate over the lines of an NDJSON file; a missing file yields nothing.

    Each call re-reads the file, so the sequence can be restarted.
    """
    if not path.exists():
        return
    yield from iter_ndjson_lines(path.read_text(encoding="utf-8"))


def write_ndjson(
    path: Path,
    records: Iterable[Dict[str, Any]],
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """Overwrite ``path`` with an optional metadata line followed by records."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = []
    if metadata is not None:
        lines.append(json.dumps({"metadata": metadata}))
    lines.extend(json.dumps(record) for record in records)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
