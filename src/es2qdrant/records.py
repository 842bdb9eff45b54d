"""Source records and their decoding."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

MAX_POINT_ID = 2**64 - 1


@dataclass(frozen=True)
class Record:
    """A decoded source document: numeric id plus the text to embed."""

    id: int = 0
    text: str = ""


@dataclass
class Page:
    """One slice of the source index as returned by a single search."""

    total_count: int
    records: list[dict] = field(default_factory=list)


@dataclass
class Point:
    """A destination point: id, embedding vector and payload."""

    id: int
    vector: list[float]
    payload: dict = field(default_factory=dict)


def _coerce_id(value: object) -> int:
    # bool is an int subclass, but true/false is never a document id
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    if value < 0 or value > MAX_POINT_ID:
        return 0
    return int(value)


def decode(raw: object, id_field: str = "id", text_field: str = "text") -> Record:
    """Extract (id, text) from a raw source document.

    Never raises: a missing or mistyped id becomes 0 and a missing or
    mistyped text becomes the empty string.
    """
    if not isinstance(raw, dict):
        return Record()
    text = raw.get(text_field)
    return Record(
        id=_coerce_id(raw.get(id_field)),
        text=text if isinstance(text, str) else "",
    )
