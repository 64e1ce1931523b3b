from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, Literal, Optional, Sequence

Record = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class Bounds:
    x: float
    y: float
    w: float
    h: float

    @property
    def max_x(self) -> float:
        return self.x + self.w

    @property
    def max_y(self) -> float:
        return self.y + self.h

    @property
    def is_empty(self) -> bool:
        return self.w <= 0 or self.h <= 0

    @classmethod
    def union(cls, boxes: Iterable["Bounds"]) -> Optional["Bounds"]:
        items = list(boxes)
        if not items:
            return None
        x0 = min(b.x for b in items)
        y0 = min(b.y for b in items)
        x1 = max(b.max_x for b in items)
        y1 = max(b.max_y for b in items)
        return cls(x0, y0, x1 - x0, y1 - y0)


class RecordScope(str, Enum):
    DOCUMENT = "document"
    EPHEMERAL = "ephemeral"


@dataclass
class StoreChange:
    """One store-listener notification from the canvas library.

    `updated` maps id -> (before, after) like the library reports it.
    """

    source: str
    added: Dict[str, Record] = field(default_factory=dict)
    updated: Dict[str, Sequence[Record]] = field(default_factory=dict)
    removed: Dict[str, Record] = field(default_factory=dict)

    def records(self) -> Iterator[Record]:
        yield from self.added.values()
        for pair in self.updated.values():
            if isinstance(pair, dict):
                yield pair
            elif pair:
                yield pair[-1]
        yield from self.removed.values()


@dataclass(frozen=True)
class Notice:
    level: Literal["info", "warning", "error"]
    message: str
