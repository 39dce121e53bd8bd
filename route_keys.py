"""
route_keys.py — Route identifiers and the insertion-ordered route index.

OSM ``ref`` tags are untyped: the same road may be tagged ``"5"`` on one
relation and ``5`` (or ``" 5 "``) on another.  Every ref is coerced into one
of two explicit key variants:

  NumericKey — the trimmed ref parses as a finite number.  Integral values are
               stored as ``int`` so ``"5"``, ``5`` and ``"5.0"`` collapse into
               the same key.
  StringKey  — anything else, holding the ref exactly as tagged.

Relations without a ref never get a key at all (see ``route_key``).
"""

import math
from dataclasses import dataclass
from typing import Callable, Iterator


@dataclass(frozen=True)
class NumericKey:
    value: int | float

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class StringKey:
    value: str

    def __str__(self) -> str:
        return self.value


RouteKey = NumericKey | StringKey


def _parse_number(text: str) -> int | float | None:
    """Return the numeric value of ``text``, or None if it is not a finite number."""
    trimmed = text.strip()
    # float() also accepts digit separators and non-ASCII digits (e.g. "٥", "５")
    if not trimmed or not trimmed.isascii() or "_" in trimmed:
        return None
    try:
        number = float(trimmed)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def route_key(ref) -> RouteKey | None:
    """
    Normalize a raw ``ref`` tag into a route key.

    Returns None when there is no ref (missing, None or empty string); such
    relations are dropped by the aggregator.
    """
    if ref is None or ref == "":
        return None
    if isinstance(ref, bool):
        return StringKey(str(ref))
    if isinstance(ref, (int, float)):
        if not math.isfinite(ref):
            return StringKey(str(ref))
        return NumericKey(int(ref) if float(ref).is_integer() else ref)

    ref = str(ref)
    number = _parse_number(ref)
    if number is not None:
        return NumericKey(number)
    return StringKey(ref)


class RouteIndex:
    """Route records keyed by RouteKey, iterated in order of first insertion."""

    def __init__(self):
        self._order: list[RouteKey] = []
        self._records: dict[RouteKey, dict] = {}

    def get(self, key: RouteKey) -> dict | None:
        return self._records.get(key)

    def get_or_create(self, key: RouteKey, factory: Callable[[], dict]) -> dict:
        """Return the record for ``key``, creating it with ``factory`` on first sighting."""
        record = self._records.get(key)
        if record is None:
            record = factory()
            self._records[key] = record
            self._order.append(key)
        return record

    def keys(self) -> list[RouteKey]:
        return list(self._order)

    def values(self) -> list[dict]:
        return [self._records[k] for k in self._order]

    def items(self) -> list[tuple[RouteKey, dict]]:
        return [(k, self._records[k]) for k in self._order]

    def __contains__(self, key) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[RouteKey]:
        return iter(list(self._order))
