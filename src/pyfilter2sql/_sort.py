"""Sort parameter parsing: ``field:direction[,field:direction...]``."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass

from pyfilter2sql._errors import ERR_MSG_INVALID_SORT, InvalidSortError


class SortDirection(enum.StrEnum):
    ASC = "asc"
    DESC = "desc"


_DIRECTIONS: dict[str, SortDirection] = {
    "asc": SortDirection.ASC,
    "ascending": SortDirection.ASC,
    "desc": SortDirection.DESC,
    "descending": SortDirection.DESC,
}


@dataclass(frozen=True)
class Sort:
    field: str
    direction: SortDirection = SortDirection.ASC


def parse_sort(text: str | None, *, key_map: Mapping[str, str] | None = None) -> tuple[Sort, ...]:
    """Parse a sort parameter.

    Direction is case-insensitive and defaults to ascending. ``key_map``
    renames DSL field names to physical keys.

    Raises:
        InvalidSortError: On an empty field or an unknown direction.
    """
    if text is None or not text.strip():
        return ()
    sorts = []
    for part in text.split(","):
        field, _, direction = part.partition(":")
        field = field.strip()
        if not field:
            raise InvalidSortError(ERR_MSG_INVALID_SORT, f"empty sort field in {text!r}")
        direction = direction.strip().lower()
        if direction:
            resolved = _DIRECTIONS.get(direction)
            if resolved is None:
                raise InvalidSortError(
                    ERR_MSG_INVALID_SORT,
                    f"unknown sort direction {direction!r} for field {field!r}",
                )
        else:
            resolved = SortDirection.ASC
        if key_map is not None:
            field = key_map.get(field, field)
        sorts.append(Sort(field, resolved))
    return tuple(sorts)
