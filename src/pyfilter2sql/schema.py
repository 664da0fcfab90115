"""Schema types describing filterable tables."""

from __future__ import annotations

from dataclasses import dataclass

from pyfilter2sql._coercion import normalize_type
from pyfilter2sql.predicate import ValueType


@dataclass(frozen=True)
class FieldSchema:
    """Schema for a single field/column.

    ``key`` is the physical column when it differs from the DSL field name.
    For ``repeated`` (array) fields ``type`` is the element type.
    """

    name: str
    type: str = "text"
    repeated: bool = False
    key: str | None = None

    @property
    def column(self) -> str:
        return self.key or self.name

    @property
    def value_type(self) -> ValueType | None:
        return normalize_type(self.type)


class Schema:
    """Table schema with O(1) field lookup."""

    def __init__(self, name: str, fields: list[FieldSchema]) -> None:
        self.name = name
        self._fields = list(fields)
        self._index: dict[str, FieldSchema] = {f.name: f for f in fields}

    @property
    def fields(self) -> list[FieldSchema]:
        return list(self._fields)

    def find_field(self, name: str) -> FieldSchema | None:
        return self._index.get(name)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Schema({self.name!r}, {len(self._fields)} fields)"
