"""Per-model compiler configuration and nested filter strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol

from pyfilter2sql.predicate import FieldPath, Join, Predicate
from pyfilter2sql.schema import Schema

if TYPE_CHECKING:
    from pyfilter2sql._compiler import CompileContext
    from pyfilter2sql._condition import Condition, Where


class FieldOverride(Protocol):
    """Replaces default compilation of one field.

    Returning ``None`` contributes no constraint.
    """

    def __call__(self, where: Where, context: CompileContext) -> Predicate | None: ...


class NestedBuilder(Protocol):
    """Compiles a nested filter against a related schema."""

    def __call__(self, condition: Condition, context: CompileContext) -> Predicate | None: ...


FieldKey = str | tuple[str, ...]


@dataclass(frozen=True)
class BuilderConfig:
    """Immutable compiler configuration, safe to share across requests.

    Args:
        field_overrides: Field name -> function that fully replaces default
            compilation for that field.
        nested_builders: Field name -> strategy used for the ``filter``
            method on that field.
        field_key_map: Field name -> physical column key (or key segments
            for a grouped field).
        strict_nested: Raise instead of silently dropping a nested filter
            on a field without a nested builder.
    """

    field_overrides: Mapping[str, FieldOverride] = field(default_factory=dict)
    nested_builders: Mapping[str, NestedBuilder] = field(default_factory=dict)
    field_key_map: Mapping[str, FieldKey] = field(default_factory=dict)
    strict_nested: bool = False

    def __post_init__(self) -> None:
        # Copy into read-only views so callers cannot mutate a shared config.
        object.__setattr__(self, "field_overrides", MappingProxyType(dict(self.field_overrides)))
        object.__setattr__(self, "nested_builders", MappingProxyType(dict(self.nested_builders)))
        object.__setattr__(self, "field_key_map", MappingProxyType(dict(self.field_key_map)))


# ---- Nested filter strategies ----


class RelatedFilter(ABC):
    """Joins a related schema and compiles the nested condition against it."""

    schema: Schema
    config: BuilderConfig | None

    @abstractmethod
    def joins(self, parent: Schema) -> tuple[Join, ...]: ...

    def __call__(self, condition: Condition, context: CompileContext) -> Predicate:
        for join in self.joins(context.schema):
            context.require_join(join)
        return context.compile_nested(condition, self.schema, self.config)


@dataclass(frozen=True)
class ChildrenFilter(RelatedFilter):
    schema: Schema
    foreign_key: str
    local_key: str = "id"
    config: BuilderConfig | None = None

    def joins(self, parent: Schema) -> tuple[Join, ...]:
        return (
            Join(
                self.schema.name,
                FieldPath(self.schema.name, (self.foreign_key,)),
                FieldPath(parent.name, (self.local_key,)),
            ),
        )


@dataclass(frozen=True)
class ParentFilter(RelatedFilter):
    schema: Schema
    foreign_key: str
    parent_key: str = "id"
    config: BuilderConfig | None = None

    def joins(self, parent: Schema) -> tuple[Join, ...]:
        return (
            Join(
                self.schema.name,
                FieldPath(self.schema.name, (self.parent_key,)),
                FieldPath(parent.name, (self.foreign_key,)),
            ),
        )


@dataclass(frozen=True)
class SiblingsFilter(RelatedFilter):
    schema: Schema
    pivot: str
    from_key: str
    to_key: str
    local_key: str = "id"
    sibling_key: str = "id"
    config: BuilderConfig | None = None

    def joins(self, parent: Schema) -> tuple[Join, ...]:
        return (
            Join(
                self.pivot,
                FieldPath(self.pivot, (self.from_key,)),
                FieldPath(parent.name, (self.local_key,)),
            ),
            Join(
                self.schema.name,
                FieldPath(self.schema.name, (self.sibling_key,)),
                FieldPath(self.pivot, (self.to_key,)),
            ),
        )


def children(
    schema: Schema,
    foreign_key: str,
    *,
    local_key: str = "id",
    config: BuilderConfig | None = None,
) -> ChildrenFilter:
    """Filter on a one-to-many relation: ``schema.foreign_key = parent.local_key``."""
    return ChildrenFilter(schema, foreign_key, local_key, config)


def parent(
    schema: Schema,
    foreign_key: str,
    *,
    parent_key: str = "id",
    config: BuilderConfig | None = None,
) -> ParentFilter:
    """Filter on a many-to-one relation: ``schema.parent_key = child.foreign_key``."""
    return ParentFilter(schema, foreign_key, parent_key, config)


def siblings(
    schema: Schema,
    pivot: str,
    from_key: str,
    to_key: str,
    *,
    local_key: str = "id",
    sibling_key: str = "id",
    config: BuilderConfig | None = None,
) -> SiblingsFilter:
    """Filter on a many-to-many relation through the ``pivot`` table."""
    return SiblingsFilter(schema, pivot, from_key, to_key, local_key, sibling_key, config)
