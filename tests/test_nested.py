"""Nested filter tests: children, parent and siblings strategies."""

import json
from urllib.parse import quote

import pytest

from pyfilter2sql import compile_filter, convert
from pyfilter2sql._errors import (
    InvalidFilterConfigurationError,
    UnsupportedFilterOperationError,
)
from pyfilter2sql.config import BuilderConfig, children, parent, siblings
from pyfilter2sql.predicate import (
    TRUE,
    Compare,
    ComparisonOp,
    FieldPath,
    Group,
    GroupOp,
    Join,
    TypedValue,
    ValueType,
)

CAT = {"field": "species", "method": "eq", "value": "cat"}


def _nested(field: str, inner, *, encode=json.dumps) -> str:
    return json.dumps({"field": field, "method": "filter", "value": encode(inner)})


@pytest.fixture
def config(pets, teams, clubs):
    return BuilderConfig(nested_builders={
        "pets": children(pets, "owner_id"),
        "team": parent(teams, "team_id"),
        "clubs": siblings(clubs, "memberships", "person_id", "club_id"),
    })


class TestChildren:
    def test_predicate_and_join(self, people, config):
        compiled = compile_filter(_nested("pets", CAT), people, config=config)
        assert compiled.predicate == Compare(
            FieldPath("pets", ("species",)),
            ComparisonOp.EQ,
            TypedValue(ValueType.STRING, "cat"),
        )
        assert compiled.joins == (
            Join("pets", FieldPath("pets", ("owner_id",)), FieldPath("people", ("id",))),
        )

    def test_custom_local_key(self, people, pets):
        config = BuilderConfig(nested_builders={
            "pets": children(pets, "owner_id", local_key="person_id"),
        })
        compiled = compile_filter(_nested("pets", CAT), people, config=config)
        assert compiled.joins[0].right == FieldPath("people", ("person_id",))

    def test_nested_config(self, people, pets):
        nested_config = BuilderConfig(field_key_map={"kind": "species"})
        config = BuilderConfig(nested_builders={
            "pets": children(pets, "owner_id", config=nested_config),
        })
        compiled = compile_filter(
            _nested("pets", {"field": "kind", "method": "eq", "value": "cat"}),
            people,
            config=config,
        )
        assert compiled.predicate.path == FieldPath("pets", ("species",))

    def test_sql(self, people, config):
        sql = convert(_nested("pets", CAT), people, config=config)
        assert sql == (
            "SELECT DISTINCT people.* FROM people"
            " INNER JOIN pets ON pets.owner_id = people.id"
            " WHERE pets.species = 'cat'"
        )


class TestParent:
    def test_join(self, people, config):
        compiled = compile_filter(
            _nested("team", {"field": "name", "method": "eq", "value": "Red"}),
            people,
            config=config,
        )
        assert compiled.predicate.path == FieldPath("teams", ("name",))
        assert compiled.joins == (
            Join("teams", FieldPath("teams", ("id",)), FieldPath("people", ("team_id",))),
        )


class TestSiblings:
    def test_joins_through_pivot(self, people, config):
        compiled = compile_filter(
            _nested("clubs", {"field": "title", "method": "eq", "value": "Hiking"}),
            people,
            config=config,
        )
        assert compiled.predicate.path == FieldPath("clubs", ("title",))
        assert compiled.joins == (
            Join(
                "memberships",
                FieldPath("memberships", ("person_id",)),
                FieldPath("people", ("id",)),
            ),
            Join(
                "clubs",
                FieldPath("clubs", ("id",)),
                FieldPath("memberships", ("club_id",)),
            ),
        )

    def test_sql(self, people, config):
        sql = convert(
            _nested("clubs", {"field": "title", "method": "eq", "value": "Hiking"}),
            people,
            config=config,
        )
        assert sql == (
            "SELECT DISTINCT people.* FROM people"
            " INNER JOIN memberships ON memberships.person_id = people.id"
            " INNER JOIN clubs ON clubs.id = memberships.club_id"
            " WHERE clubs.title = 'Hiking'"
        )


class TestJoinConflicts:
    def test_self_relation_rejected(self, people):
        config = BuilderConfig(nested_builders={"manager": parent(people, "manager_id")})
        with pytest.raises(UnsupportedFilterOperationError) as exc_info:
            convert(
                _nested("manager", {"field": "name", "method": "eq", "value": "Boss"}),
                people,
                config=config,
            )
        assert "people" in exc_info.value.internal()

    def test_same_table_on_other_keys_rejected(self, people, pets):
        config = BuilderConfig(nested_builders={
            "pets": children(pets, "owner_id"),
            "fostered": children(pets, "foster_id"),
        })
        text = json.dumps({"and": [
            json.loads(_nested("pets", CAT)),
            json.loads(_nested("fostered", CAT)),
        ]})
        with pytest.raises(UnsupportedFilterOperationError):
            compile_filter(text, people, config=config)


class TestNestedValues:
    def test_url_encoded(self, people, config):
        compiled = compile_filter(_nested("pets", CAT, encode=lambda v: quote(json.dumps(v))),
                                  people, config=config)
        assert compiled.predicate.path == FieldPath("pets", ("species",))

    def test_object_value(self, people, config):
        text = json.dumps({"field": "pets", "method": "filter", "value": CAT})
        compiled = compile_filter(text, people, config=config)
        assert compiled.predicate.value == TypedValue(ValueType.STRING, "cat")

    def test_scalar_value_rejected(self, people, config):
        with pytest.raises(InvalidFilterConfigurationError):
            compile_filter(
                json.dumps({"field": "pets", "method": "filter", "value": 5}),
                people,
                config=config,
            )

    def test_invalid_nested_json(self, people, config):
        with pytest.raises(InvalidFilterConfigurationError):
            compile_filter(_nested("pets", "{broken", encode=str), people, config=config)

    def test_empty_nested_filter(self, people, config):
        compiled = compile_filter(_nested("pets", "", encode=str), people, config=config)
        assert compiled.predicate is TRUE
        assert len(compiled.joins) == 1

    def test_joins_deduplicated(self, people, config):
        text = json.dumps({"or": [
            {"field": "pets", "method": "filter", "value": json.dumps(CAT)},
            {"field": "pets", "method": "filter",
             "value": json.dumps({"field": "name", "method": "sw", "value": "R"})},
        ]})
        compiled = compile_filter(text, people, config=config)
        assert len(compiled.joins) == 1
        assert compiled.predicate.op is GroupOp.OR

    def test_combined_with_local_condition(self, people, config):
        text = json.dumps({"and": [
            {"field": "age", "method": "gt", "value": 20},
            {"field": "pets", "method": "filter", "value": json.dumps(CAT)},
        ]})
        predicate = compile_filter(text, people, config=config).predicate
        assert isinstance(predicate, Group)
        assert [c.path.schema for c in predicate.children] == ["people", "pets"]


class TestMissingBuilder:
    def test_dropped_by_default(self, people):
        compiled = compile_filter(_nested("pets", CAT), people)
        assert compiled.predicate is TRUE
        assert compiled.joins == ()

    def test_strict_raises(self, people):
        config = BuilderConfig(strict_nested=True)
        with pytest.raises(UnsupportedFilterOperationError):
            compile_filter(_nested("pets", CAT), people, config=config)

    def test_dropped_leaves_siblings(self, people):
        text = json.dumps({"and": [
            {"field": "pets", "method": "filter", "value": json.dumps(CAT)},
            {"field": "age", "method": "eq", "value": 30},
        ]})
        assert convert(text, people) == "SELECT people.* FROM people WHERE people.age = 30"
