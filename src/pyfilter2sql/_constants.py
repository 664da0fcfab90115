"""Limits and defaults for query filter compilation."""

DEFAULT_MAX_DEPTH = 100
"""Maximum condition nesting depth (CWE-674 prevention)."""

PREDICATE_DEPTH_OVERHEAD = 2
"""Predicate levels a renderer allows beyond the condition depth limit.

Range and ``equalsAny`` leaves compile to a group, and a query ANDs its
filters into one more group.
"""

DEFAULT_MAX_SQL_OUTPUT_LENGTH = 50000
"""Maximum generated SQL string length."""

DEFAULT_FILTER_PARAMETER = "filter"
"""Query parameter carrying the JSON filter."""

DEFAULT_SORT_PARAMETER = "sort"
"""Query parameter carrying the sort specification."""

NULL_SENTINELS = frozenset({"null", "", "<null>"})
"""Textual range bounds meaning "unbounded on this side"."""

DATE_FORMATS: tuple[str, ...] = (
    # ISO8601 with T separator and zone suffix
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M%z",
    "%Y-%m-%dT%H%z",
    # ISO8601 with T separator
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%dT%H",
    # Space separated
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H",
    "%Y-%m-%d",
    "%m-%d-%Y %H:%M:%S.%f",
    "%m-%d-%Y %H:%M:%S",
    "%m-%d-%Y %H:%M",
    "%m-%d-%Y %H",
    "%m-%d-%Y",
    "%H:%M:%S.%f",
    "%H:%M:%S",
)
"""Date layouts tried in order; date-only layouts come after the datetime ones."""
