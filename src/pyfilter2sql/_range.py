"""Range literal parsing (``5...15``, ``5..<15``, ``[5,15]``)."""

from __future__ import annotations

from typing import NamedTuple

from lark import Lark, Transformer
from lark.exceptions import LarkError

from pyfilter2sql._errors import (
    ERR_MSG_INVALID_FILTER,
    ERR_MSG_MALFORMED_RANGE,
    InvalidFilterConfigurationError,
    MalformedRangeError,
)
from pyfilter2sql._operators import RangeKind

# A bound is any run of characters that does not start a separator, so
# dotted values such as ``1.5...2.5`` split on the separator only. The
# ``<null>`` sentinel ends in ``>`` and must win over the ``>..`` separator.
_GRAMMAR = r"""
start: bound SEPARATOR bound
?bound: NULL_BOUND | BOUND

SEPARATOR: "..." | "..<" | "<.." | ">.." | "<.<"
NULL_BOUND.2: "<null>"
BOUND: /(?:(?!\.\.\.|\.\.<|<\.\.|>\.\.|<\.<).)+/s
"""

SEPARATORS: dict[str, RangeKind] = {
    "...": RangeKind.INCLUSIVE,
    "..<": RangeKind.INCLUSIVE_EXCLUSIVE,
    "<..": RangeKind.EXCLUSIVE_INCLUSIVE,
    ">..": RangeKind.EXCLUSIVE_INCLUSIVE,
    "<.<": RangeKind.EXCLUSIVE,
}


class RangeLiteral(NamedTuple):
    lower: str
    upper: str
    kind: RangeKind | None


class _RangeTransformer(Transformer):
    def start(self, children):
        lower, separator, upper = children
        return RangeLiteral(str(lower).strip(), str(upper).strip(), SEPARATORS[str(separator)])


_parser = Lark(_GRAMMAR, parser="lalr")
_transformer = _RangeTransformer()


def parse_range_literal(text: str) -> RangeLiteral:
    """Parse ``<lower><sep><upper>`` into its bounds and inclusivity.

    Raises:
        MalformedRangeError: If the text does not contain exactly one
            separator splitting it into two non-empty bounds.
    """
    try:
        tree = _parser.parse(text)
    except LarkError as e:
        raise MalformedRangeError(
            ERR_MSG_MALFORMED_RANGE,
            f"{text!r} is not a properly formed range query",
            wrapped=e,
        ) from e
    literal: RangeLiteral = _transformer.transform(tree)
    if not literal.lower or not literal.upper:
        raise MalformedRangeError(
            ERR_MSG_MALFORMED_RANGE,
            f"{text!r} has an empty range bound",
        )
    return literal


def parse_bracketed_pair(text: str) -> RangeLiteral:
    """Parse the ``[lower,upper]`` form; inclusivity is left to the operator."""
    cleaned = text.strip().strip("[]")
    parts = [part.strip() for part in cleaned.split(",")]
    if len(parts) != 2:
        raise InvalidFilterConfigurationError(
            ERR_MSG_INVALID_FILTER,
            f"range value {text!r} must have exactly two bounds, got {len(parts)}",
        )
    return RangeLiteral(parts[0], parts[1], None)


def parse_range_value(text: str) -> RangeLiteral:
    """Parse a textual range value in either the bracketed or literal form."""
    stripped = text.strip()
    if stripped.startswith("[") or "," in stripped:
        return parse_bracketed_pair(stripped)
    return parse_range_literal(stripped)
