"""
Conversion of regex-like patterns into SQL ``LIKE`` wildcard strings.

Two sources are understood: the ``"/pattern/"`` string shorthand used as a
field value, and the operand of an explicit ``$regex`` operator. Both honour
the ``^`` and ``$`` anchors and both escape the LIKE metacharacters ``%``
and ``_`` with a backslash.
"""

import re
from enum import Enum
from typing import Any, Mapping

from ..exceptions import InvalidFilterShapeError, InvalidOperandShapeError

LIKE_ESCAPE = "\\"
LIKE_WILDCARD = "%"


class LikePattern(str):
    """A LIKE string compiled from a pattern, with ``%`` and ``_`` escaped."""
    __slots__ = ()


class PatternSource(Enum):
    """Where a pattern came from."""
    SLASH_LITERAL = "slash"
    REGEX_OPERATOR = "regex"


def is_slash_pattern(value: Any) -> bool:
    """Check if a value is a string wrapped in forward slashes, like "/joh/"."""
    return (
        isinstance(value, str)
        and len(value) >= 2
        and value[0] == "/"
        and value[-1] == "/"
    )


def escape_like(text: str) -> str:
    """Escape the LIKE wildcard characters in ``text``."""
    return text.replace("%", LIKE_ESCAPE + "%").replace("_", LIKE_ESCAPE + "_")


def compile_pattern(source: PatternSource, raw: Any) -> LikePattern:
    """
    Compile a pattern into a LIKE wildcard string.

    No anchors gives a "contains" match, ``^`` a prefix match, ``$`` a
    suffix match and both an exact match.

    Args:
        source: Whether ``raw`` is a slash literal or a ``$regex`` operand
        raw: The pattern. For ``$regex`` this may be a plain string, a
            slash literal, a compiled ``re.Pattern`` or a mapping holding
            a ``$regex`` key

    Returns:
        The LIKE pattern, to be matched with backslash as escape character

    Raises:
        InvalidFilterShapeError: If a slash literal is malformed
        InvalidOperandShapeError: If a ``$regex`` operand is not a pattern
    """
    if source is PatternSource.SLASH_LITERAL:
        if not is_slash_pattern(raw):
            raise InvalidFilterShapeError(f"Malformed pattern literal: {raw!r}")
        body = raw[1:-1]
    else:
        body = _regex_body(raw)

    starts_anchored = body.startswith("^")
    if starts_anchored:
        body = body[1:]

    # An escaped trailing "\$" is a literal dollar sign, not an anchor
    ends_anchored = body.endswith("$") and not body.endswith(LIKE_ESCAPE + "$")
    if ends_anchored:
        body = body[:-1]

    pattern = escape_like(body)
    if not starts_anchored:
        pattern = LIKE_WILDCARD + pattern
    if not ends_anchored:
        pattern = pattern + LIKE_WILDCARD
    return LikePattern(pattern)


def _regex_body(raw: Any) -> str:
    """Extract the regex source text from a ``$regex`` operand."""
    if isinstance(raw, Mapping) and "$regex" in raw:
        raw = raw["$regex"]

    if isinstance(raw, re.Pattern):
        raw = raw.pattern

    if not isinstance(raw, str):
        raise InvalidOperandShapeError(
            "$regex", f"$regex requires a string or compiled pattern, got {type(raw).__name__}"
        )

    if is_slash_pattern(raw):
        return raw[1:-1]
    return raw
