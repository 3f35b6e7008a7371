#!/usr/bin/env python3
"""
Base MongoDB-style filter translator.
Provides the shared traversal of a filter document; backends decide what a
single condition becomes (SQL text with parameters, operator tree node, ...)
and how conditions combine.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, List, Mapping, Optional

from ..exceptions import (
    FilterDepthError,
    InvalidFilterShapeError,
    InvalidOperandShapeError,
    UnsupportedOperatorError,
)
from .patterns import PatternSource, compile_pattern, is_slash_pattern

OPERATOR_SIGIL = "$"

DEFAULT_MAX_DEPTH = 10


class FilterOperator(Enum):
    """MongoDB-style query operators."""
    # Comparison
    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"

    # Membership
    IN = "$in"
    NIN = "$nin"

    # Pattern
    LIKE = "$like"
    NOT_LIKE = "$notLike"
    ILIKE = "$iLike"
    NOT_ILIKE = "$notILike"
    REGEXP = "$regexp"
    NOT_REGEXP = "$notRegexp"
    REGEX = "$regex"

    # Range
    BETWEEN = "$between"
    NOT_BETWEEN = "$notBetween"

    # Identity
    IS = "$is"

    # Logical
    NOT = "$not"
    AND = "$and"
    OR = "$or"
    NOR = "$nor"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if a string is a valid operator."""
        return value in {op.value for op in cls}

    @classmethod
    def from_string(cls, value: str) -> Optional['FilterOperator']:
        """Convert string to operator."""
        for op in cls:
            if op.value == value:
                return op
        return None

    @property
    def token_name(self) -> Optional[str]:
        """Canonical name used to look up this operator's token, if any."""
        return TOKEN_NAMES.get(self)


TOKEN_NAMES = {
    FilterOperator.EQ: "eq",
    FilterOperator.NE: "ne",
    FilterOperator.GT: "gt",
    FilterOperator.GTE: "gte",
    FilterOperator.LT: "lt",
    FilterOperator.LTE: "lte",
    FilterOperator.IN: "in",
    FilterOperator.NIN: "notIn",
    FilterOperator.LIKE: "like",
    FilterOperator.NOT_LIKE: "notLike",
    FilterOperator.ILIKE: "iLike",
    FilterOperator.NOT_ILIKE: "notILike",
    FilterOperator.REGEXP: "regexp",
    FilterOperator.NOT_REGEXP: "notRegexp",
    FilterOperator.REGEX: "like",
    FilterOperator.BETWEEN: "between",
    FilterOperator.NOT_BETWEEN: "notBetween",
    FilterOperator.IS: "is",
    FilterOperator.NOT: "not",
    FilterOperator.AND: "and",
    FilterOperator.OR: "or",
}

COMPARISON_OPERATORS = frozenset({
    FilterOperator.EQ, FilterOperator.NE,
    FilterOperator.GT, FilterOperator.GTE,
    FilterOperator.LT, FilterOperator.LTE,
})

MEMBERSHIP_OPERATORS = frozenset({FilterOperator.IN, FilterOperator.NIN})

PATTERN_OPERATORS = frozenset({
    FilterOperator.LIKE, FilterOperator.NOT_LIKE,
    FilterOperator.ILIKE, FilterOperator.NOT_ILIKE,
    FilterOperator.REGEXP, FilterOperator.NOT_REGEXP,
})

RANGE_OPERATORS = frozenset({FilterOperator.BETWEEN, FilterOperator.NOT_BETWEEN})

LOGICAL_OPERATORS = frozenset({FilterOperator.AND, FilterOperator.OR, FilterOperator.NOR})

IS_OPERANDS = (None, True, False)


def map_operator(key: str) -> FilterOperator:
    """
    Map a filter key such as ``"$gte"`` to its operator.

    Raises:
        UnsupportedOperatorError: If the key is not a known operator
    """
    op = FilterOperator.from_string(key)
    if op is None:
        raise UnsupportedOperatorError(
            key, known_operators=[member.value for member in FilterOperator]
        )
    return op


def is_array(value: Any) -> bool:
    """Arrays are lists and tuples; strings and mappings are not."""
    return isinstance(value, (list, tuple))


def is_operator_object(value: Any) -> bool:
    """Check if a field value is a mapping led by an operator key."""
    if not isinstance(value, Mapping) or not value:
        return False
    first_key = next(iter(value))
    return isinstance(first_key, str) and first_key.startswith(OPERATOR_SIGIL)


class FilterTranslator(ABC):
    """
    Walks a MongoDB-style filter document depth-first.

    Document keys go either to the combinator handling (``$and``, ``$or``,
    ``$nor``, ``$not``) or to the field handling; field values are resolved
    to atomic conditions through the operator mapping. Subclasses turn
    atomic conditions into their native form and define how several of
    them combine.

    Translators keep no state between calls: each recursive step returns
    a fresh node, so one instance can be shared across threads.
    """

    backend_name = "filter translator"

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        """
        Initialize the translator.

        Args:
            max_depth: Maximum nesting depth to prevent DoS attacks
        """
        self.max_depth = max_depth

    def translate(self, filters: Optional[Mapping[str, Any]]) -> Any:
        """
        Translate a filter document into the backend's native format.

        Args:
            filters: MongoDB-style filter dictionary, or None

        Returns:
            Backend-specific result; an empty filter gives the backend's
            "match everything" result

        Raises:
            FilterError: If the filter is invalid or too deeply nested
        """
        if filters is None:
            return self._finish(self._empty())
        if not isinstance(filters, Mapping):
            raise InvalidFilterShapeError(
                f"Filter must be a mapping, got {type(filters).__name__}"
            )
        return self._finish(self._translate_document(filters, 1))

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _translate_document(self, filters: Mapping[str, Any], depth: int) -> Any:
        """Translate one filter document into a single node."""
        self._check_depth(depth)

        nodes = []
        for key, value in filters.items():
            if not isinstance(key, str):
                raise InvalidFilterShapeError(f"Filter keys must be strings, got {key!r}")

            if key.startswith(OPERATOR_SIGIL):
                op = map_operator(key)
                if op in LOGICAL_OPERATORS:
                    nodes.append(self._emit_combinator(op, value, depth))
                elif op is FilterOperator.NOT:
                    if not isinstance(value, Mapping):
                        raise InvalidOperandShapeError(key, f"{key} requires a filter document")
                    nodes.append(self._negate_node(self._translate_document(value, depth + 1)))
                else:
                    raise InvalidFilterShapeError(f"Operator {key} requires a field")
            else:
                node = self._emit_field(key, value, depth)
                if not self._is_empty(node):
                    nodes.append(self._bind_field(key, node))

        return self._conjoin_document([node for node in nodes if not self._is_empty(node)])

    def _emit_combinator(self, op: FilterOperator, sub_filters: Any, depth: int) -> Any:
        """Resolve ``$and``/``$or``/``$nor`` over a list of sub-documents."""
        if not is_array(sub_filters):
            raise InvalidOperandShapeError(op.value, f"{op.value} requires a list")

        nodes = []
        for sub_filter in sub_filters:
            if not isinstance(sub_filter, Mapping):
                raise InvalidFilterShapeError(f"{op.value} items must be filter documents")
            nodes.append(self._translate_document(sub_filter, depth + 1))

        return self._combine_nodes(op, nodes)

    def _emit_field(self, field: str, value: Any, depth: int) -> Any:
        """Resolve one field's value into a condition node."""
        self._check_depth(depth)

        if is_slash_pattern(value):
            return self._leaf(
                field, FilterOperator.LIKE,
                compile_pattern(PatternSource.SLASH_LITERAL, value)
            )

        if is_array(value):
            return self._leaf(field, FilterOperator.IN, list(value))

        if isinstance(value, Mapping):
            if not is_operator_object(value):
                raise InvalidFilterShapeError(
                    f"Value of field '{field}' must be led by an operator key, got {dict(value)!r}"
                )
            nodes = [
                self._emit_operator(field, map_operator(key), operand, depth)
                for key, operand in value.items()
            ]
            nodes = [node for node in nodes if not self._is_empty(node)]
            if not nodes:
                return self._empty()
            if len(nodes) == 1:
                return nodes[0]
            return self._conjoin_field(nodes)

        return self._leaf(field, FilterOperator.EQ, value)

    def _emit_operator(self, field: str, op: FilterOperator, operand: Any, depth: int) -> Any:
        """Resolve a single ``$operator: operand`` pair on a field."""
        if op in COMPARISON_OPERATORS:
            return self._leaf(field, op, operand)

        elif op in MEMBERSHIP_OPERATORS:
            if not is_array(operand):
                raise InvalidOperandShapeError(op.value, f"{op.value} operator requires an array value")
            return self._leaf(field, op, list(operand))

        elif op in PATTERN_OPERATORS:
            if not isinstance(operand, str):
                raise InvalidOperandShapeError(op.value, f"{op.value} operator requires a string pattern")
            return self._leaf(field, op, operand)

        elif op is FilterOperator.REGEX:
            return self._leaf(
                field, FilterOperator.LIKE,
                compile_pattern(PatternSource.REGEX_OPERATOR, operand)
            )

        elif op in RANGE_OPERATORS:
            if not is_array(operand) or len(operand) != 2:
                raise InvalidOperandShapeError(op.value, f"{op.value} requires exactly 2 values")
            return self._leaf(field, op, list(operand))

        elif op is FilterOperator.IS:
            if not any(operand is allowed for allowed in IS_OPERANDS):
                raise InvalidOperandShapeError(op.value, "$is requires null, true or false")
            return self._leaf(field, op, operand)

        elif op is FilterOperator.NOT:
            return self._negate_node(self._emit_field(field, operand, depth + 1))

        elif op in LOGICAL_OPERATORS:
            if not is_array(operand):
                raise InvalidOperandShapeError(op.value, f"{op.value} requires a list")
            nodes = [self._emit_field(field, item, depth + 1) for item in operand]
            return self._combine_nodes(op, nodes)

        raise UnsupportedOperatorError(op.value, self.backend_name)

    def _combine_nodes(self, op: FilterOperator, nodes: List[Any]) -> Any:
        survivors = [node for node in nodes if not self._is_empty(node)]
        if not survivors:
            return self._empty()
        return self._combine(op, survivors)

    def _negate_node(self, node: Any) -> Any:
        if self._is_empty(node):
            return node
        return self._negate(node)

    def _check_depth(self, depth: int) -> None:
        if depth > self.max_depth:
            raise FilterDepthError(self.max_depth)

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _empty(self) -> Any:
        """The node contributing nothing to its enclosing level."""
        pass

    @abstractmethod
    def _is_empty(self, node: Any) -> bool:
        pass

    @abstractmethod
    def _leaf(self, field: str, op: FilterOperator, operand: Any) -> Any:
        """
        Build an atomic condition.

        ``op`` is a comparison, membership, pattern, range or ``$is``
        operator; ``$regex`` and slash literals arrive as ``$like`` with an
        already compiled pattern, and array operands arrive as lists.
        """
        pass

    @abstractmethod
    def _negate(self, node: Any) -> Any:
        pass

    @abstractmethod
    def _combine(self, op: FilterOperator, nodes: List[Any]) -> Any:
        """Combine non-empty nodes under ``$and``, ``$or`` or ``$nor``."""
        pass

    @abstractmethod
    def _conjoin_field(self, nodes: List[Any]) -> Any:
        """AND together several conditions on one field."""
        pass

    @abstractmethod
    def _bind_field(self, field: str, node: Any) -> Any:
        """Attach a field's condition node to its field at document level."""
        pass

    @abstractmethod
    def _conjoin_document(self, nodes: List[Any]) -> Any:
        """AND together the non-empty conditions of one document."""
        pass

    @abstractmethod
    def _finish(self, node: Any) -> Any:
        """Turn the root node into the value returned by ``translate``."""
        pass
