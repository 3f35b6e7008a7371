#!/usr/bin/env python3
"""
Operator tree backend for MongoDB-style filters.
Converts filter documents to nested mappings keyed by caller-supplied
operator tokens, the "where" shape ORM query builders accept.
"""

import logging
from typing import Any, Dict, Generic, List, Mapping, TypeVar

from ..exceptions import UnsupportedOperatorError
from .base import DEFAULT_MAX_DEPTH, FilterOperator, FilterTranslator

logger = logging.getLogger(__name__)

Token = TypeVar("Token")

OperatorTree = Dict[Any, Any]


class OperatorTreeTranslator(FilterTranslator, Generic[Token]):
    """
    Converts filter documents to operator trees.

    The token table maps canonical operator names (``eq``, ``ne``, ``gt``,
    ``gte``, ``lt``, ``lte``, ``in``, ``notIn``, ``like``, ``not``, ``and``,
    ``or`` and, when a filter uses them, ``notLike``, ``iLike``,
    ``notILike``, ``regexp``, ``notRegexp``, ``between``, ``notBetween``,
    ``is``) to whatever the relational mapping layer uses as operator keys.

    Example:
        >>> tokens = {"gte": "Op.gte", "lt": "Op.lt"}
        >>> OperatorTreeTranslator(tokens).translate({"age": {"$gte": 18, "$lt": 65}})
        {'age': {'Op.gte': 18, 'Op.lt': 65}}
    """

    backend_name = "operator tree"

    def __init__(self, tokens: Mapping[str, Token], max_depth: int = DEFAULT_MAX_DEPTH):
        """
        Initialize operator tree translator.

        Args:
            tokens: Canonical operator name to operator token
            max_depth: Maximum nesting depth of the filter
        """
        super().__init__(max_depth=max_depth)
        if not isinstance(tokens, Mapping):
            raise TypeError(f"tokens must be a mapping, got {type(tokens).__name__}")
        self.tokens = tokens

    def translate(self, filters) -> OperatorTree:
        """
        Convert a filter document to an operator tree.

        Args:
            filters: MongoDB-style filter dictionary

        Returns:
            Nested mapping; ``{}`` for an empty filter
        """
        return super().translate(filters)

    def token(self, name: str) -> Token:
        """Look up the token for a canonical operator name."""
        try:
            return self.tokens[name]
        except KeyError:
            raise UnsupportedOperatorError(name, self.backend_name) from None

    def _finish(self, node: OperatorTree) -> OperatorTree:
        logger.debug(f"Translated filter to operator tree with {len(node)} top-level keys")
        return node

    def _empty(self) -> OperatorTree:
        return {}

    def _is_empty(self, node: OperatorTree) -> bool:
        return not node

    def _leaf(self, field: str, op: FilterOperator, operand: Any) -> OperatorTree:
        return {self.token(op.token_name): operand}

    def _negate(self, node: OperatorTree) -> OperatorTree:
        return {self.token("not"): node}

    def _combine(self, op: FilterOperator, nodes: List[OperatorTree]) -> OperatorTree:
        if op is FilterOperator.NOR:
            inner = nodes[0] if len(nodes) == 1 else {self.token("or"): nodes}
            return self._negate(inner)

        if len(nodes) == 1:
            return nodes[0]
        return {self.token(op.token_name): nodes}

    def _conjoin_field(self, nodes: List[OperatorTree]) -> OperatorTree:
        return self._merge(nodes)

    def _bind_field(self, field: str, node: OperatorTree) -> OperatorTree:
        return {field: node}

    def _conjoin_document(self, nodes: List[OperatorTree]) -> OperatorTree:
        return self._merge(nodes)

    def _merge(self, nodes: List[OperatorTree]) -> OperatorTree:
        """
        Merge sibling nodes into one mapping.

        When two nodes share a key (the same field twice, or the same
        operator token twice) they cannot be merged without losing a
        condition, so the nodes are kept side by side under the ``and``
        token instead.
        """
        merged: OperatorTree = {}
        for node in nodes:
            if any(key in merged for key in node):
                return {self.token("and"): list(nodes)}
            merged.update(node)
        return merged


def convert_filter_to_tree(filters, tokens: Mapping[str, Any], **options) -> OperatorTree:
    """
    Convert a MongoDB-style filter to an operator tree using ``tokens``.

    >>> convert_filter_to_tree({"status": ["a", "b"]}, {"in": "IN"})
    {'status': {'IN': ['a', 'b']}}
    """
    return OperatorTreeTranslator(tokens, **options).translate(filters)
