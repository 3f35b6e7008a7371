#!/usr/bin/env python3
"""
SQL backend for MongoDB-style filters.
Converts filter documents to parameterized WHERE clauses using ``?``
placeholders; renumbering for other placeholder styles is up to the caller.
"""

import logging
from dataclasses import dataclass
from itertools import chain
from typing import Any, Callable, Iterable, List, Optional, Tuple

from .base import (
    DEFAULT_MAX_DEPTH, MEMBERSHIP_OPERATORS, RANGE_OPERATORS,
    FilterOperator, FilterTranslator
)
from .patterns import LIKE_ESCAPE, LikePattern

logger = logging.getLogger(__name__)

FieldResolver = Callable[[str], str]


@dataclass(frozen=True)
class SQLClause:
    """
    A fragment of WHERE-clause text with the parameters it consumes.

    ``grouped`` marks text wrapped in one pair of parentheses as a whole;
    ``compound`` marks conditions joined by a bare ``AND``.
    """
    text: str
    params: Tuple[Any, ...] = ()
    grouped: bool = False
    compound: bool = False

    def parenthesized(self) -> str:
        return self.text if self.grouped else f"({self.text})"

    def __bool__(self) -> bool:
        return bool(self.text)


EMPTY_CLAUSE = SQLClause("")


def _collect_params(clauses: Iterable[SQLClause]) -> Tuple[Any, ...]:
    return tuple(chain.from_iterable(clause.params for clause in clauses))


class JSONFieldResolver:
    """
    Resolves field names to SQLite JSON lookups.

    Fields listed in ``direct_fields`` are plain columns; every other field,
    dotted paths included, is read from the JSON column with
    ``json_extract``.
    """

    def __init__(self,
                 json_column: str = 'metadata',
                 direct_fields: Iterable[str] = (),
                 table_alias: Optional[str] = None):
        self.json_column = json_column
        self.direct_fields = frozenset(direct_fields)
        self.table_alias = table_alias

    def __call__(self, field: str) -> str:
        if field in self.direct_fields:
            return f"{self.table_alias}.{field}" if self.table_alias else field

        json_path = '$.' + field.replace("'", "''")
        base = f"{self.table_alias}.{self.json_column}" if self.table_alias else self.json_column
        return f"json_extract({base}, '{json_path}')"


class SQLFilterTranslator(FilterTranslator):
    """
    Converts filter documents to SQL WHERE clauses.

    Example:
        >>> SQLFilterTranslator().translate({"age": {"$gte": 18, "$lt": 65}})
        ('(age >= ? AND age < ?)', [18, 65])
    """

    backend_name = "SQL"

    SQL_OPERATORS = {
        FilterOperator.EQ: "=",
        FilterOperator.NE: "!=",
        FilterOperator.GT: ">",
        FilterOperator.GTE: ">=",
        FilterOperator.LT: "<",
        FilterOperator.LTE: "<=",
        FilterOperator.IN: "IN",
        FilterOperator.NIN: "NOT IN",
        FilterOperator.LIKE: "LIKE",
        FilterOperator.NOT_LIKE: "NOT LIKE",
        FilterOperator.ILIKE: "ILIKE",
        FilterOperator.NOT_ILIKE: "NOT ILIKE",
        FilterOperator.REGEXP: "REGEXP",
        FilterOperator.NOT_REGEXP: "NOT REGEXP",
        FilterOperator.BETWEEN: "BETWEEN",
        FilterOperator.NOT_BETWEEN: "NOT BETWEEN",
        FilterOperator.IS: "IS",
    }

    IS_KEYWORDS = {None: "NULL", True: "TRUE", False: "FALSE"}

    def __init__(self,
                 field_resolver: Optional[FieldResolver] = None,
                 max_depth: int = DEFAULT_MAX_DEPTH,
                 like_escape: bool = False):
        """
        Initialize SQL translator.

        Args:
            field_resolver: Maps a field name to its SQL reference; field
                names are used verbatim when omitted
            max_depth: Maximum nesting depth of the filter
            like_escape: Append ``ESCAPE '\\'`` to LIKE conditions built from
                ``"/pattern/"`` literals and ``$regex``, for databases
                without a default LIKE escape character (SQLite)
        """
        super().__init__(max_depth=max_depth)
        self.field_resolver = field_resolver
        self.like_escape = like_escape

    def translate(self, filters) -> Tuple[str, List[Any]]:
        """
        Convert a filter document to a WHERE clause.

        Args:
            filters: MongoDB-style filter dictionary

        Returns:
            Tuple of (where_clause, params); ``("", [])`` for an empty filter
        """
        return super().translate(filters)

    def _finish(self, clause: SQLClause) -> Tuple[str, List[Any]]:
        logger.debug(f"Translated filter to SQL: {clause.text!r} with {len(clause.params)} parameters")
        return clause.text, list(clause.params)

    def field_reference(self, field: str) -> str:
        """SQL reference for a field name."""
        return self.field_resolver(field) if self.field_resolver else field

    def _empty(self) -> SQLClause:
        return EMPTY_CLAUSE

    def _is_empty(self, node: SQLClause) -> bool:
        return not node

    def _leaf(self, field: str, op: FilterOperator, operand: Any) -> SQLClause:
        field_ref = self.field_reference(field)
        sql_op = self.SQL_OPERATORS[op]

        if op in MEMBERSHIP_OPERATORS:
            if not operand:
                # Nothing is in an empty list
                return SQLClause("0=1" if op is FilterOperator.IN else "1=1")
            placeholders = ', '.join('?' for _ in operand)
            return SQLClause(f"{field_ref} {sql_op} ({placeholders})", tuple(operand))

        if op in RANGE_OPERATORS:
            return SQLClause(f"{field_ref} {sql_op} ? AND ?", tuple(operand))

        if op is FilterOperator.IS:
            return SQLClause(f"{field_ref} IS {self.IS_KEYWORDS[operand]}")

        if isinstance(operand, LikePattern):
            escape = f" ESCAPE '{LIKE_ESCAPE}'" if self.like_escape else ""
            return SQLClause(f"{field_ref} {sql_op} ?{escape}", (str(operand),))

        return SQLClause(f"{field_ref} {sql_op} ?", (operand,))

    def _negate(self, node: SQLClause) -> SQLClause:
        text = f"NOT {node.text}" if node.grouped else f"NOT ({node.text})"
        return SQLClause(text, node.params)

    def _combine(self, op: FilterOperator, nodes: List[SQLClause]) -> SQLClause:
        params = _collect_params(nodes)

        if op is FilterOperator.NOR:
            parts = [f"({node.text})" if node.compound else node.text for node in nodes]
            return SQLClause(f"NOT ({' OR '.join(parts)})", params)

        if len(nodes) == 1:
            return nodes[0]

        connective = ' AND ' if op is FilterOperator.AND else ' OR '
        parts = [node.parenthesized() for node in nodes]
        return SQLClause(f"({connective.join(parts)})", params, grouped=True)

    def _conjoin_field(self, nodes: List[SQLClause]) -> SQLClause:
        parts = [f"({node.text})" if node.compound else node.text for node in nodes]
        return SQLClause(f"({' AND '.join(parts)})", _collect_params(nodes), grouped=True)

    def _bind_field(self, field: str, node: SQLClause) -> SQLClause:
        return node

    def _conjoin_document(self, nodes: List[SQLClause]) -> SQLClause:
        if not nodes:
            return EMPTY_CLAUSE
        if len(nodes) == 1:
            return nodes[0]
        text = ' AND '.join(node.text for node in nodes)
        return SQLClause(text, _collect_params(nodes), compound=True)


def convert_filter_to_sql(filters, **options) -> Tuple[str, List[Any]]:
    """
    Convert a MongoDB-style filter to a SQL WHERE clause.

    >>> convert_filter_to_sql({"age": 25, "name": "/john/"})
    ('age = ? AND name LIKE ?', [25, '%john%'])
    """
    return SQLFilterTranslator(**options).translate(filters)
