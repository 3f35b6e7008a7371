"""
MongoDB-style filter translation.

This module converts MongoDB-style filter documents into the two forms a
relational data layer consumes: a parameterized SQL WHERE clause, or an
operator tree keyed by the caller's own operator tokens.

Example usage:
    from omnifilter.filters import SQLFilterTranslator, OperatorTreeTranslator

    filters = {
        "$and": [
            {"age": {"$gte": 18}},
            {"$or": [
                {"status": "active"},
                {"status": "pending"}
            ]}
        ]
    }

    # SQL form
    where_clause, params = SQLFilterTranslator().translate(filters)
    # '((age >= ?) AND ((status = ?) OR (status = ?)))', [18, 'active', 'pending']

    # Operator tree form
    tree = OperatorTreeTranslator(tokens).translate(filters)
"""

from .base import (
    FilterOperator,
    FilterTranslator,
    map_operator,
)
from .patterns import LikePattern, PatternSource, compile_pattern, is_slash_pattern
from .sql_backend import (
    JSONFieldResolver,
    SQLClause,
    SQLFilterTranslator,
    convert_filter_to_sql,
)
from .tree_backend import OperatorTreeTranslator, convert_filter_to_tree
from ..exceptions import (
    FilterError,
    FilterDepthError,
    UnsupportedOperatorError,
    InvalidOperandShapeError,
    InvalidFilterShapeError,
)

__all__ = [
    # Core classes
    'FilterOperator',
    'FilterTranslator',
    'map_operator',

    # Patterns
    'LikePattern',
    'PatternSource',
    'compile_pattern',
    'is_slash_pattern',

    # Backends
    'SQLClause',
    'SQLFilterTranslator',
    'JSONFieldResolver',
    'OperatorTreeTranslator',
    'convert_filter_to_sql',
    'convert_filter_to_tree',

    # Errors
    'FilterError',
    'FilterDepthError',
    'UnsupportedOperatorError',
    'InvalidOperandShapeError',
    'InvalidFilterShapeError',
]
