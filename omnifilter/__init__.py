"""
omnifilter
MongoDB-style filter translation for relational data layers.
"""

from .filters import (
    FilterOperator,
    SQLFilterTranslator,
    OperatorTreeTranslator,
    JSONFieldResolver,
    convert_filter_to_sql,
    convert_filter_to_tree,
)
from .exceptions import (
    FilterError,
    FilterDepthError,
    UnsupportedOperatorError,
    InvalidOperandShapeError,
    InvalidFilterShapeError,
)
from .config import Config

__version__ = "1.0.0"

__all__ = [
    "FilterOperator",
    "SQLFilterTranslator",
    "OperatorTreeTranslator",
    "JSONFieldResolver",
    "convert_filter_to_sql",
    "convert_filter_to_tree",
    "FilterError",
    "FilterDepthError",
    "UnsupportedOperatorError",
    "InvalidOperandShapeError",
    "InvalidFilterShapeError",
    "Config",
]
