"""
Database helpers built on translated filters.
"""

from .db_helpers import aconnect, with_connection
from .query import (
    QueryParams,
    build_count_query,
    check_field_name,
    build_order_by,
    build_select_query,
    page_metadata,
    renumber_placeholders,
)
from .sqlite_store import FilteredTableStore

__all__ = [
    'aconnect',
    'with_connection',
    'QueryParams',
    'build_count_query',
    'check_field_name',
    'build_order_by',
    'build_select_query',
    'page_metadata',
    'renumber_placeholders',
    'FilteredTableStore',
]
