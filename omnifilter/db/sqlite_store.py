#!/usr/bin/env python3
"""
Filtered reads over a single SQLite table.
Runs count and list queries built from MongoDB-style filters.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..exceptions import FilterError
from ..filters.base import DEFAULT_MAX_DEPTH
from ..filters.sql_backend import FieldResolver, SQLFilterTranslator
from .db_helpers import with_connection
from .query import (
    QueryParams, build_count_query, build_select_query,
    check_field_name, check_identifier, page_metadata
)


class FilteredTableStore:
    """Reads rows of one table through MongoDB-style filters."""

    def __init__(self,
                 db_path: str,
                 table: str,
                 max_depth: int = DEFAULT_MAX_DEPTH,
                 default_limit: Optional[int] = None,
                 field_resolver: Optional[FieldResolver] = None):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file
            table: Table every query reads from
            max_depth: Maximum filter nesting depth
            default_limit: Page size used when a request gives no limit
            field_resolver: Maps field names to SQL references (default:
                plain column names, anything else is rejected)
        """
        self.db_path = db_path
        self.table = check_identifier(table)
        self.default_limit = default_limit
        self.translator = SQLFilterTranslator(
            field_resolver=field_resolver or check_field_name,
            max_depth=max_depth,
            like_escape=True,
        )
        self.logger = logging.getLogger(__name__)

    @with_connection(writer=False)
    async def count(self, conn, filters: Optional[Mapping[str, Any]] = None) -> int:
        """Count rows matching ``filters`` (all rows when omitted)."""
        try:
            sql, params = build_count_query(self.table, filters, self.translator)
        except FilterError as e:
            self.logger.error(f"Invalid filter for {self.table}: {e}")
            raise

        cursor = await conn.execute(sql, params)
        row = await cursor.fetchone()
        return row[0]

    @with_connection(writer=False)
    async def find(self, conn, params: QueryParams) -> List[Dict[str, Any]]:
        """
        List rows for a request.

        Args:
            params: Filter, sort, selection and pagination

        Returns:
            List of row dictionaries
        """
        try:
            sql, values = build_select_query(
                self.table, params, self.translator, self.default_limit
            )
        except FilterError as e:
            self.logger.error(f"Invalid filter for {self.table}: {e}")
            raise

        self.logger.debug(f"Running {sql} with {values}")
        cursor = await conn.execute(sql, values)
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def find_page(self, params: QueryParams) -> Dict[str, Any]:
        """
        List rows together with pagination metadata.

        Returns:
            ``{"_metadata": {...}, "data": [...]}``
        """
        rows = await self.find(params)
        matched = await self.count(params.filter)
        total = await self.count()

        self.logger.info(
            f"Listed {len(rows)} of {matched} matching rows from {self.table}"
        )
        return {
            '_metadata': page_metadata(params, matched, total),
            'data': rows,
        }
