#!/usr/bin/env python3
"""
Query building around translated filters.

Takes the already-decoded parameters of a list request (filter, sort,
field selection, pagination) and assembles complete SELECT and COUNT
statements from them.
"""

import json
import re
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..exceptions import InvalidFilterShapeError, InvalidOperandShapeError
from ..filters.sql_backend import SQLFilterTranslator

ASCENDING_VALUES = (1, 'asc', 'ASC')

PLACEHOLDER_STYLES = ('qmark', 'numeric')

# Quoted spans first so a '?' inside them is consumed whole
_PLACEHOLDER_OR_QUOTED = re.compile(r"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"|\?")

_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$')


@dataclass
class QueryParams:
    """Filter, sort, field selection and pagination of one list request."""
    filter: Dict[str, Any] = field(default_factory=dict)
    sort: Dict[str, Any] = field(default_factory=dict)
    select: List[str] = field(default_factory=list)
    limit: Optional[int] = None
    skip: int = 0
    metadata: bool = False

    @classmethod
    def from_request(cls, params: Mapping[str, Any]) -> 'QueryParams':
        """
        Build query parameters from request values.

        ``filter`` and ``sort`` may be mappings or JSON strings; ``sort``
        also accepts ``"-age,name"``. ``select`` may be a list or a
        comma-separated string.

        Raises:
            InvalidFilterShapeError: If filter or sort JSON is malformed
            InvalidOperandShapeError: If limit or skip is not an integer
        """
        filters = params.get('filter') or {}
        if isinstance(filters, str):
            filters = _decode_json('filter', filters)
        if not isinstance(filters, Mapping):
            raise InvalidFilterShapeError("filter must be a JSON object")

        return cls(
            filter=dict(filters),
            sort=_parse_sort(params.get('sort')),
            select=_parse_select(params.get('select')),
            limit=_parse_int('limit', params.get('limit')),
            skip=_parse_int('skip', params.get('skip')) or 0,
            metadata=_parse_flag(params.get('metadata', params.get('count'))),
        )


def _decode_json(name: str, raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidFilterShapeError(f"{name} is not valid JSON: {e}") from e


def _parse_sort(raw: Any) -> Dict[str, Any]:
    if not raw:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if not isinstance(raw, str):
        raise InvalidFilterShapeError("sort must be an object or a string")

    raw = raw.strip()
    if raw.startswith('{'):
        decoded = _decode_json('sort', raw)
        if not isinstance(decoded, Mapping):
            raise InvalidFilterShapeError("sort must be a JSON object")
        return dict(decoded)

    sort = {}
    for name in filter(None, (part.strip() for part in raw.split(','))):
        if name.startswith('-'):
            sort[name[1:]] = -1
        else:
            sort[name.lstrip('+')] = 1
    return sort


def _parse_select(raw: Any) -> List[str]:
    if not raw:
        return []
    if isinstance(raw, str):
        return [name.strip() for name in raw.split(',') if name.strip()]
    return list(raw)


def _parse_int(name: str, raw: Any) -> Optional[int]:
    if raw is None or raw == '':
        return None
    if isinstance(raw, bool):
        raise InvalidOperandShapeError(name, f"{name} must be an integer")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidOperandShapeError(name, f"{name} must be an integer, got {raw!r}") from None


def _parse_flag(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in ('1', 'true', 'yes')
    return bool(raw)


def check_identifier(name: str) -> str:
    """Reject table or column names that are not plain identifiers."""
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def check_field_name(name: str) -> str:
    """
    Field resolver that only lets plain column names into the SQL.

    Raises:
        InvalidFilterShapeError: If a filter key is not a plain identifier
    """
    try:
        return check_identifier(name)
    except ValueError:
        raise InvalidFilterShapeError(f"Invalid field name: {name!r}") from None


def build_order_by(sort: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """
    Turn a sort mapping into (field, direction) pairs.

    ``1``, ``'asc'`` and ``'ASC'`` sort ascending; any other value sorts
    descending.
    """
    return [
        (name, 'ASC' if direction in ASCENDING_VALUES else 'DESC')
        for name, direction in sort.items()
    ]


def build_select_query(table: str,
                       params: QueryParams,
                       translator: Optional[SQLFilterTranslator] = None,
                       default_limit: Optional[int] = None) -> Tuple[str, List[Any]]:
    """
    Build a SELECT statement for a list request.

    Args:
        table: Table to select from
        params: Parsed request parameters
        translator: Filter translator (default: plain SQLFilterTranslator)
        default_limit: Limit used when the request gives none; ``None`` or
            ``-1`` means unlimited

    Returns:
        Tuple of (sql, parameters)
    """
    translator = translator or SQLFilterTranslator()

    columns = ', '.join(check_identifier(name) for name in params.select) or '*'
    sql = f"SELECT {columns} FROM {check_identifier(table)}"

    where_clause, values = translator.translate(params.filter)
    if where_clause:
        sql += f" WHERE {where_clause}"

    order = build_order_by(params.sort)
    if order:
        sql += " ORDER BY " + ', '.join(
            f"{translator.field_reference(check_identifier(name))} {direction}"
            for name, direction in order
        )

    limit = params.limit if params.limit is not None else default_limit
    if limit and limit != -1:
        sql += " LIMIT ? OFFSET ?"
        values.extend([limit, params.skip or 0])

    return sql, values


def build_count_query(table: str,
                      filters: Optional[Mapping[str, Any]] = None,
                      translator: Optional[SQLFilterTranslator] = None) -> Tuple[str, List[Any]]:
    """Build a COUNT(*) statement over the rows matching ``filters``."""
    translator = translator or SQLFilterTranslator()

    sql = f"SELECT COUNT(*) FROM {check_identifier(table)}"
    where_clause, values = translator.translate(filters)
    if where_clause:
        sql += f" WHERE {where_clause}"
    return sql, values


def renumber_placeholders(sql: str, style: str = 'numeric') -> str:
    """
    Rewrite ``?`` placeholders for the target database.

    ``qmark`` leaves the text unchanged; ``numeric`` produces ``$1, $2, ...``
    in left-to-right order, matching the parameter list. A ``?`` inside a
    quoted literal or identifier is not a placeholder and is kept.
    """
    if style not in PLACEHOLDER_STYLES:
        raise ValueError(f"Unknown placeholder style: {style}")
    if style == 'qmark':
        return sql

    counter = count(1)

    def replace(match):
        if match.group(0) != '?':
            return match.group(0)
        return f"${next(counter)}"

    return _PLACEHOLDER_OR_QUOTED.sub(replace, sql)


def page_metadata(params: QueryParams, matched: int, total: int) -> Dict[str, Any]:
    """Pagination summary returned alongside a page of rows."""
    return {
        'page': (params.skip or 0) // (params.limit or 1) + 1,
        'count': params.limit,
        'matched': matched,
        'totalCount': total,
    }
