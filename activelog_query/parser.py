"""Parser for bracket-notation query parameters."""

import math
import re
from typing import Any, Iterable, Iterator, List, Mapping, Tuple, Union

from fastapi import Request

from activelog_query.config import DEFAULT_LIMIT, DEFAULT_PAGE
from activelog_query.models import FilterOperator, FilterValue, QueryOptions

ParamSource = Union[Mapping[str, Any], Iterable[Tuple[str, str]]]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")
_INTEGER = re.compile(r"[+-]?\d+")


def extract_bracket_levels(key: str) -> List[str]:
    """
    Split a bracketed parameter key into its levels.

    Examples:
        "filter[status]"          -> ["filter", "status"]
        "filter[created_at][gte]" -> ["filter", "created_at", "gte"]
        "filter[status"           -> []

    Args:
        key: Raw parameter key

    Returns:
        List[str]: Levels, or an empty list when a bracket is left open
    """
    first = key.find("[")
    if first == -1:
        return [key]

    levels = []
    prefix = key[:first]
    if prefix:
        levels.append(prefix)

    remaining = key[first:]
    while remaining.startswith("["):
        close = remaining.find("]")
        if close == -1:
            return []
        content = remaining[1:close]
        if content:
            levels.append(content)
        remaining = remaining[close + 1 :]
    return levels


def convert_value(raw: str) -> FilterValue:
    """
    Coerce a raw parameter string to a typed value.

    ``true``/``false`` become booleans, ``null`` becomes None, ``[a,b]`` becomes a
    list of strings, then integers and floats are tried; anything else stays a
    (trimmed) string.

    Args:
        raw: Raw string value

    Returns:
        FilterValue: Coerced value
    """
    val = raw.strip()
    if val == "true":
        return True
    if val == "false":
        return False
    if val == "null":
        return None
    if val.startswith("[") and val.endswith("]"):
        inner = val.strip("[]")
        if not inner:
            return []
        return [part.strip() for part in inner.split(",")]
    if _INTEGER.fullmatch(val):
        return int(val)
    if "_" in val:
        return val
    try:
        number = float(val)
    except ValueError:
        return val
    # "nan" and "inf" are words, not numbers, for a query string
    if math.isnan(number) or math.isinf(number):
        return val
    return number


def parse_array_value(raw: str) -> List[str]:
    """
    Split a comma-separated value, dropping empty items.

    Example:
        "running, cycling,,swimming" -> ["running", "cycling", "swimming"]
    """
    return [item.strip() for item in raw.split(",") if item.strip()]


def normalize_column_name(name: str) -> str:
    """
    Convert a camelCase column name to snake_case.

    Example:
        "activityType" -> "activity_type"
    """
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _parse_positive_int(raw: str, default: int) -> int:
    raw = raw.strip()
    if not _INTEGER.fullmatch(raw):
        return default
    number = int(raw)
    return number if number > 0 else default


def _iter_params(params: ParamSource) -> Iterator[Tuple[str, str]]:
    """Yield (key, first value) pairs in first-seen order."""
    if hasattr(params, "multi_items"):
        items = params.multi_items()
    elif isinstance(params, Mapping):
        items = []
        for key, value in params.items():
            if isinstance(value, (list, tuple)):
                if not value:
                    continue
                value = value[0]
            items.append((key, value))
    else:
        items = params

    seen = set()
    for key, value in items:
        if key in seen:
            continue
        seen.add(key)
        yield key, str(value)


def parse_query_params(params: ParamSource) -> QueryOptions:
    """
    Parse wire parameters into a QueryOptions.

    Supported formats:
        page=2&limit=20
        filter[activity_type]=running          AND equality
        filter[distance_km][lt]=10             operator filter
        filterOr[activity_type]=cycling        OR equality
        search[title]=morning                  ILIKE search
        order[created_at]=desc                 sorting

    Parsing never fails: malformed page/limit fall back to defaults and
    unrecognised keys are ignored. Validation is a separate step.

    Args:
        params: Mapping, starlette QueryParams, or iterable of (key, value) pairs

    Returns:
        QueryOptions: Parsed query description
    """
    opts = QueryOptions(page=DEFAULT_PAGE, limit=DEFAULT_LIMIT)

    for key, raw in _iter_params(params):
        if key == "page":
            opts.page = _parse_positive_int(raw, DEFAULT_PAGE)
            continue
        if key == "limit":
            opts.limit = _parse_positive_int(raw, DEFAULT_LIMIT)
            continue
        if "[" not in key or "]" not in key:
            continue

        levels = extract_bracket_levels(key)

        if len(levels) == 3 and levels[0] == "filter":
            _, column, operator = levels
            opts.add_condition(column, operator, convert_value(raw))
        elif len(levels) == 2:
            prefix, column = levels
            if prefix == "filter":
                opts.add_condition(column, FilterOperator.EQ.value, convert_value(raw))
            elif prefix == "filterOr":
                opts.filter_or[column] = convert_value(raw)
            elif prefix == "search":
                opts.search[column] = convert_value(raw)
            elif prefix == "order":
                opts.add_order(column, raw.strip())

    return opts


def parse_request(request: Request) -> QueryOptions:
    """
    FastAPI dependency parsing the request's query string.

    Example:
        @app.get("/activities")
        def list_activities(opts: QueryOptions = Depends(parse_request)):
            ...
    """
    return parse_query_params(request.query_params)
