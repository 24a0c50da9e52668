"""Filter engine: JOINs and WHERE clauses with operator strategies."""

import operator
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import ColumnElement, FromClause, Select, bindparam, false, literal_column, or_, table
from sqlalchemy.dialects.postgresql.base import PGDialect

from activelog_query.errors import QueryBuildError, QueryValidationError
from activelog_query.models import FilterCondition, FilterOperator, FilterValue, JoinConfig
from activelog_query.validator import sanitize_search_term, validate_column_name

# $1, $2, ... placeholders
POSTGRES_DIALECT = PGDialect(paramstyle="numeric_dollar")

# Type alias for filter strategy functions
FilterStrategyFn = Callable[[ColumnElement[Any], Any], ColumnElement[bool]]

# Strategy registry: maps FilterOperator -> comparison
FILTER_STRATEGIES: Dict[str, FilterStrategyFn] = {
    FilterOperator.EQ: operator.eq,
    FilterOperator.NE: operator.ne,
    FilterOperator.GT: operator.gt,
    FilterOperator.GTE: operator.ge,
    FilterOperator.LT: operator.lt,
    FilterOperator.LTE: operator.le,
}


def resolve_column(column: str) -> str:
    """
    Translate a dotted column reference into the SQL column it maps to.

    Paths of three or more segments keep their last two, which address the
    aliased joined table; shorter references are unchanged.

    Examples:
        "tags.parent.name" -> "parent.name"
        "tags.name"        -> "tags.name"
        "activity_type"    -> "activity_type"
    """
    segments = column.split(".")
    if len(segments) >= 3:
        return ".".join(segments[-2:])
    return column


def _checked(name: str) -> str:
    try:
        validate_column_name(name)
    except QueryValidationError as e:
        raise QueryBuildError(f"refusing to build SQL: {e.message}") from e
    return name


def sql_column(column: str) -> ColumnElement[Any]:
    """
    Column expression for a (possibly dotted) column reference.

    Raises:
        QueryBuildError: If the resolved name is not a safe identifier
    """
    return literal_column(_checked(resolve_column(column)))


def bind_value(value: FilterValue) -> ColumnElement[Any]:
    """
    Bound parameter for a scalar filter value.

    Raises:
        QueryBuildError: For values outside bool, int, float and str
    """
    if isinstance(value, (bool, int, float, str)):
        return bindparam(None, value)
    raise QueryBuildError(f"unsupported filter value type: {type(value).__name__}")


def _in_list(column: ColumnElement[Any], values: Sequence[Any]) -> ColumnElement[bool]:
    if not values:
        return false()
    return column.in_([bind_value(v) for v in values])


def equality_condition(column: str, value: FilterValue) -> ColumnElement[bool]:
    """
    Equality condition for the legacy filter maps.

    Lists become ``IN (...)`` (an empty list matches nothing), None becomes
    ``IS NULL``, anything else ``= value``.
    """
    col = sql_column(column)
    if value is None:
        return col.is_(None)
    if isinstance(value, list):
        return _in_list(col, value)
    return col == bind_value(value)


def operator_condition(condition: FilterCondition) -> ColumnElement[bool]:
    """
    Condition for an operator filter.

    ``eq``/``ne`` also accept None (``IS [NOT] NULL``) and lists
    (``[NOT] IN``); ordering operators need a scalar.

    Raises:
        QueryBuildError: For an unknown operator or an unusable value
    """
    strategy = FILTER_STRATEGIES.get(condition.operator)
    if strategy is None:
        raise QueryBuildError(
            f"unknown operator '{condition.operator}' for column '{condition.column}'"
        )
    col = sql_column(condition.column)
    value = condition.value

    if value is None or isinstance(value, list):
        if condition.operator == FilterOperator.EQ:
            return col.is_(None) if value is None else _in_list(col, value)
        if condition.operator == FilterOperator.NE:
            return col.is_not(None) if value is None else ~_in_list(col, value)
        raise QueryBuildError(
            f"operator '{condition.operator}' needs a scalar value for column '{condition.column}'"
        )
    return strategy(col, bind_value(value))


def _search_text(value: FilterValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, list):
        return "[" + ",".join(value) + "]"
    return str(value)


def search_condition(column: str, term: FilterValue) -> ColumnElement[bool]:
    """Case-insensitive ``ILIKE '%term%'`` match with LIKE wildcards escaped."""
    pattern = f"%{sanitize_search_term(_search_text(term))}%"
    return sql_column(column).ilike(bindparam(None, pattern))


class FilterEngine:
    """
    Engine for the JOIN and WHERE stages of a query.

    Every stage is a no-op on empty input; values are always bound
    parameters, never SQL text.
    """

    @staticmethod
    def build_from(table_name: str, joins: Optional[List[JoinConfig]]) -> FromClause:
        """
        FROM clause: the main table LEFT JOINed to every configured join.

        Args:
            table_name: Main table
            joins: JOIN clauses, usually from a relationship registry

        Returns:
            FromClause: Table or chain of outer joins
        """
        source: FromClause = table(_checked(table_name))
        for join in joins or []:
            target = table(_checked(join.table_name))
            alias = join.table_alias
            if alias:
                target = target.alias(_checked(alias))
            source = source.outerjoin(target, literal_column(join.condition))
        return source

    @staticmethod
    def apply_filter_conditions(query: Select, conditions: List[FilterCondition]) -> Select:
        """Apply operator filters with AND logic."""
        if not conditions:
            return query
        return query.where(*[operator_condition(c) for c in conditions])

    @staticmethod
    def apply_filters(query: Select, filters: Mapping[str, FilterValue]) -> Select:
        """Apply legacy equality filters with AND logic."""
        if not filters:
            return query
        return query.where(*[equality_condition(col, val) for col, val in filters.items()])

    @staticmethod
    def apply_or_filters(query: Select, filter_or: Mapping[str, FilterValue]) -> Select:
        """Apply equality filters as one OR group."""
        if not filter_or:
            return query
        return query.where(or_(*[equality_condition(col, val) for col, val in filter_or.items()]))

    @staticmethod
    def apply_search(query: Select, search: Mapping[str, FilterValue]) -> Select:
        """Apply search terms as one OR group of ILIKE matches."""
        if not search:
            return query
        return query.where(or_(*[search_condition(col, term) for col, term in search.items()]))
