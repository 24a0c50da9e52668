"""Query builder assembling parameterized PostgreSQL from a query description."""

import logging
from typing import Any, List, Optional, Tuple

from sqlalchemy import Select, func, literal_column, select
from sqlalchemy.exc import SQLAlchemyError

from activelog_query.errors import QueryBuildError
from activelog_query.filters import POSTGRES_DIALECT, FilterEngine
from activelog_query.models import JoinConfig, QueryOptions
from activelog_query.pagination import PaginationEngine
from activelog_query.relationships import RegistryManager, RelationshipRegistry
from activelog_query.sorting import SortEngine

logger = logging.getLogger(__name__)


def compile_statement(statement: Select) -> Tuple[str, List[Any]]:
    """
    Compile a statement to PostgreSQL text and positional arguments.

    Args:
        statement: SQLAlchemy Select

    Returns:
        Tuple[str, List[Any]]: SQL with ``$n`` placeholders and its arguments

    Raises:
        QueryBuildError: If SQLAlchemy cannot compile the statement
    """
    try:
        compiled = statement.compile(dialect=POSTGRES_DIALECT)
        params = compiled.params
        args = [params[name] for name in compiled.positiontup or []]
    except SQLAlchemyError as e:
        raise QueryBuildError(f"failed to build query: {e}") from e
    return str(compiled), args


class QueryBuilder:
    """
    Builds the data and count queries for one query description.

    Orchestrates FilterEngine, SortEngine and PaginationEngine:

    - JOINs (LEFT OUTER) from explicit joins or a relationship registry
    - operator filters, legacy filters, OR filters, search (WHERE)
    - ORDER BY, defaulting to ``created_at DESC``
    - LIMIT/OFFSET

    Example:
        builder = QueryBuilder("activities", options, registry=activities_registry)
        sql, args = builder.build()
        count_sql, count_args = builder.build_count()
    """

    def __init__(
        self,
        table_name: str,
        options: QueryOptions,
        joins: Optional[List[JoinConfig]] = None,
        registry: Optional[RelationshipRegistry] = None,
        manager: Optional[RegistryManager] = None,
    ):
        """
        Initialize QueryBuilder.

        Args:
            table_name: Main table to query
            options: Parsed (and validated) query description
            joins: Explicit JOIN clauses; generated from ``registry`` when None
            registry: Relationship registry of ``table_name``
            manager: Registries of other tables, for multi-hop paths
        """
        self.table_name = table_name
        self.options = options
        if joins is None:
            if registry is None and manager is not None:
                registry = manager.get_registry(table_name)
            joins = registry.generate_joins(options, manager) if registry is not None else []
        self.joins = joins

        self._filter_engine = FilterEngine()
        self._sort_engine = SortEngine(table_name)
        self._pagination_engine = PaginationEngine(options.page, options.limit)

    @property
    def pagination(self) -> PaginationEngine:
        """Pagination engine for the requested page."""
        return self._pagination_engine

    def _apply_where(self, query: Select) -> Select:
        query = query.select_from(FilterEngine.build_from(self.table_name, self.joins))
        query = self._filter_engine.apply_filter_conditions(query, self.options.filter_conditions)
        query = self._filter_engine.apply_filters(query, self.options.filter)
        query = self._filter_engine.apply_or_filters(query, self.options.filter_or)
        query = self._filter_engine.apply_search(query, self.options.search)
        return query

    def select(self) -> Select:
        """
        Data query: ``<table>.*`` with every stage applied.

        Returns:
            Select: Executable SQLAlchemy statement
        """
        query = select(literal_column(f"{self.table_name}.*"))
        query = self._apply_where(query)
        query = self._sort_engine.apply_order(query, self.options.order, bool(self.joins))
        return self._pagination_engine.apply_pagination(query)

    def count(self) -> Select:
        """
        Count query: same FROM and WHERE as ``select()``, no ORDER BY or LIMIT/OFFSET.

        Returns:
            Select: Executable SQLAlchemy statement
        """
        return self._apply_where(select(func.count()))

    def build(self) -> Tuple[str, List[Any]]:
        """
        Compile the data query.

        Returns:
            Tuple[str, List[Any]]: SQL with ``$n`` placeholders and its arguments

        Raises:
            QueryBuildError: On invalid identifiers, operators or values
        """
        sql, args = compile_statement(self.select())
        logger.debug("built query: %s %r", sql, args)
        return sql, args

    def build_count(self) -> Tuple[str, List[Any]]:
        """
        Compile the count query.

        Returns:
            Tuple[str, List[Any]]: SQL with ``$n`` placeholders and its arguments

        Raises:
            QueryBuildError: On invalid identifiers, operators or values
        """
        sql, args = compile_statement(self.count())
        logger.debug("built count query: %s %r", sql, args)
        return sql, args
