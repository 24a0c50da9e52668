"""Sort engine for applying ordering to queries."""

from typing import List

from sqlalchemy import Select

from activelog_query.config import DEFAULT_ORDER_COLUMN
from activelog_query.filters import resolve_column, sql_column
from activelog_query.models import OrderClause, SortingOrder


class SortEngine:
    """
    Engine for the ORDER BY stage.

    Bare column names are qualified with the main table when the query has
    JOINs, so that columns shared with joined tables stay unambiguous.
    """

    def __init__(self, table_name: str, default_column: str = DEFAULT_ORDER_COLUMN):
        """
        Initialize SortEngine.

        Args:
            table_name: Main table of the query
            default_column: Column sorted descending when no order is requested
        """
        self.table_name = table_name
        self.default_column = default_column

    def _qualify(self, column: str, has_joins: bool) -> str:
        if has_joins and "." not in column:
            return f"{self.table_name}.{column}"
        return column

    def apply_order(self, query: Select, order: List[OrderClause], has_joins: bool = False) -> Select:
        """
        Apply sorting to a query.

        Args:
            query: SQLAlchemy Select query
            order: Order clauses, applied in sequence
            has_joins: Whether the query joins other tables

        Returns:
            Select: Query with ORDER BY applied
        """
        if not order:
            column = sql_column(self._qualify(self.default_column, has_joins))
            return query.order_by(column.desc())

        for clause in order:
            column = sql_column(self._qualify(resolve_column(clause.column), has_joins))
            # Unknown directions sort ascending; the validator rejects them earlier
            if clause.direction.upper() == SortingOrder.DESC:
                query = query.order_by(column.desc())
            else:
                query = query.order_by(column.asc())
        return query
