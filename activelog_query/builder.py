"""QueryOptionsBuilder API for creating query descriptions with a fluent interface."""

from datetime import date, datetime
from typing import List, Optional, Union

from activelog_query.models import FilterCondition, FilterOperator, FilterValue, QueryOptions, SortingOrder

Scalar = Union[str, int, float, bool, date, datetime]


class FieldBuilder:
    """
    Builder for a single column's filter conditions.

    Provides a fluent interface for building conditions on a specific column.
    """

    def __init__(self, options_builder: "QueryOptionsBuilder", column: str):
        """
        Initialize FieldBuilder.

        Args:
            options_builder: Parent QueryOptionsBuilder instance
            column: Column name to build conditions for
        """
        self._options_builder = options_builder
        self._column = column

    def _add_condition(self, operator: FilterOperator, value: Scalar) -> "QueryOptionsBuilder":
        """Add a condition and return the parent builder."""
        self._options_builder._options.add_condition(self._column, operator, self._to_value(value))
        return self._options_builder

    @staticmethod
    def _to_value(value: Scalar) -> FilterValue:
        """Convert dates to ISO strings; other scalars pass through."""
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        return value

    def eq(self, value: Scalar) -> "QueryOptionsBuilder":
        """
        Equal to (=). Also recorded as a legacy equality filter.

        Args:
            value: Value to compare against

        Returns:
            QueryOptionsBuilder: Parent builder for chaining
        """
        return self._add_condition(FilterOperator.EQ, value)

    def ne(self, value: Scalar) -> "QueryOptionsBuilder":
        """
        Not equal to (!=).

        Args:
            value: Value to compare against

        Returns:
            QueryOptionsBuilder: Parent builder for chaining
        """
        return self._add_condition(FilterOperator.NE, value)

    def gt(self, value: Scalar) -> "QueryOptionsBuilder":
        """
        Greater than (>).

        Args:
            value: Value to compare against

        Returns:
            QueryOptionsBuilder: Parent builder for chaining
        """
        return self._add_condition(FilterOperator.GT, value)

    def gte(self, value: Scalar) -> "QueryOptionsBuilder":
        """
        Greater than or equal to (>=).

        Args:
            value: Value to compare against

        Returns:
            QueryOptionsBuilder: Parent builder for chaining
        """
        return self._add_condition(FilterOperator.GTE, value)

    def lt(self, value: Scalar) -> "QueryOptionsBuilder":
        """
        Less than (<).

        Args:
            value: Value to compare against

        Returns:
            QueryOptionsBuilder: Parent builder for chaining
        """
        return self._add_condition(FilterOperator.LT, value)

    def lte(self, value: Scalar) -> "QueryOptionsBuilder":
        """
        Less than or equal to (<=).

        Args:
            value: Value to compare against

        Returns:
            QueryOptionsBuilder: Parent builder for chaining
        """
        return self._add_condition(FilterOperator.LTE, value)

    def in_(self, values: List[Scalar]) -> "QueryOptionsBuilder":
        """
        IN list of values (legacy filter).

        Args:
            values: Values to match against

        Returns:
            QueryOptionsBuilder: Parent builder for chaining
        """
        str_values = [str(self._to_value(v)) for v in values]
        self._options_builder._options.filter[self._column] = str_values
        return self._options_builder

    def is_null(self) -> "QueryOptionsBuilder":
        """
        IS NULL check (legacy filter).

        Returns:
            QueryOptionsBuilder: Parent builder for chaining
        """
        self._options_builder._options.filter[self._column] = None
        return self._options_builder


class QueryOptionsBuilder:
    """
    Fluent builder for creating query descriptions.

    Example usage:
        options = (
            QueryOptionsBuilder()
            .where("user_id").eq(42)
            .where("distance_km").gte(5)
            .search("title", "morning")
            .order_by("created_at", "DESC")
            .page(2)
            .limit(20)
            .build()
        )

    This creates a QueryOptions that can be passed to QueryBuilder.
    """

    def __init__(self, options: Optional[QueryOptions] = None):
        """Initialize the builder, optionally starting from existing options."""
        self._options = options.model_copy(deep=True) if options is not None else QueryOptions()

    def where(self, column: str) -> FieldBuilder:
        """
        Start building a condition for a column.

        Args:
            column: Name of the column to filter on

        Returns:
            FieldBuilder: Builder for the column's condition
        """
        return FieldBuilder(self, column)

    def add_conditions(self, conditions: List[FilterCondition]) -> "QueryOptionsBuilder":
        """
        Add multiple conditions at once, e.g. from CommonFilters.

        Args:
            conditions: FilterCondition objects to add

        Returns:
            QueryOptionsBuilder: Self for chaining
        """
        for condition in conditions:
            self._options.add_condition(condition.column, condition.operator, condition.value)
        return self

    def filter_or(self, column: str, value: FilterValue) -> "QueryOptionsBuilder":
        """Add an equality constraint to the OR group."""
        self._options.filter_or[column] = value
        return self

    def search(self, column: str, term: str) -> "QueryOptionsBuilder":
        """Add a case-insensitive substring match to the search group."""
        self._options.search[column] = term
        return self

    def order_by(self, column: str, direction: str = SortingOrder.ASC.value) -> "QueryOptionsBuilder":
        """Append an order clause."""
        self._options.add_order(column, direction)
        return self

    def page(self, page: int) -> "QueryOptionsBuilder":
        self._options.page = page
        return self

    def limit(self, limit: int) -> "QueryOptionsBuilder":
        self._options.limit = limit
        return self

    def build(self) -> QueryOptions:
        """
        Build and return the query description.

        Returns:
            QueryOptions: A copy, so the builder can keep being used
        """
        return self._options.model_copy(deep=True)

    def __len__(self) -> int:
        """Return the number of operator conditions."""
        return len(self._options.filter_conditions)

    def __bool__(self) -> bool:
        """Return True if there are any operator conditions."""
        return bool(self._options.filter_conditions)
