"""Query description models"""

from enum import StrEnum
from typing import Any, Dict, Generic, Iterator, List, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class FilterOperator(StrEnum):
    """Filter operators"""

    EQ = "eq"  # equals (=)
    NE = "ne"  # not equals (!=)
    GT = "gt"  # greater than (>)
    GTE = "gte"  # greater than or equal (>=)
    LT = "lt"  # less than (<)
    LTE = "lte"  # less than or equal (<=)


class SortingOrder(StrEnum):
    """Sorting orders"""

    ASC = "ASC"
    DESC = "DESC"


# Every value a filter, search term or condition can carry.
FilterValue = Union[bool, int, float, str, None, List[str]]

T = TypeVar("T")


class FilterCondition(BaseModel):
    """A single column/operator/value comparison.

    The operator is kept as the raw string taken from the request so that
    unknown operators survive parsing and are rejected by the validator.
    """

    column: str
    operator: str
    value: FilterValue = None


class OrderClause(BaseModel):
    """One ``ORDER BY`` entry"""

    column: str
    direction: str = SortingOrder.ASC.value


class QueryOptions(BaseModel):
    """
    Parsed filtering, searching, sorting and pagination request.

    ``order`` is an ordered list of clauses; a ``{column: direction}`` mapping
    is accepted on input and keeps its insertion order.

    Example:
        opts = QueryOptions(
            page=2,
            limit=20,
            filter={"activity_type": "running"},
            search={"title": "morning"},
            order={"created_at": "DESC"},
        )
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page: int = 1
    limit: int = 10
    filter: Dict[str, FilterValue] = Field(default_factory=dict)
    filter_conditions: List[FilterCondition] = Field(default_factory=list)
    filter_or: Dict[str, FilterValue] = Field(default_factory=dict)
    search: Dict[str, FilterValue] = Field(default_factory=dict)
    order: List[OrderClause] = Field(default_factory=list)

    @field_validator("order", mode="before")
    @classmethod
    def _order_from_mapping(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return [{"column": column, "direction": direction} for column, direction in value.items()]
        return value

    def add_condition(self, column: str, operator: str, value: FilterValue) -> "QueryOptions":
        """
        Append an operator filter, mirroring ``eq`` conditions into ``filter``.

        Args:
            column: Column to compare
            operator: Operator name (eq, ne, gt, gte, lt, lte)
            value: Value to compare against

        Returns:
            QueryOptions: Self for chaining
        """
        self.filter_conditions.append(
            FilterCondition(column=column, operator=operator, value=value)
        )
        if operator == FilterOperator.EQ:
            self.filter[column] = value
        return self

    def add_order(self, column: str, direction: str = SortingOrder.ASC.value) -> "QueryOptions":
        """Append an order clause, replacing an earlier clause on the same column."""
        self.order = [clause for clause in self.order if clause.column != column]
        self.order.append(OrderClause(column=column, direction=direction.upper()))
        return self

    def order_map(self) -> Dict[str, str]:
        """Order clauses as a ``{column: direction}`` mapping."""
        return {clause.column: clause.direction for clause in self.order}

    def referenced_columns(self) -> Iterator[str]:
        """Yield every referenced column: filter, filterOr, conditions, search, order."""
        yield from self.filter
        yield from self.filter_or
        for condition in self.filter_conditions:
            yield condition.column
        yield from self.search
        for clause in self.order:
            yield clause.column


class JoinConfig(BaseModel):
    """
    One SQL JOIN clause.

    ``table`` may carry an alias, either as ``"comments AS parent_comments"`` or
    ``"activity_tags at"``.
    """

    model_config = ConfigDict(frozen=True)

    table: str
    condition: str
    alias: Optional[str] = None

    @property
    def table_name(self) -> str:
        """Base table name without the alias."""
        return self.table.split()[0]

    @property
    def table_alias(self) -> Optional[str]:
        """Alias declared in ``table`` or ``alias``."""
        parts = self.table.split()
        if len(parts) == 3 and parts[1].upper() == "AS":
            return parts[2]
        if len(parts) == 2:
            return parts[1]
        return self.alias

    @property
    def key(self) -> str:
        """Name the joined table is referenced by; used to deduplicate joins."""
        return self.table_alias or self.table_name


class PaginationMeta(BaseModel):
    """Pagination metadata"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page: int
    limit: int
    count: int
    previous_page: Union[int, Literal[False]]
    next_page: Union[int, Literal[False]]
    page_count: int
    total_records: int


class PaginatedResult(BaseModel, Generic[T]):
    """Paginated response envelope"""

    data: List[T]
    meta: PaginationMeta
