"""Configuration classes for activelog-query."""

from dataclasses import dataclass, field
from typing import Dict, List

from activelog_query.models import FilterOperator

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_ORDER_COLUMN = "created_at"
MAX_PAGE_SIZE = 100
MAX_IDENTIFIER_LENGTH = 63  # PostgreSQL NAMEDATALEN - 1


class OperatorSets:
    """Operator lists for per-column operator whitelists."""

    @staticmethod
    def all() -> List[str]:
        """Every supported operator."""
        return [op.value for op in FilterOperator]

    @staticmethod
    def comparison() -> List[str]:
        """Operators for numeric and date columns."""
        return [op.value for op in FilterOperator]

    @staticmethod
    def equality() -> List[str]:
        """Operators for string columns where ordering is meaningless."""
        return [FilterOperator.EQ.value, FilterOperator.NE.value]

    @staticmethod
    def strict_equality() -> List[str]:
        """Exact match only, for id columns."""
        return [FilterOperator.EQ.value]


@dataclass
class ValidationConfig:
    """
    Per-endpoint whitelist configuration for the query validator.

    Attributes:
        allowed_filter_columns: Columns usable in filter, filterOr and operator filters
        allowed_search_columns: Columns usable in search
        allowed_order_columns: Columns usable in order
        operator_whitelist: Allowed operators per column; columns without an
            entry allow every operator
        max_page_size: Maximum allowed limit (default: 100)
        require_scope_filter: If True, ``scope_column`` must be filtered on
        scope_column: Tenant column enforced by ``require_scope_filter``
            (default: "user_id")

    Example:
        config = ValidationConfig(
            allowed_filter_columns=["activity_type", "distance_km", "user_id"],
            allowed_search_columns=["title"],
            allowed_order_columns=["created_at"],
            operator_whitelist={
                "distance_km": OperatorSets.comparison(),
                "user_id": OperatorSets.strict_equality(),
            },
            max_page_size=50,
            require_scope_filter=True,
        )
    """

    allowed_filter_columns: List[str] = field(default_factory=list)
    allowed_search_columns: List[str] = field(default_factory=list)
    allowed_order_columns: List[str] = field(default_factory=list)
    operator_whitelist: Dict[str, List[str]] = field(default_factory=dict)
    max_page_size: int = MAX_PAGE_SIZE
    require_scope_filter: bool = False
    scope_column: str = "user_id"

    def __post_init__(self):
        """Validate configuration values."""
        if self.max_page_size < 1:
            raise ValueError("max_page_size must be >= 1")
        if self.require_scope_filter and not self.scope_column:
            raise ValueError("scope_column is required when require_scope_filter is set")
        known = set(OperatorSets.all())
        for column, operators in self.operator_whitelist.items():
            unknown = [op for op in operators if op not in known]
            if unknown:
                raise ValueError(
                    f"operator_whitelist for '{column}' contains unknown operators: "
                    f"{', '.join(unknown)}"
                )

    def operators_for(self, column: str) -> List[str]:
        """
        Allowed operators for a column.

        Lookup is case-insensitive; columns without an entry allow every operator.

        Args:
            column: Column name

        Returns:
            List[str]: Allowed operator names
        """
        for name, operators in self.operator_whitelist.items():
            if name.lower() == column.lower():
                return list(operators)
        return OperatorSets.all()


class ValidationPresets:
    """Pre-defined ValidationConfig presets."""

    @staticmethod
    def default() -> ValidationConfig:
        """Timestamp ordering only, tenant scope required."""
        return ValidationConfig(
            allowed_order_columns=["created_at", "updated_at"],
            require_scope_filter=True,
        )

    @staticmethod
    def activities(max_page_size: int = MAX_PAGE_SIZE) -> ValidationConfig:
        """
        Whitelist of the activity list endpoint.

        Args:
            max_page_size: Maximum items per page
        """
        return ValidationConfig(
            allowed_filter_columns=[
                "user_id",
                "activity_type",
                "duration_minutes",
                "distance_km",
                "calories_burned",
                "activity_date",
                "created_at",
                "updated_at",
                "tags.name",
                "tags.id",
            ],
            allowed_search_columns=["title", "description", "notes", "tags.name"],
            allowed_order_columns=[
                "created_at",
                "updated_at",
                "activity_date",
                "duration_minutes",
                "distance_km",
                "calories_burned",
                "tags.name",
            ],
            operator_whitelist={
                "user_id": OperatorSets.strict_equality(),
                "activity_date": OperatorSets.comparison(),
                "distance_km": OperatorSets.comparison(),
                "duration_minutes": OperatorSets.comparison(),
                "calories_burned": OperatorSets.comparison(),
                "created_at": OperatorSets.comparison(),
                "activity_type": OperatorSets.equality(),
                "tags.name": OperatorSets.equality(),
                "tags.id": OperatorSets.strict_equality(),
            },
            max_page_size=max_page_size,
            require_scope_filter=True,
        )
