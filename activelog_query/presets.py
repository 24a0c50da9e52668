"""Common filter presets for frequently used activity-log query patterns."""

from datetime import datetime, timedelta
from typing import List, Optional, Union

from dateutil.parser import parse as parse_datetime

from activelog_query.models import FilterCondition, FilterOperator

DateLike = Union[datetime, str]


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    return parse_datetime(value)


class CommonFilters:
    """
    Pre-defined condition presets for common query patterns.

    Example usage:
        from activelog_query.presets import CommonFilters

        options = (
            QueryOptionsBuilder()
            .add_conditions(CommonFilters.owned_by(42))
            .add_conditions(CommonFilters.recent(days=7))
            .build()
        )

        # Combine presets
        conditions = CommonFilters.not_deleted() + CommonFilters.recent(days=30)
    """

    @staticmethod
    def owned_by(user_id: int, column: str = "user_id") -> List[FilterCondition]:
        """
        Scope records to one owner.

        Args:
            user_id: Owner id
            column: Owner column (default: "user_id")

        Returns:
            List[FilterCondition]: Equality condition on the owner column
        """
        return [FilterCondition(column=column, operator=FilterOperator.EQ, value=user_id)]

    @staticmethod
    def not_deleted(column: str = "deleted_at") -> List[FilterCondition]:
        """
        Filter out soft-deleted records.

        Args:
            column: Soft-delete timestamp column (default: "deleted_at")

        Returns:
            List[FilterCondition]: ``IS NULL`` condition
        """
        return [FilterCondition(column=column, operator=FilterOperator.EQ, value=None)]

    @staticmethod
    def recent(
        days: int = 30,
        column: str = "created_at",
        reference_time: Optional[datetime] = None,
    ) -> List[FilterCondition]:
        """
        Filter for records created in the last N days.

        Args:
            days: Number of days to look back (default: 30)
            column: Timestamp column (default: "created_at")
            reference_time: Reference time for calculation (default: now)

        Returns:
            List[FilterCondition]: Conditions for recent records
        """
        if reference_time is None:
            reference_time = datetime.now()
        cutoff = (reference_time - timedelta(days=days)).isoformat()
        return [FilterCondition(column=column, operator=FilterOperator.GTE, value=cutoff)]

    @staticmethod
    def older_than(
        days: int = 30,
        column: str = "created_at",
        reference_time: Optional[datetime] = None,
    ) -> List[FilterCondition]:
        """
        Filter for records created more than N days ago.

        Args:
            days: Number of days threshold (default: 30)
            column: Timestamp column (default: "created_at")
            reference_time: Reference time for calculation (default: now)

        Returns:
            List[FilterCondition]: Conditions for older records
        """
        if reference_time is None:
            reference_time = datetime.now()
        cutoff = (reference_time - timedelta(days=days)).isoformat()
        return [FilterCondition(column=column, operator=FilterOperator.LT, value=cutoff)]

    @staticmethod
    def date_range(
        column: str = "created_at",
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
    ) -> List[FilterCondition]:
        """
        Filter for records within a date range.

        Args:
            column: Timestamp column (default: "created_at")
            start: Start of range (inclusive), datetime or date string
            end: End of range (inclusive), datetime or date string

        Returns:
            List[FilterCondition]: Conditions for the range

        Raises:
            ValueError: If neither start nor end is provided, or a string cannot be parsed
        """
        if start is None and end is None:
            raise ValueError("At least one of start or end must be provided")

        conditions = []
        if start is not None:
            conditions.append(
                FilterCondition(
                    column=column,
                    operator=FilterOperator.GTE,
                    value=_as_datetime(start).isoformat(),
                )
            )
        if end is not None:
            conditions.append(
                FilterCondition(
                    column=column,
                    operator=FilterOperator.LTE,
                    value=_as_datetime(end).isoformat(),
                )
            )
        return conditions
