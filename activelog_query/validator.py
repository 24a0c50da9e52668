"""Whitelist validation of query descriptions."""

import re
from typing import Iterable, List

from activelog_query.config import MAX_IDENTIFIER_LENGTH, ValidationConfig
from activelog_query.errors import QueryValidationError
from activelog_query.models import FilterOperator, QueryOptions, SortingOrder

_IDENTIFIER = re.compile(r"[A-Za-z][A-Za-z0-9_.]*")
_KNOWN_OPERATORS = frozenset(op.value for op in FilterOperator)


def _contains(allowed: Iterable[str], column: str) -> bool:
    """Case-insensitive whitelist membership."""
    lowered = column.lower()
    return any(item.lower() == lowered for item in allowed)


def validate_column_name(column: str) -> None:
    """
    Check that a column reference is a safe SQL identifier.

    A column must start with a letter, contain only letters, digits,
    underscores and dots, and be at most 63 characters long.

    Args:
        column: Column reference, optionally dot-qualified

    Raises:
        QueryValidationError: If the name is not a safe identifier
    """
    if not column:
        raise QueryValidationError("column name cannot be empty", column=column)
    if len(column) > MAX_IDENTIFIER_LENGTH:
        raise QueryValidationError(
            f"column name too long (max {MAX_IDENTIFIER_LENGTH} characters)", column=column
        )
    if not _IDENTIFIER.fullmatch(column):
        raise QueryValidationError(f"invalid column name: {column!r}", column=column)


def validate_order_direction(direction: str) -> None:
    """
    Check that an order direction is ASC or DESC (case-insensitive).

    Raises:
        QueryValidationError: For any other value
    """
    if direction.upper() not in (SortingOrder.ASC, SortingOrder.DESC):
        raise QueryValidationError(
            f"invalid order direction: {direction} (must be ASC or DESC)"
        )


def sanitize_search_term(term: str) -> str:
    """
    Escape LIKE wildcards in a search term.

    The term is bound as a parameter anyway; escaping stops users from
    injecting their own ``%`` and ``_`` patterns.

    Example:
        "100%_done" -> "100\\%\\_done"
    """
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class QueryValidator:
    """
    Validates a QueryOptions against a per-endpoint ValidationConfig.

    Validation never mutates the options and stops at the first violation.
    """

    def __init__(self, config: ValidationConfig):
        """
        Initialize QueryValidator.

        Args:
            config: Whitelists and bounds to enforce
        """
        self.config = config

    def validate(self, options: QueryOptions) -> None:
        """
        Validate a query description.

        Args:
            options: Parsed query description

        Raises:
            QueryValidationError: Naming the offending column, operator or bound
        """
        for column in options.referenced_columns():
            validate_column_name(column)

        self._validate_filter_columns(list(options.filter) + list(options.filter_or))
        self._validate_search_columns(list(options.search))
        self._validate_order(options)
        self._validate_bounds(options)
        self._validate_scope(options)
        self._validate_conditions(options)

    def is_valid(self, options: QueryOptions) -> bool:
        """Return True if ``options`` passes validation."""
        try:
            self.validate(options)
        except QueryValidationError:
            return False
        return True

    def _validate_filter_columns(self, columns: List[str]) -> None:
        for column in columns:
            if not _contains(self.config.allowed_filter_columns, column):
                raise QueryValidationError(
                    f"filtering on column '{column}' is not allowed", column=column
                )

    def _validate_search_columns(self, columns: List[str]) -> None:
        for column in columns:
            if not _contains(self.config.allowed_search_columns, column):
                raise QueryValidationError(
                    f"searching on column '{column}' is not allowed", column=column
                )

    def _validate_order(self, options: QueryOptions) -> None:
        for clause in options.order:
            if not _contains(self.config.allowed_order_columns, clause.column):
                raise QueryValidationError(
                    f"ordering by column '{clause.column}' is not allowed", column=clause.column
                )
        for clause in options.order:
            try:
                validate_order_direction(clause.direction)
            except QueryValidationError as e:
                raise QueryValidationError(
                    f"invalid order direction for column '{clause.column}': {e.message}",
                    column=clause.column,
                ) from e

    def _validate_bounds(self, options: QueryOptions) -> None:
        if options.page < 1:
            raise QueryValidationError("page must be at least 1", bound="page")
        if options.limit < 1:
            raise QueryValidationError("limit must be at least 1", bound="limit")
        if options.limit > self.config.max_page_size:
            raise QueryValidationError(
                f"limit cannot exceed {self.config.max_page_size}", bound="limit"
            )

    def _validate_scope(self, options: QueryOptions) -> None:
        if not self.config.require_scope_filter:
            return
        if self.config.scope_column not in options.filter:
            raise QueryValidationError(
                f"{self.config.scope_column} filter is required for multi-tenant queries",
                column=self.config.scope_column,
                bound="scope",
            )

    def _validate_conditions(self, options: QueryOptions) -> None:
        for condition in options.filter_conditions:
            if condition.operator not in _KNOWN_OPERATORS:
                raise QueryValidationError(
                    f"unknown operator '{condition.operator}'",
                    column=condition.column,
                    operator=condition.operator,
                )
            if not _contains(self.config.allowed_filter_columns, condition.column):
                raise QueryValidationError(
                    f"filtering on column '{condition.column}' is not allowed",
                    column=condition.column,
                )
            allowed = self.config.operators_for(condition.column)
            if condition.operator not in allowed:
                raise QueryValidationError(
                    f"operator '{condition.operator}' is not allowed for column "
                    f"'{condition.column}' (allowed: {', '.join(allowed)})",
                    column=condition.column,
                    operator=condition.operator,
                )
