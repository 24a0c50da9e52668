"""Exceptions raised by the query engine."""

from typing import Optional

from fastapi import HTTPException, status


class QueryError(Exception):
    """Base class for query engine errors."""


class QueryValidationError(QueryError, ValueError):
    """
    A query description was rejected by the validator.

    Callers must answer with a bad-request response and must not run the query.

    Attributes:
        column: Offending column, if any
        operator: Offending operator, if any
        bound: Name of the violated bound (page, limit, scope), if any
    """

    def __init__(
        self,
        message: str,
        *,
        column: Optional[str] = None,
        operator: Optional[str] = None,
        bound: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.column = column
        self.operator = operator
        self.bound = bound

    def to_http_exception(self) -> HTTPException:
        """Map the rejection to a 400 response."""
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=self.message)


class QueryBuildError(QueryError, RuntimeError):
    """SQL assembly failed; indicates an invariant violation rather than bad input."""
