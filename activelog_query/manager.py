"""FastAPI dependency tying parsing, validation, query building and pagination together."""

import logging
from typing import Annotated, Any, Dict, List, Optional

from fastapi import Depends, Request
from sqlmodel import Session
from sqlmodel.ext.asyncio.session import AsyncSession

from activelog_query.config import ValidationConfig, ValidationPresets
from activelog_query.errors import QueryValidationError
from activelog_query.models import FilterCondition, JoinConfig, PaginatedResult, QueryOptions
from activelog_query.parser import parse_request
from activelog_query.query import QueryBuilder
from activelog_query.relationships import RegistryManager, RelationshipRegistry
from activelog_query.validator import QueryValidator

logger = logging.getLogger(__name__)


class QueryManager:
    """
    Request-scoped query manager.

    Holds the query description parsed from the request and runs the
    validate, build, count, fetch and wrap steps of a list endpoint.

    Example:
        @app.get("/activities")
        def list_activities(
            user_id: int,
            session: Session = Depends(get_session),
            qm: QueryManager = Depends(QueryManager),
        ):
            return qm.with_conditions(CommonFilters.owned_by(user_id)).generate_response(
                session,
                "activities",
                config=ValidationPresets.activities(),
                registry=activities_registry(),
            )
    """

    def __init__(
        self,
        request: Request,
        options: Annotated[QueryOptions, Depends(parse_request)],
    ):
        """
        Initialize QueryManager.

        Args:
            request: FastAPI Request object
            options: Query description parsed from the query string
        """
        self.request = request
        self.options = options

    def with_conditions(self, conditions: Optional[List[FilterCondition]]) -> "QueryManager":
        """
        Append server-side conditions, e.g. the authenticated user's scope.

        Args:
            conditions: Conditions to add

        Returns:
            QueryManager: Self for chaining
        """
        for condition in conditions or []:
            self.options.add_condition(condition.column, condition.operator, condition.value)
        return self

    def validate(self, config: ValidationConfig) -> "QueryManager":
        """
        Validate the query description.

        Args:
            config: Whitelists and bounds of the endpoint

        Returns:
            QueryManager: Self for chaining

        Raises:
            HTTPException: 400 when the description is rejected
        """
        try:
            QueryValidator(config).validate(self.options)
        except QueryValidationError as e:
            logger.warning("rejected query for %s: %s", self.request.url.path, e.message)
            raise e.to_http_exception() from e
        return self

    def builder(
        self,
        table_name: str,
        registry: Optional[RelationshipRegistry] = None,
        manager: Optional[RegistryManager] = None,
        joins: Optional[List[JoinConfig]] = None,
    ) -> QueryBuilder:
        """
        Query builder for the held description.

        Args:
            table_name: Main table
            registry: Relationship registry of the table
            manager: Registries of other tables
            joins: Explicit JOINs, overriding the registry

        Returns:
            QueryBuilder: Builder for the data and count queries
        """
        return QueryBuilder(table_name, self.options, joins=joins, registry=registry, manager=manager)

    def generate_response(
        self,
        session: Session,
        table_name: str,
        config: Optional[ValidationConfig] = None,
        registry: Optional[RelationshipRegistry] = None,
        manager: Optional[RegistryManager] = None,
    ) -> PaginatedResult[Dict[str, Any]]:
        """
        Validate, count, fetch and wrap one page.

        Args:
            session: Database session
            table_name: Main table
            config: Validation config; ValidationPresets.default() when None
            registry: Relationship registry of the table
            manager: Registries of other tables

        Returns:
            PaginatedResult: Rows plus pagination metadata
        """
        self.validate(config if config is not None else ValidationPresets.default())
        builder = self.builder(table_name, registry=registry, manager=manager)
        return builder.pagination.paginate(session, builder)

    async def generate_response_async(
        self,
        session: AsyncSession,
        table_name: str,
        config: Optional[ValidationConfig] = None,
        registry: Optional[RelationshipRegistry] = None,
        manager: Optional[RegistryManager] = None,
    ) -> PaginatedResult[Dict[str, Any]]:
        """
        Async version of generate_response.

        Args:
            session: Async database session
            table_name: Main table
            config: Validation config; ValidationPresets.default() when None
            registry: Relationship registry of the table
            manager: Registries of other tables

        Returns:
            PaginatedResult: Rows plus pagination metadata
        """
        self.validate(config if config is not None else ValidationPresets.default())
        builder = self.builder(table_name, registry=registry, manager=manager)
        return await builder.pagination.paginate_async(session, builder)
