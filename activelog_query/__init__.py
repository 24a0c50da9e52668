"""activelog-query: filtering, search, sorting, pagination and join resolution for the activity log."""

from . import models as models  # noqa: F401
from .builder import FieldBuilder, QueryOptionsBuilder  # noqa: F401
from .config import OperatorSets, ValidationConfig, ValidationPresets  # noqa: F401
from .errors import QueryBuildError, QueryError, QueryValidationError  # noqa: F401
from .filters import FILTER_STRATEGIES, FilterEngine  # noqa: F401
from .manager import QueryManager  # noqa: F401
from .models import (  # noqa: F401
    FilterCondition,
    FilterOperator,
    JoinConfig,
    OrderClause,
    PaginatedResult,
    PaginationMeta,
    QueryOptions,
    SortingOrder,
)
from .pagination import PaginationEngine, calculate_pagination_meta  # noqa: F401
from .parser import parse_query_params, parse_request  # noqa: F401
from .presets import CommonFilters  # noqa: F401
from .query import QueryBuilder  # noqa: F401
from .registries import (  # noqa: F401
    activities_registry,
    activity_photos_registry,
    comments_registry,
    default_registry_manager,
    tags_registry,
    users_registry,
)
from .relationships import (  # noqa: F401
    AdditionalCondition,
    RegistryManager,
    Relationship,
    RelationshipRegistry,
    RelationshipType,
    many_to_many,
    many_to_one,
    one_to_many,
    polymorphic,
    self_referential,
)
from .sorting import SortEngine  # noqa: F401
from .validator import QueryValidator, sanitize_search_term, validate_column_name  # noqa: F401

__all__ = [
    # Main classes
    "QueryManager",
    "QueryBuilder",
    "QueryValidator",
    # Engines
    "FilterEngine",
    "SortEngine",
    "PaginationEngine",
    # Strategy registry
    "FILTER_STRATEGIES",
    # Parsing and validation
    "parse_query_params",
    "parse_request",
    "validate_column_name",
    "sanitize_search_term",
    "calculate_pagination_meta",
    # Relationships
    "RelationshipRegistry",
    "RegistryManager",
    "Relationship",
    "RelationshipType",
    "AdditionalCondition",
    "one_to_many",
    "many_to_one",
    "many_to_many",
    "self_referential",
    "polymorphic",
    # Activity-log graph
    "activities_registry",
    "tags_registry",
    "comments_registry",
    "activity_photos_registry",
    "users_registry",
    "default_registry_manager",
    # Builder
    "QueryOptionsBuilder",
    "FieldBuilder",
    # Configuration
    "ValidationConfig",
    "ValidationPresets",
    "OperatorSets",
    # Presets
    "CommonFilters",
    # Errors
    "QueryError",
    "QueryValidationError",
    "QueryBuildError",
    # Models
    "QueryOptions",
    "FilterCondition",
    "FilterOperator",
    "OrderClause",
    "SortingOrder",
    "JoinConfig",
    "PaginationMeta",
    "PaginatedResult",
    # Module
    "models",
]
