"""Relationship registries and automatic JOIN resolution for dotted column paths."""

import logging
from dataclasses import dataclass, field, replace
from enum import StrEnum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from sqlalchemy import literal, literal_column

from activelog_query.errors import QueryValidationError
from activelog_query.filters import FILTER_STRATEGIES, POSTGRES_DIALECT
from activelog_query.models import FilterOperator, FilterValue, JoinConfig, QueryOptions

logger = logging.getLogger(__name__)


class RelationshipType(StrEnum):
    """How a parent table reaches a related table"""

    ONE_TO_MANY = "one_to_many"  # users -> activities
    MANY_TO_ONE = "many_to_one"  # activities -> users
    MANY_TO_MANY = "many_to_many"  # activities <-> tags through activity_tags
    SELF_REFERENTIAL = "self_referential"  # tags -> parent tag
    POLYMORPHIC = "polymorphic"  # comments -> activities | tags


@dataclass(frozen=True)
class AdditionalCondition:
    """Static condition ANDed onto a relationship's JOIN clause."""

    column: str
    operator: str = FilterOperator.EQ.value
    value: FilterValue = None

    def render(self) -> str:
        """
        Render the condition as SQL with its value inlined.

        ``None`` renders as ``IS NULL`` (``IS NOT NULL`` for ``ne``).

        Returns:
            str: SQL condition, e.g. ``tags.deleted_at IS NULL``
        """
        column = literal_column(self.column)
        if self.value is None:
            if self.operator == FilterOperator.NE:
                clause = column.is_not(None)
            else:
                clause = column.is_(None)
        else:
            strategy = FILTER_STRATEGIES.get(self.operator)
            if strategy is None:
                raise ValueError(f"unknown operator '{self.operator}' in join condition")
            clause = strategy(column, literal(self.value))
        return str(clause.compile(dialect=POSTGRES_DIALECT, compile_kwargs={"literal_binds": True}))


@dataclass(frozen=True)
class Relationship:
    """
    A named edge from a parent table to a related table.

    Users reference related columns through the relationship name, e.g.
    ``tags.name`` for a relationship named ``tags``. Use the factory functions
    (``many_to_many``, ``many_to_one``...) rather than building one by hand.
    """

    name: str
    type: RelationshipType
    target_table: str = ""
    foreign_key: str = ""
    primary_key: str = "id"
    junction_table: str = ""
    junction_foreign_key: str = ""
    junction_target_key: str = ""
    target_primary_key: str = "id"
    max_depth: int = 1
    type_column: str = ""
    id_column: str = ""
    type_map: Mapping[str, str] = field(default_factory=dict, hash=False)
    conditions: Tuple[AdditionalCondition, ...] = ()

    def with_conditions(self, *conditions: AdditionalCondition) -> "Relationship":
        """
        Return a copy with extra static JOIN conditions.

        Example:
            many_to_many("tags", "tags", "activity_tags", "activity_id", "tag_id")
                .with_conditions(AdditionalCondition("tags.deleted_at", "eq", None))
        """
        return replace(self, conditions=self.conditions + tuple(conditions))

    def resolve_table(self, options: QueryOptions) -> Optional[str]:
        """
        Table this relationship leads to for a given query.

        Polymorphic relationships resolve through the discriminator value in
        ``options.filter``; None when it is missing or unmapped.
        """
        if self.type != RelationshipType.POLYMORPHIC:
            return self.target_table
        discriminator = options.filter.get(self.type_column)
        if not isinstance(discriminator, str):
            return None
        return self.type_map.get(discriminator)

    def build_joins(
        self, parent_ref: str, options: QueryOptions, depth: int = 1
    ) -> Optional[Tuple[List[JoinConfig], str]]:
        """
        JOIN clauses reaching this relationship from ``parent_ref``.

        Args:
            parent_ref: Table name or alias the parent is known by in the query
            options: Query description (polymorphic discriminator lookup)
            depth: Nesting level of a self-referential hop

        Returns:
            Optional[Tuple[List[JoinConfig], str]]: The joins and the name the
            joined table is referenced by, or None if nothing can be joined
        """
        joins: List[JoinConfig]
        if self.type == RelationshipType.MANY_TO_ONE:
            ref = self.target_table
            joins = [
                JoinConfig(
                    table=ref,
                    condition=f"{ref}.{self.target_primary_key} = {parent_ref}.{self.foreign_key}",
                )
            ]
        elif self.type == RelationshipType.ONE_TO_MANY:
            ref = self.target_table
            joins = [
                JoinConfig(
                    table=ref,
                    condition=f"{ref}.{self.foreign_key} = {parent_ref}.{self.primary_key}",
                )
            ]
        elif self.type == RelationshipType.MANY_TO_MANY:
            ref = self.target_table
            junction = self.junction_table
            joins = [
                JoinConfig(
                    table=junction,
                    condition=(
                        f"{junction}.{self.junction_foreign_key} = {parent_ref}.{self.primary_key}"
                    ),
                ),
                JoinConfig(
                    table=ref,
                    condition=(
                        f"{ref}.{self.target_primary_key} = {junction}.{self.junction_target_key}"
                    ),
                ),
            ]
        elif self.type == RelationshipType.SELF_REFERENTIAL:
            if depth > self.max_depth:
                return None
            ref = f"{self.name}_{self.target_table}"
            if depth > 1:
                ref = f"{ref}_{depth}"
            joins = [
                JoinConfig(
                    table=f"{self.target_table} AS {ref}",
                    condition=f"{ref}.{self.target_primary_key} = {parent_ref}.{self.foreign_key}",
                    alias=ref,
                )
            ]
        elif self.type == RelationshipType.POLYMORPHIC:
            ref = self.resolve_table(options)
            if ref is None:
                logger.debug(
                    "polymorphic relationship '%s' has no usable '%s' filter; no join emitted",
                    self.name,
                    self.type_column,
                )
                return None
            joins = [
                JoinConfig(
                    table=ref,
                    condition=f"{ref}.{self.target_primary_key} = {parent_ref}.{self.id_column}",
                )
            ]
        else:
            raise ValueError(f"unsupported relationship type: {self.type}")

        if self.conditions:
            last = joins[-1]
            extra = " AND ".join(condition.render() for condition in self.conditions)
            joins[-1] = last.model_copy(update={"condition": f"{last.condition} AND {extra}"})
        return joins, ref


def one_to_many(name: str, target_table: str, foreign_key: str) -> Relationship:
    """One parent row has many target rows holding ``foreign_key``."""
    return Relationship(
        name=name,
        type=RelationshipType.ONE_TO_MANY,
        target_table=target_table,
        foreign_key=foreign_key,
    )


def many_to_one(name: str, target_table: str, foreign_key: str) -> Relationship:
    """The parent row holds ``foreign_key`` pointing at one target row."""
    return Relationship(
        name=name,
        type=RelationshipType.MANY_TO_ONE,
        target_table=target_table,
        foreign_key=foreign_key,
    )


def many_to_many(
    name: str,
    target_table: str,
    junction_table: str,
    junction_foreign_key: str,
    junction_target_key: str,
) -> Relationship:
    """
    Parent and target rows linked through a junction table.

    Args:
        name: Relationship name used in dotted columns (e.g. "tags")
        target_table: Target table (e.g. "tags")
        junction_table: Junction table (e.g. "activity_tags")
        junction_foreign_key: Junction column referencing the parent (e.g. "activity_id")
        junction_target_key: Junction column referencing the target (e.g. "tag_id")
    """
    return Relationship(
        name=name,
        type=RelationshipType.MANY_TO_MANY,
        target_table=target_table,
        junction_table=junction_table,
        junction_foreign_key=junction_foreign_key,
        junction_target_key=junction_target_key,
    )


def self_referential(name: str, table: str, foreign_key: str, max_depth: int = 3) -> Relationship:
    """
    A table pointing at itself (e.g. a tag's parent tag).

    The joined copy is aliased ``<name>_<table>``; nested hops get a numeric
    suffix and stop past ``max_depth``.
    """
    if max_depth < 1:
        raise ValueError("max_depth must be >= 1")
    return Relationship(
        name=name,
        type=RelationshipType.SELF_REFERENTIAL,
        target_table=table,
        foreign_key=foreign_key,
        max_depth=max_depth,
    )


def polymorphic(
    name: str, type_column: str, id_column: str, type_map: Mapping[str, str]
) -> Relationship:
    """
    A relationship whose target table is picked by a discriminator column.

    Example:
        polymorphic("commentable", "commentable_type", "commentable_id",
                    {"Activity": "activities", "Tag": "tags"})
    """
    return Relationship(
        name=name,
        type=RelationshipType.POLYMORPHIC,
        type_column=type_column,
        id_column=id_column,
        type_map=MappingProxyType(dict(type_map)),
    )


def extract_path(column: str) -> str:
    """
    Relationship path of a dotted column: everything before the last dot.

    Examples:
        "tags.name"                    -> "tags"
        "user.company.department.name" -> "user.company.department"
        "created_at"                   -> ""
    """
    path, dot, _ = column.rpartition(".")
    return path if dot else ""


class RelationshipRegistry:
    """
    Relationships of one parent table.

    A registry is immutable once built; build the whole graph at startup and
    share it between requests.

    Example:
        registry = RelationshipRegistry(
            "activities",
            [
                many_to_many("tags", "tags", "activity_tags", "activity_id", "tag_id"),
                many_to_one("users", "users", "user_id"),
            ],
        )
        joins = registry.generate_joins(options)
    """

    def __init__(self, parent_table: str, relationships: Iterable[Relationship] = ()):
        """
        Initialize RelationshipRegistry.

        Args:
            parent_table: Table the relationships start from
            relationships: Relationships keyed by their name

        Raises:
            ValueError: If two relationships share a name
        """
        by_name: Dict[str, Relationship] = {}
        for rel in relationships:
            if rel.name in by_name:
                raise ValueError(f"duplicate relationship '{rel.name}' on '{parent_table}'")
            by_name[rel.name] = rel
        self.parent_table = parent_table
        self.relationships: Mapping[str, Relationship] = MappingProxyType(by_name)

    def __repr__(self) -> str:
        return f"RelationshipRegistry({self.parent_table!r}, {list(self.relationships)!r})"

    def with_relationships(self, *relationships: Relationship) -> "RelationshipRegistry":
        """Return a new registry with extra relationships."""
        return RelationshipRegistry(
            self.parent_table, list(self.relationships.values()) + list(relationships)
        )

    def get(self, name: str) -> Optional[Relationship]:
        """Relationship registered under ``name``, or None."""
        return self.relationships.get(name)

    @property
    def names(self) -> List[str]:
        """Registered relationship names."""
        return list(self.relationships)

    def validate_column(self, column: str, allowed_columns: Iterable[str]) -> None:
        """
        Check a column against this registry and a whitelist of direct columns.

        Dotted columns starting with a registered relationship are accepted;
        other columns must be whitelisted.

        Raises:
            QueryValidationError: If the column is neither
        """
        head, dot, _ = column.partition(".")
        if dot and head in self.relationships:
            return
        if column in allowed_columns:
            return
        raise QueryValidationError(f"column '{column}' is not in whitelist", column=column)

    def generate_joins(
        self, options: QueryOptions, manager: Optional["RegistryManager"] = None
    ) -> List[JoinConfig]:
        """
        JOINs needed for every dotted column the query references.

        Paths are walked segment by segment; an unknown segment, or a hop into a
        table without a registry, ends the walk for that path silently. Each
        joined table or alias appears once however often it is referenced.

        Args:
            options: Query description
            manager: Registries of other tables, needed for multi-hop paths

        Returns:
            List[JoinConfig]: JOIN clauses in resolution order
        """
        joins: List[JoinConfig] = []
        joined: Set[str] = set()

        paths: List[str] = []
        for column in options.referenced_columns():
            path = extract_path(column)
            if path and path not in paths:
                paths.append(path)

        for path in paths:
            self._resolve_path(path, options, manager, joins, joined)

        if joins:
            logger.debug(
                "resolved %d join(s) for %s: %s",
                len(joins),
                self.parent_table,
                ", ".join(join.key for join in joins),
            )
        return joins

    def _resolve_path(
        self,
        path: str,
        options: QueryOptions,
        manager: Optional["RegistryManager"],
        joins: List[JoinConfig],
        joined: Set[str],
    ) -> None:
        registry: RelationshipRegistry = self
        parent_ref = self.parent_table
        depths: Dict[str, int] = {}
        segments = path.split(".")

        for index, segment in enumerate(segments):
            rel = registry.get(segment)
            if rel is None:
                return

            depth = depths.get(rel.name, 0) + 1
            depths[rel.name] = depth
            built = rel.build_joins(parent_ref, options, depth)
            if built is None:
                return

            new_joins, parent_ref = built
            for join in new_joins:
                if join.key not in joined:
                    joined.add(join.key)
                    joins.append(join)

            if index == len(segments) - 1:
                return
            if rel.type == RelationshipType.SELF_REFERENTIAL:
                continue

            next_registry = manager.get_registry(rel.resolve_table(options)) if manager else None
            if next_registry is None:
                return
            registry = next_registry


class RegistryManager:
    """
    Registries of every table, for paths that hop across tables.

    Built once from all registries and read-only afterwards, so there is no
    registration order to get wrong.

    Example:
        manager = RegistryManager([activities, users, companies])
        joins = manager.generate_joins("activities", options)
    """

    def __init__(self, registries: Iterable[RelationshipRegistry] = ()):
        """
        Initialize RegistryManager.

        Args:
            registries: One registry per table

        Raises:
            ValueError: If two registries share a parent table
        """
        by_table: Dict[str, RelationshipRegistry] = {}
        for registry in registries:
            if registry.parent_table in by_table:
                raise ValueError(f"duplicate registry for table '{registry.parent_table}'")
            by_table[registry.parent_table] = registry
        self.registries: Mapping[str, RelationshipRegistry] = MappingProxyType(by_table)

    def __contains__(self, table: str) -> bool:
        return table in self.registries

    @property
    def tables(self) -> List[str]:
        """Tables with a registry."""
        return list(self.registries)

    def get_registry(self, table: Optional[str]) -> Optional[RelationshipRegistry]:
        """Registry of ``table``, or None."""
        if table is None:
            return None
        return self.registries.get(table)

    def generate_joins(self, table: str, options: QueryOptions) -> List[JoinConfig]:
        """JOINs for a query against ``table``; empty if the table has no registry."""
        registry = self.get_registry(table)
        if registry is None:
            return []
        return registry.generate_joins(options, self)
