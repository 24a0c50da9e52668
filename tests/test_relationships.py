"""Tests for relationship registries and JOIN resolution."""

import logging

import pytest
from activelog_query.errors import QueryValidationError
from activelog_query.models import JoinConfig, QueryOptions
from activelog_query.relationships import (
    AdditionalCondition,
    RegistryManager,
    RelationshipRegistry,
    RelationshipType,
    extract_path,
    many_to_many,
    many_to_one,
    one_to_many,
    polymorphic,
    self_referential,
)


@pytest.fixture
def activities():
    return RelationshipRegistry(
        "activities",
        [
            many_to_many("tags", "tags", "activity_tags", "activity_id", "tag_id"),
            many_to_one("user", "users", "user_id"),
        ],
    )


@pytest.fixture
def comments():
    return RelationshipRegistry(
        "comments",
        [
            self_referential("parent", "comments", "parent_id", 3),
            polymorphic(
                "commentable",
                "commentable_type",
                "commentable_id",
                {"Activity": "activities", "Tag": "tags"},
            ),
        ],
    )


class TestExtractPath:
    """Tests for extract_path."""

    @pytest.mark.parametrize(
        "column,expected",
        [
            ("tags.name", "tags"),
            ("user.company.department.name", "user.company.department"),
            ("created_at", ""),
        ],
    )
    def test_extract_path(self, column, expected):
        assert extract_path(column) == expected


class TestAdditionalCondition:
    """Tests for static JOIN conditions."""

    def test_null(self):
        assert AdditionalCondition("tags.deleted_at").render() == "tags.deleted_at IS NULL"

    def test_not_null(self):
        assert AdditionalCondition("tags.deleted_at", "ne").render() == "tags.deleted_at IS NOT NULL"

    def test_string_is_quoted(self):
        assert AdditionalCondition("tags.kind", "eq", "sport").render() == "tags.kind = 'sport'"

    def test_number(self):
        assert AdditionalCondition("tags.weight", "gt", 5).render() == "tags.weight > 5"

    def test_unknown_operator(self):
        with pytest.raises(ValueError, match="unknown operator"):
            AdditionalCondition("tags.kind", "like", "x").render()


class TestFactories:
    """Tests for relationship factory functions."""

    def test_many_to_many(self):
        rel = many_to_many("tags", "tags", "activity_tags", "activity_id", "tag_id")

        assert rel.type == RelationshipType.MANY_TO_MANY
        assert rel.junction_table == "activity_tags"
        assert rel.primary_key == "id"

    def test_self_referential_depth_must_be_positive(self):
        with pytest.raises(ValueError, match="max_depth"):
            self_referential("parent", "tags", "parent_tag_id", 0)

    def test_with_conditions_returns_copy(self):
        rel = many_to_one("user", "users", "user_id")
        extended = rel.with_conditions(AdditionalCondition("users.deleted_at"))

        assert rel.conditions == ()
        assert len(extended.conditions) == 1


class TestGenerateJoins:
    """Tests for RelationshipRegistry.generate_joins."""

    def test_no_dotted_columns(self, activities):
        opts = QueryOptions(filter={"user_id": 42}, order={"created_at": "DESC"})

        assert activities.generate_joins(opts) == []

    def test_many_to_one(self, activities):
        opts = QueryOptions(filter={"user.name": "alice"})

        assert activities.generate_joins(opts) == [
            JoinConfig(table="users", condition="users.id = activities.user_id")
        ]

    def test_one_to_many(self):
        users = RelationshipRegistry("users", [one_to_many("activities", "activities", "user_id")])
        opts = QueryOptions(filter={"activities.title": "run"})

        assert users.generate_joins(opts) == [
            JoinConfig(table="activities", condition="activities.user_id = users.id")
        ]

    def test_many_to_many_emits_two_joins(self, activities):
        opts = QueryOptions(filter={"tags.name": "cardio"})

        assert activities.generate_joins(opts) == [
            JoinConfig(table="activity_tags", condition="activity_tags.activity_id = activities.id"),
            JoinConfig(table="tags", condition="tags.id = activity_tags.tag_id"),
        ]

    def test_same_relationship_joined_once(self, activities):
        opts = QueryOptions(
            filter={"tags.name": "cardio"},
            filter_or={"tags.id": 3},
            search={"tags.name": "car"},
            order={"tags.name": "ASC"},
        )

        joins = activities.generate_joins(opts)

        assert [j.table for j in joins] == ["activity_tags", "tags"]

    def test_join_keys_are_unique(self, activities):
        opts = QueryOptions(filter={"tags.name": "cardio", "user.name": "alice"})

        keys = [j.key for j in activities.generate_joins(opts)]

        assert len(keys) == len(set(keys))
        assert keys == ["activity_tags", "tags", "users"]

    def test_unknown_relationship_is_ignored(self, activities):
        opts = QueryOptions(filter={"photos.url": "x"})

        assert activities.generate_joins(opts) == []

    def test_static_conditions_appended(self):
        registry = RelationshipRegistry(
            "activities",
            [
                many_to_many("tags", "tags", "activity_tags", "activity_id", "tag_id").with_conditions(
                    AdditionalCondition("tags.deleted_at", "eq", None),
                    AdditionalCondition("activity_tags.deleted_at", "eq", None),
                )
            ],
        )

        joins = registry.generate_joins(QueryOptions(filter={"tags.name": "cardio"}))

        assert joins[0].condition == "activity_tags.activity_id = activities.id"
        assert joins[1].condition == (
            "tags.id = activity_tags.tag_id"
            " AND tags.deleted_at IS NULL AND activity_tags.deleted_at IS NULL"
        )

    def test_columns_from_conditions_are_resolved(self, activities):
        opts = QueryOptions()
        opts.add_condition("tags.name", "ne", "cardio")

        assert len(activities.generate_joins(opts)) == 2


class TestSelfReferential:
    """Tests for self-referential relationships."""

    def test_single_level(self, comments):
        opts = QueryOptions(filter={"parent.author": "john"})

        joins = comments.generate_joins(opts)

        assert joins == [
            JoinConfig(
                table="comments AS parent_comments",
                condition="parent_comments.id = comments.parent_id",
                alias="parent_comments",
            )
        ]
        assert joins[0].table_name == "comments"
        assert joins[0].table_alias == "parent_comments"

    def test_nested_levels(self, comments):
        opts = QueryOptions(filter={"parent.parent.author": "john"})

        joins = comments.generate_joins(opts)

        assert [j.table for j in joins] == [
            "comments AS parent_comments",
            "comments AS parent_comments_2",
        ]
        assert joins[1].condition == "parent_comments_2.id = parent_comments.parent_id"

    def test_depth_is_bounded(self, comments):
        opts = QueryOptions(filter={"parent.parent.parent.parent.parent.author": "john"})

        assert len(comments.generate_joins(opts)) == 3


class TestPolymorphic:
    """Tests for polymorphic relationships."""

    def test_resolves_through_discriminator(self, comments):
        opts = QueryOptions(filter={"commentable_type": "Activity", "commentable.title": "run"})

        assert comments.generate_joins(opts) == [
            JoinConfig(table="activities", condition="activities.id = comments.commentable_id")
        ]

    def test_single_entry_type_map(self):
        registry = RelationshipRegistry(
            "comments",
            [polymorphic("commentable", "commentable_type", "commentable_id", {"Post": "posts"})],
        )
        opts = QueryOptions(filter={"commentable_type": "Post", "commentable.title": "Hello"})

        assert registry.generate_joins(opts) == [
            JoinConfig(table="posts", condition="posts.id = comments.commentable_id")
        ]
        assert registry.generate_joins(QueryOptions(filter={"commentable.title": "Hello"})) == []

    def test_other_type(self, comments):
        opts = QueryOptions(filter={"commentable_type": "Tag", "commentable.name": "cardio"})

        assert comments.generate_joins(opts)[0].table == "tags"

    def test_missing_discriminator_emits_nothing(self, comments, caplog):
        opts = QueryOptions(filter={"commentable.title": "run"})

        with caplog.at_level(logging.DEBUG, logger="activelog_query.relationships"):
            assert comments.generate_joins(opts) == []
        assert "commentable_type" in caplog.text

    def test_unmapped_discriminator_emits_nothing(self, comments):
        opts = QueryOptions(filter={"commentable_type": "Photo", "commentable.url": "x"})

        assert comments.generate_joins(opts) == []


class TestRegistry:
    """Tests for registry construction and lookups."""

    def test_duplicate_relationship_name(self):
        with pytest.raises(ValueError, match="duplicate relationship 'tags'"):
            RelationshipRegistry(
                "activities",
                [
                    many_to_one("tags", "tags", "tag_id"),
                    many_to_one("tags", "tags", "other_tag_id"),
                ],
            )

    def test_relationships_are_read_only(self, activities):
        with pytest.raises(TypeError):
            activities.relationships["x"] = many_to_one("x", "x", "x_id")

    def test_with_relationships_returns_new_registry(self, activities):
        extended = activities.with_relationships(many_to_one("photo", "photos", "photo_id"))

        assert "photo" in extended.names
        assert "photo" not in activities.names

    def test_get(self, activities):
        assert activities.get("tags").target_table == "tags"
        assert activities.get("missing") is None

    def test_validate_column_relationship(self, activities):
        activities.validate_column("tags.name", allowed_columns=[])

    def test_validate_column_whitelisted(self, activities):
        activities.validate_column("title", allowed_columns=["title"])

    def test_validate_column_rejected(self, activities):
        with pytest.raises(QueryValidationError, match="not in whitelist"):
            activities.validate_column("photos.url", allowed_columns=["title"])


class TestRegistryManager:
    """Tests for cross-registry resolution."""

    @pytest.fixture
    def manager(self):
        return RegistryManager(
            [
                RelationshipRegistry("activities", [many_to_one("user", "users", "user_id")]),
                RelationshipRegistry("users", [many_to_one("company", "companies", "company_id")]),
                RelationshipRegistry(
                    "companies", [many_to_one("department", "departments", "department_id")]
                ),
            ]
        )

    def test_deep_nesting(self, manager):
        opts = QueryOptions(filter={"user.company.department.name": "Engineering"})

        joins = manager.generate_joins("activities", opts)

        assert [j.condition for j in joins] == [
            "users.id = activities.user_id",
            "companies.id = users.company_id",
            "departments.id = companies.department_id",
        ]

    def test_without_manager_stops_after_first_hop(self, manager):
        opts = QueryOptions(filter={"user.company.name": "Acme"})

        joins = manager.get_registry("activities").generate_joins(opts)

        assert [j.table for j in joins] == ["users"]

    def test_shared_prefix_joined_once(self, manager):
        opts = QueryOptions(
            filter={"user.name": "alice", "user.company.name": "Acme"},
        )

        joins = manager.generate_joins("activities", opts)

        assert [j.table for j in joins] == ["users", "companies"]

    def test_missing_registry_stops_silently(self):
        manager = RegistryManager(
            [RelationshipRegistry("activities", [many_to_one("user", "users", "user_id")])]
        )
        opts = QueryOptions(filter={"user.company.name": "Acme"})

        assert [j.table for j in manager.generate_joins("activities", opts)] == ["users"]

    def test_unknown_table(self, manager):
        assert manager.generate_joins("photos", QueryOptions(filter={"a.b": 1})) == []

    def test_lookups(self, manager):
        assert "users" in manager
        assert "photos" not in manager
        assert manager.tables == ["activities", "users", "companies"]
        assert manager.get_registry(None) is None

    def test_duplicate_table(self):
        with pytest.raises(ValueError, match="duplicate registry"):
            RegistryManager([RelationshipRegistry("users"), RelationshipRegistry("users")])

    def test_self_referential_continues_in_same_registry(self):
        manager = RegistryManager(
            [
                RelationshipRegistry(
                    "activities",
                    [many_to_many("tags", "tags", "activity_tags", "activity_id", "tag_id")],
                ),
                RelationshipRegistry("tags", [self_referential("parent", "tags", "parent_tag_id")]),
            ]
        )
        opts = QueryOptions(filter={"tags.parent.parent.name": "sport"})

        joins = manager.generate_joins("activities", opts)

        assert [j.key for j in joins] == ["activity_tags", "tags", "parent_tags", "parent_tags_2"]
        assert joins[2].condition == "parent_tags.id = tags.parent_tag_id"
