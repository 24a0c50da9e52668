"""Tests for the activity-log relationship graph."""

import activelog_query
from activelog_query.models import QueryOptions
from activelog_query.query import QueryBuilder
from activelog_query.registries import (
    activities_registry,
    activity_photos_registry,
    comments_registry,
    default_registry_manager,
    tags_registry,
    users_registry,
)


def normalize(sql: str) -> str:
    return " ".join(sql.split())


class TestActivityLogRegistries:
    """Tests for the per-table registries."""

    def test_activities(self):
        registry = activities_registry()

        assert registry.parent_table == "activities"
        assert registry.names == ["tags", "users"]

    def test_activity_tags_exclude_soft_deleted(self):
        joins = activities_registry().generate_joins(QueryOptions(filter={"tags.name": "cardio"}))

        assert "tags.deleted_at IS NULL" in joins[-1].condition
        assert "activity_tags.deleted_at IS NULL" in joins[-1].condition

    def test_users_named_like_table(self):
        joins = activities_registry().generate_joins(QueryOptions(filter={"users.email": "a@b.c"}))

        assert joins[0].condition == "users.id = activities.user_id"

    def test_tags(self):
        rel = tags_registry().get("parent")

        assert rel.max_depth == 3
        assert rel.foreign_key == "parent_tag_id"

    def test_comments(self):
        rel = comments_registry().get("commentable")

        assert dict(rel.type_map) == {"Activity": "activities", "Tag": "tags"}

    def test_activity_photos(self):
        joins = activity_photos_registry().generate_joins(
            QueryOptions(filter={"activities.title": "run"})
        )

        assert joins[0].condition == "activities.id = activity_photos.activity_id"

    def test_users_is_empty(self):
        assert users_registry().names == []


class TestDefaultRegistryManager:
    """Tests for the assembled manager."""

    def test_tables(self):
        manager = default_registry_manager()

        assert set(manager.tables) == {
            "activities",
            "tags",
            "comments",
            "activity_photos",
            "users",
        }

    def test_activities_to_parent_tag(self):
        manager = default_registry_manager()
        opts = QueryOptions(filter={"tags.parent.name": "sport"})

        joins = manager.generate_joins("activities", opts)

        assert [j.key for j in joins] == ["activity_tags", "tags", "parent_tags"]

    def test_comment_on_activity_to_user(self):
        manager = default_registry_manager()
        opts = QueryOptions(
            filter={"commentable_type": "Activity", "commentable.users.email": "a@b.c"}
        )

        joins = manager.generate_joins("comments", opts)

        assert [j.condition for j in joins] == [
            "activities.id = comments.commentable_id",
            "users.id = activities.user_id",
        ]

    def test_builder_uses_manager(self):
        opts = QueryOptions(filter={"tags.name": "cardio"})

        sql, args = QueryBuilder(
            "activities", opts, manager=default_registry_manager()
        ).build()

        sql = normalize(sql)
        assert "LEFT OUTER JOIN activity_tags ON activity_tags.activity_id = activities.id" in sql
        assert "LEFT OUTER JOIN tags ON tags.id = activity_tags.tag_id AND tags.deleted_at IS NULL" in sql
        assert "tags.name = $1" in sql
        assert args[0] == "cardio"


class TestPackageExports:
    """The graph is importable from the package root."""

    def test_registry_factories_exported(self):
        assert activelog_query.activities_registry is activities_registry
        assert activelog_query.default_registry_manager is default_registry_manager
        assert "tags_registry" in activelog_query.__all__
