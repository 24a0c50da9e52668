"""Relationship graph of the activity-log tables."""

from activelog_query.relationships import (
    AdditionalCondition,
    RegistryManager,
    RelationshipRegistry,
    many_to_many,
    many_to_one,
    polymorphic,
    self_referential,
)


def activities_registry() -> RelationshipRegistry:
    """
    Activities: tags through ``activity_tags`` and the owning user.

    Soft-deleted tags and tag links are excluded inside the JOIN itself, so
    ``filter[tags.name]=cardio`` never matches a removed tag.
    """
    return RelationshipRegistry(
        "activities",
        [
            many_to_many("tags", "tags", "activity_tags", "activity_id", "tag_id").with_conditions(
                AdditionalCondition("tags.deleted_at", "eq", None),
                AdditionalCondition("activity_tags.deleted_at", "eq", None),
            ),
            # Named like its table so "users.col" is valid SQL as-is
            many_to_one("users", "users", "user_id"),
        ],
    )


def tags_registry() -> RelationshipRegistry:
    """Tags: parent tag hierarchy, at most three levels deep."""
    return RelationshipRegistry("tags", [self_referential("parent", "tags", "parent_tag_id", 3)])


def comments_registry() -> RelationshipRegistry:
    """Comments: attached to an activity or a tag, picked by ``commentable_type``."""
    return RelationshipRegistry(
        "comments",
        [
            polymorphic(
                "commentable",
                "commentable_type",
                "commentable_id",
                {"Activity": "activities", "Tag": "tags"},
            )
        ],
    )


def activity_photos_registry() -> RelationshipRegistry:
    """Activity photos: the activity each photo belongs to."""
    return RelationshipRegistry("activity_photos", [many_to_one("activities", "activities", "activity_id")])


def users_registry() -> RelationshipRegistry:
    """Users: no relationships yet; registered so paths through users stop cleanly."""
    return RelationshipRegistry("users")


def default_registry_manager() -> RegistryManager:
    """Registry manager holding every activity-log registry."""
    return RegistryManager(
        [
            activities_registry(),
            tags_registry(),
            comments_registry(),
            activity_photos_registry(),
            users_registry(),
        ]
    )
