"""
Access control — pure decision functions.

Nothing here touches the database: callers pass in the owner's privacy
settings and the Relationship between viewer and owner (see
access_control.service.load_access_context).  Precedence is always

  owner  >  block (either direction)  >  visibility / interaction level

A viewer_id of None is an anonymous viewer: it never owns anything and has
no follow edges.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass

from socialgraph.access_control.constants import (
    INTERACTION_SETTING,
    PROFILE_FIELD_FLAG,
    AccessReason,
    InteractionType,
    ProfileField,
)
from socialgraph.privacy.constants import InteractionLevel, PostVisibility
from socialgraph.privacy.models import PrivacySettings
from socialgraph.relationships.service import Relationship


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: AccessReason

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class PostRef:
    author_id: uuid.UUID
    # None means "use the author's default_post_visibility"
    visibility: PostVisibility | None = None


def _allow(reason: AccessReason) -> AccessDecision:
    return AccessDecision(allowed=True, reason=reason)


def _deny(reason: AccessReason) -> AccessDecision:
    return AccessDecision(allowed=False, reason=reason)


def _is_owner(viewer_id: uuid.UUID | None, owner_id: uuid.UUID) -> bool:
    return viewer_id is not None and viewer_id == owner_id


def _by_follow(relationship: Relationship, *, mutual: bool) -> AccessDecision:
    if mutual:
        return _allow(AccessReason.MUTUAL) if relationship.is_mutual else _deny(AccessReason.NOT_MUTUAL)
    return _allow(AccessReason.FOLLOWER) if relationship.is_following else _deny(AccessReason.NOT_FOLLOWER)


def can_view_post(
    viewer_id: uuid.UUID | None,
    post: PostRef,
    author_privacy: PrivacySettings,
    relationship: Relationship,
) -> AccessDecision:
    if _is_owner(viewer_id, post.author_id):
        return _allow(AccessReason.OWNER)
    if relationship.any_block:
        return _deny(AccessReason.BLOCKED)

    visibility = PostVisibility(post.visibility or author_privacy.default_post_visibility)
    if visibility == PostVisibility.PUBLIC:
        return _allow(AccessReason.PUBLIC)
    if visibility == PostVisibility.FOLLOWERS:
        return _by_follow(relationship, mutual=False)
    if visibility == PostVisibility.MUTUAL:
        return _by_follow(relationship, mutual=True)
    return _deny(AccessReason.PRIVATE)


def can_interact(
    viewer_id: uuid.UUID | None,
    target_id: uuid.UUID,
    interaction_type: InteractionType | str,
    target_privacy: PrivacySettings,
    relationship: Relationship,
) -> AccessDecision:
    """May viewer_id comment on / like / share target's content, or message them?"""
    setting = INTERACTION_SETTING[InteractionType(interaction_type)]
    if _is_owner(viewer_id, target_id):
        return _allow(AccessReason.OWNER)
    if relationship.any_block:
        return _deny(AccessReason.BLOCKED)

    level = InteractionLevel(getattr(target_privacy, setting))
    if level == InteractionLevel.EVERYONE:
        return _allow(AccessReason.EVERYONE)
    if level == InteractionLevel.FOLLOWERS:
        return _by_follow(relationship, mutual=False)
    if level == InteractionLevel.MUTUAL:
        return _by_follow(relationship, mutual=True)
    return _deny(AccessReason.DISABLED)


def visible_profile_fields(
    viewer_id: uuid.UUID | None,
    owner_id: uuid.UUID,
    owner_privacy: PrivacySettings,
    relationship: Relationship,
) -> frozenset[ProfileField]:
    """Optional profile fields the viewer may see; the owner always sees all of them."""
    if _is_owner(viewer_id, owner_id):
        return frozenset(ProfileField)
    if relationship.any_block:
        return frozenset()
    return frozenset(
        field for field, flag in PROFILE_FIELD_FLAG.items() if getattr(owner_privacy, flag)
    )


def can_view_connections(
    viewer_id: uuid.UUID | None,
    owner_id: uuid.UUID,
    owner_privacy: PrivacySettings,
    relationship: Relationship,
) -> AccessDecision:
    """Follower / following lists of a private account are visible to its followers only."""
    if _is_owner(viewer_id, owner_id):
        return _allow(AccessReason.OWNER)
    if relationship.any_block:
        return _deny(AccessReason.BLOCKED)
    if not owner_privacy.is_private:
        return _allow(AccessReason.PUBLIC)
    return _by_follow(relationship, mutual=False)
