"""
Access control — loads the inputs of the pure evaluator.

Run these with a session from get_read_db so the relationship and the
privacy settings come from the same snapshot.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from socialgraph.access_control import evaluator
from socialgraph.access_control.constants import InteractionType
from socialgraph.privacy import service as privacy_svc
from socialgraph.privacy.constants import PostVisibility
from socialgraph.privacy.models import PrivacySettings
from socialgraph.relationships import service as rel_svc
from socialgraph.relationships.service import Relationship


@dataclass(frozen=True)
class AccessContext:
    relationship: Relationship
    privacy: PrivacySettings


async def load_access_context(
    session: AsyncSession,
    viewer_id: uuid.UUID | None,
    owner_id: uuid.UUID,
) -> AccessContext:
    if viewer_id is None:
        relationship = Relationship()
    else:
        relationship = await rel_svc.get_relationship(session, viewer_id, owner_id)
    privacy = await privacy_svc.get_settings(session, owner_id)
    return AccessContext(relationship=relationship, privacy=privacy)


async def check_post_access(
    session: AsyncSession,
    viewer_id: uuid.UUID | None,
    author_id: uuid.UUID,
    visibility: PostVisibility | None = None,
) -> evaluator.AccessDecision:
    ctx = await load_access_context(session, viewer_id, author_id)
    return evaluator.can_view_post(
        viewer_id,
        evaluator.PostRef(author_id=author_id, visibility=visibility),
        ctx.privacy,
        ctx.relationship,
    )


async def check_interaction(
    session: AsyncSession,
    viewer_id: uuid.UUID | None,
    target_id: uuid.UUID,
    interaction_type: InteractionType,
) -> evaluator.AccessDecision:
    ctx = await load_access_context(session, viewer_id, target_id)
    return evaluator.can_interact(
        viewer_id, target_id, interaction_type, ctx.privacy, ctx.relationship
    )
