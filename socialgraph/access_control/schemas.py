from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from socialgraph.access_control.constants import AccessReason, InteractionType
from socialgraph.privacy.constants import PostVisibility


class _Base(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PostAccessRequest(_Base):
    viewer_id: UUID | None = None
    author_id: UUID
    # Omitted: the author's default_post_visibility applies
    visibility: PostVisibility | None = None


class InteractionAccessRequest(_Base):
    viewer_id: UUID | None = None
    target_id: UUID
    interaction_type: InteractionType


class AccessDecisionResponse(BaseModel):
    allowed: bool
    reason: AccessReason
