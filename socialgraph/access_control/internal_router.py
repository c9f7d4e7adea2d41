"""
Access control — internal routes for other services (post rendering,
comment/like/share/message handlers).  Not exposed through the public gateway.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from socialgraph.access_control import service
from socialgraph.access_control.schemas import (
    AccessDecisionResponse,
    InteractionAccessRequest,
    PostAccessRequest,
)
from socialgraph.database import get_read_db

router = APIRouter(prefix="/internal/access", tags=["Access Control (internal)"])


@router.post(
    "/post",
    response_model=AccessDecisionResponse,
    summary="Internal: may the viewer see this post?",
)
async def check_post_access(
    body: PostAccessRequest,
    db: AsyncSession = Depends(get_read_db),
) -> AccessDecisionResponse:
    decision = await service.check_post_access(
        db, body.viewer_id, body.author_id, body.visibility
    )
    return AccessDecisionResponse(allowed=decision.allowed, reason=decision.reason)


@router.post(
    "/interaction",
    response_model=AccessDecisionResponse,
    summary="Internal: may the viewer comment on / like / share / message the target?",
)
async def check_interaction(
    body: InteractionAccessRequest,
    db: AsyncSession = Depends(get_read_db),
) -> AccessDecisionResponse:
    decision = await service.check_interaction(
        db, body.viewer_id, body.target_id, body.interaction_type
    )
    return AccessDecisionResponse(allowed=decision.allowed, reason=decision.reason)
