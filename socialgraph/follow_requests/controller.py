"""
Follow requests domain — request orchestration.
"""
from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.pagination import total_pages
from socialgraph.exceptions import FollowRequestNotFound
from socialgraph.follow_requests import service as svc
from socialgraph.follow_requests.schemas import (
    BulkActionResponse,
    BulkItemResponse,
    FollowRequestItem,
    FollowRequestListResponse,
    RequesterRef,
    SentFollowRequestItem,
    SentFollowRequestListResponse,
)
from socialgraph.relationships.schemas import MessageResponse, SocialUserRef


async def list_requests(
    session: AsyncSession,
    target_id: uuid.UUID,
    page: int,
    limit: int,
) -> FollowRequestListResponse:
    rows, total = await svc.list_requests(session, target_id, page=page, limit=limit)
    mutuals = await svc.mutual_followers(session, target_id, [u.id for _, u in rows])
    items = [
        FollowRequestItem(
            id=r.id,
            requester=RequesterRef.model_validate(u),
            message=r.message,
            created_at=r.created_at,
            mutual_followers=[SocialUserRef.model_validate(m) for m in mutuals.get(u.id, [])],
        )
        for r, u in rows
    ]
    return FollowRequestListResponse(
        requests=items, total=total, page=page, total_pages=total_pages(total, limit)
    )


async def list_sent_requests(
    session: AsyncSession,
    requester_id: uuid.UUID,
    page: int,
    limit: int,
) -> SentFollowRequestListResponse:
    rows, total = await svc.list_sent_requests(session, requester_id, page=page, limit=limit)
    items = [
        SentFollowRequestItem(
            id=r.id,
            target=SocialUserRef.model_validate(u),
            message=r.message,
            created_at=r.created_at,
        )
        for r, u in rows
    ]
    return SentFollowRequestListResponse(
        requests=items, total=total, page=page, total_pages=total_pages(total, limit)
    )


async def approve(
    session: AsyncSession,
    target_id: uuid.UUID,
    request_id: uuid.UUID,
) -> MessageResponse:
    await svc.approve(session, request_id, target_id=target_id)
    return MessageResponse(message="Follow request approved.")


async def reject(
    session: AsyncSession,
    target_id: uuid.UUID,
    request_id: uuid.UUID,
) -> MessageResponse:
    await svc.reject(session, request_id, target_id=target_id)
    return MessageResponse(message="Follow request rejected.")


async def cancel(
    session: AsyncSession,
    requester_id: uuid.UUID,
    target_id: uuid.UUID,
) -> MessageResponse:
    if not await svc.cancel(session, requester_id, target_id):
        raise FollowRequestNotFound()
    return MessageResponse(message="Follow request cancelled.")


def _bulk_response(verb: str, results: list[svc.BulkItemResult]) -> BulkActionResponse:
    succeeded = sum(1 for r in results if r.ok)
    return BulkActionResponse(
        message=f"{succeeded} follow request(s) {verb}.",
        succeeded=succeeded,
        failed=len(results) - succeeded,
        results=[BulkItemResponse.model_validate(r) for r in results],
    )


async def bulk_approve(
    session: AsyncSession,
    target_id: uuid.UUID,
    request_ids: list[uuid.UUID],
) -> BulkActionResponse:
    results = await svc.bulk_approve(session, request_ids, target_id=target_id)
    return _bulk_response("approved", results)


async def bulk_reject(
    session: AsyncSession,
    target_id: uuid.UUID,
    request_ids: list[uuid.UUID],
) -> BulkActionResponse:
    results = await svc.bulk_reject(session, request_ids, target_id=target_id)
    return _bulk_response("rejected", results)
