from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict


class ReconcileResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    followers_before: int
    followers_after: int
    following_before: int
    following_after: int
    corrected: bool
    skipped: bool


class ReconcileSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    checked: int
    corrected: int
    skipped: int
    failed: list[uuid.UUID]
