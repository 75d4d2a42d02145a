from __future__ import annotations
from pydantic import BaseModel
from uuid import UUID
from datetime import datetime

class PointsEntryPublic(BaseModel):
    id: UUID
    member_id: UUID
    amount: int
    ref_submission_id: UUID
    note: str | None = None
    created_at: datetime

class PointsSnapshot(BaseModel):
    member_id: UUID
    points: int
    entries: list[PointsEntryPublic]
