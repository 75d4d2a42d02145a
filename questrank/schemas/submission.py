from __future__ import annotations
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from questrank.models.submission import SubmissionStatus


class StartRequest(BaseModel):
    member_id: UUID


class SubmitRequest(BaseModel):
    member_id: UUID
    # emptiness is checked by the engine so it can answer comment_required
    comment: str = ""
    proof_image_url: str | None = Field(default=None, max_length=2048)


class ReviewRequest(BaseModel):
    reviewer_id: UUID
    comment: str | None = None


class SubmissionPublic(BaseModel):
    id: UUID
    challenge_id: UUID
    member_id: UUID
    attempt: int
    status: SubmissionStatus
    started_at: datetime
    submitted_at: datetime | None = None
    proof_image_url: str | None = None
    member_comment: str | None = None
    validated_by: UUID | None = None
    validated_at: datetime | None = None
    reviewer_comment: str | None = None
