from __future__ import annotations
import enum
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Text, Integer, DateTime, ForeignKey, UniqueConstraint, Enum, Uuid, Index
from questrank.db import Base


class SubmissionStatus(str, enum.Enum):
    STARTED = "started"
    PENDING_VALIDATION = "pending_validation"
    COMPLETED = "completed"
    EXPIRED = "expired"  # rejected by a reviewer

    @property
    def is_terminal(self) -> bool:
        return self in (SubmissionStatus.COMPLETED, SubmissionStatus.EXPIRED)


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    challenge_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("challenges.id", ondelete="CASCADE"), index=True, nullable=False
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), index=True, nullable=False
    )
    attempt: Mapped[int] = mapped_column(Integer, nullable=False, default=1)  # bumps only after a rejection

    status: Mapped[SubmissionStatus] = mapped_column(
        Enum(SubmissionStatus, native_enum=False, length=24, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    proof_image_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    member_comment: Mapped[str | None] = mapped_column(Text(), nullable=True)

    validated_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    validated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewer_comment: Mapped[str | None] = mapped_column(Text(), nullable=True)

    __table_args__ = (
        UniqueConstraint("challenge_id", "member_id", "attempt", name="uq_submission_attempt"),
        Index("ix_submissions_status", "status"),
    )
