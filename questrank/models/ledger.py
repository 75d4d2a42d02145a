from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Uuid, func
from questrank.db import Base

class PointsEntry(Base):
    """
    Audit trail of point awards, one row per validated submission.
    Σ(amount) per member equals members.points.
    """
    __tablename__ = "points_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), index=True, nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    # Idempotency: at most one award per submission
    ref_submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
    )
    note: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("ref_submission_id", name="uq_points_entry_once_per_submission"),
        CheckConstraint("amount > 0", name="ck_points_entry_amount_positive"),
    )
