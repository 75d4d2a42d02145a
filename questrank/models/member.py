from __future__ import annotations
import enum
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, ForeignKey, CheckConstraint, Enum, Uuid, func
from questrank.db import Base


class MemberRole(str, enum.Enum):
    MEMBER = "member"
    ANIMATOR = "animator"
    ADMIN = "admin"


class Member(Base):
    """
    Directory record for a person in a group.
    `points` is the cumulative balance; only services.ledger.award writes it.
    """
    __tablename__ = "members"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    display_name: Mapped[str] = mapped_column(String(120), nullable=False)
    role: Mapped[MemberRole] = mapped_column(
        Enum(MemberRole, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MemberRole.MEMBER,
    )
    group_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("groups.id", ondelete="CASCADE"), index=True, nullable=False)
    section_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("sections.id", ondelete="SET NULL"), index=True, nullable=True
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_members_points_non_negative"),
    )
