from __future__ import annotations
from uuid import UUID
import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from questrank.errors import NotAMember
from questrank.models.ledger import PointsEntry
from questrank.models.member import Member

log = structlog.get_logger()


async def award(
    session: AsyncSession,
    member_id: UUID,
    amount: int,
    *,
    ref_submission_id: UUID,
    note: str = "challenge_validated",
) -> int:
    """
    Credit `amount` points to a member and return the new balance.
    The increment happens inside the database (points = points + :amount) so
    concurrent awards to one member compose; the unique ref_submission_id on
    the audit row refuses a second award for the same submission.
    Does not commit.
    """
    if amount <= 0:
        raise ValueError("amount must be > 0")

    session.add(PointsEntry(member_id=member_id, amount=int(amount), ref_submission_id=ref_submission_id, note=note))
    await session.flush()

    res = await session.execute(
        update(Member)
        .where(Member.id == member_id)
        .values(points=Member.points + int(amount))
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise NotAMember()

    member = await session.get(Member, member_id, populate_existing=True)
    log.info("points_awarded", member_id=str(member_id), amount=int(amount), balance=member.points,
             submission_id=str(ref_submission_id))
    return member.points


async def balance(session: AsyncSession, member_id: UUID) -> int:
    member = await session.get(Member, member_id, populate_existing=True)
    if not member:
        raise NotAMember()
    return int(member.points or 0)


async def entries(session: AsyncSession, member_id: UUID) -> list[PointsEntry]:
    return list((await session.execute(
        select(PointsEntry).where(PointsEntry.member_id == member_id).order_by(PointsEntry.created_at.desc(), PointsEntry.id)
    )).scalars().all())
