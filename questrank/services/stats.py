from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from questrank.models.member import Member, MemberRole
from questrank.models.submission import Submission, SubmissionStatus
from questrank.schemas.ranking import ChallengeStats, GroupChallengeSummary
from questrank.services.directory import Directory
from questrank.services.ranking import round_half_up


async def challenge_stats(
    session: AsyncSession,
    directory: Directory,
    group_id: UUID,
    now: datetime | None = None,
) -> GroupChallengeSummary:
    """
    Completion figures for every challenge open to a group (scoped + unscoped).
      - completion_rate: completed / ranked members, in percent
      - average_completion_rate: validations / (challenges x members), in percent
    """
    now = now or datetime.now(dt_tz.utc)
    challenges = await directory.challenges_for_group(group_id)
    total_members = len(await directory.members_in_group(group_id))

    rows = (await session.execute(
        select(Submission.challenge_id, Submission.status, func.count())
        .join(Member, Member.id == Submission.member_id)
        .where(
            Member.group_id == group_id,
            Member.role == MemberRole.MEMBER,
            Submission.status.in_([SubmissionStatus.COMPLETED, SubmissionStatus.PENDING_VALIDATION]),
        )
        .group_by(Submission.challenge_id, Submission.status)
    )).all()
    counts: dict[tuple[UUID, SubmissionStatus], int] = {(cid, status): int(n) for (cid, status, n) in rows}

    per: list[ChallengeStats] = []
    total_validations = total_pending = active = 0
    for ch in challenges:
        completed = counts.get((ch.id, SubmissionStatus.COMPLETED), 0)
        pending = counts.get((ch.id, SubmissionStatus.PENDING_VALIDATION), 0)
        is_active = ch.is_active(now)
        per.append(ChallengeStats(
            challenge_id=ch.id,
            title=ch.title,
            points=int(ch.points),
            scoped_to_group=ch.group_id is not None,
            total_members=total_members,
            completed_count=completed,
            pending_count=pending,
            completion_rate=round_half_up(100 * completed, total_members),
            is_active=is_active,
        ))
        total_validations += completed
        total_pending += pending
        active += int(is_active)

    return GroupChallengeSummary(
        group_id=group_id,
        total_challenges=len(challenges),
        active_challenges=active,
        total_members=total_members,
        total_validations=total_validations,
        total_pending=total_pending,
        average_completion_rate=round_half_up(100 * total_validations, len(challenges) * total_members),
        challenges=per,
    )
