from __future__ import annotations
from collections import defaultdict
from typing import Iterable, Mapping, Sequence
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from questrank.models.group import Group, Section
from questrank.models.member import Member, MemberRole
from questrank.models.submission import Submission, SubmissionStatus
from questrank.schemas.ranking import GroupRankedEntry, RankedEntry, SectionRankedEntry
from questrank.services.directory import Directory, MemberDirectory

# Orderings are total: points descending, then id as text, so the same data
# always yields the same ranks.

def round_half_up(numerator: int, denominator: int) -> int:
    """Integer round(numerator / denominator) with .5 going up; 0 for an empty denominator."""
    if denominator <= 0:
        return 0
    return (2 * numerator + denominator) // (2 * denominator)


def rank_members(members: Iterable[Member], limit: int | None = None) -> list[RankedEntry]:
    ordered = sorted(members, key=lambda m: (-int(m.points or 0), str(m.id)))
    if limit is not None:
        ordered = ordered[:max(0, limit)]
    return [
        RankedEntry(
            rank=idx + 1,
            member_id=m.id,
            display_name=m.display_name,
            group_id=m.group_id,
            section_id=m.section_id,
            points=int(m.points or 0),
        )
        for idx, m in enumerate(ordered)
    ]


def rank_sections(sections: Iterable[Section], members: Iterable[Member]) -> list[SectionRankedEntry]:
    """Members outside every listed section are ignored; empty sections stay in with 0 points."""
    buckets: dict[UUID, list[int]] = defaultdict(list)
    for m in members:
        if m.section_id is not None:
            buckets[m.section_id].append(int(m.points or 0))

    totals = []
    for sec in sections:
        pts = buckets.get(sec.id, [])
        total = sum(pts)
        totals.append((sec, total, len(pts), round_half_up(total, len(pts))))

    # empty sections go after populated ones on equal totals
    totals.sort(key=lambda row: (-row[1], row[2] == 0, str(row[0].id)))
    return [
        SectionRankedEntry(
            rank=idx + 1,
            section_id=sec.id,
            name=sec.name,
            total_points=total,
            member_count=count,
            average_points=avg,
        )
        for idx, (sec, total, count, avg) in enumerate(totals)
    ]


def rank_groups(
    groups: Iterable[Group],
    members: Iterable[Member],
    completed: Mapping[UUID, int] | None = None,
) -> list[GroupRankedEntry]:
    """Groups by total member points; `completed` maps group id to validated submissions."""
    completed = completed or {}
    points: dict[UUID, list[int]] = defaultdict(list)
    for m in members:
        points[m.group_id].append(int(m.points or 0))

    rows = [(g, sum(points.get(g.id, [])), len(points.get(g.id, []))) for g in groups]
    rows.sort(key=lambda row: (-row[1], row[2] == 0, str(row[0].id)))
    return [
        GroupRankedEntry(
            rank=idx + 1,
            group_id=g.id,
            name=g.name,
            total_points=total,
            member_count=count,
            average_points=round_half_up(total, count),
            completed_count=int(completed.get(g.id, 0)),
        )
        for idx, (g, total, count) in enumerate(rows)
    ]


def rank_of(ranking: Sequence[RankedEntry], member_id: UUID) -> int:
    """1 when nobody is ranked yet, 0 when the member is not part of a non-empty ranking."""
    if not ranking:
        return 1
    for entry in ranking:
        if entry.member_id == member_id:
            return entry.rank
    return 0


# ---------- directory-backed queries ----------

async def get_individual_ranking(directory: MemberDirectory, group_id: UUID, limit: int) -> list[RankedEntry]:
    return rank_members(await directory.members_in_group(group_id), limit)

async def get_individual_rank(directory: MemberDirectory, member_id: UUID, group_id: UUID) -> int:
    return rank_of(rank_members(await directory.members_in_group(group_id)), member_id)

async def get_section_ranking(directory: Directory, group_id: UUID) -> list[SectionRankedEntry]:
    sections = await directory.sections_in_group(group_id)
    if not sections:
        return []
    # one pass over the group's members
    members = await directory.members_in_group(group_id)
    return rank_sections(sections, members)

async def get_global_ranking(directory: MemberDirectory, limit: int) -> list[RankedEntry]:
    return rank_members(await directory.all_members(), limit)

async def get_group_ranking(session: AsyncSession, directory: Directory) -> list[GroupRankedEntry]:
    groups = await directory.all_groups()
    if not groups:
        return []
    members = await directory.all_members()
    rows = (await session.execute(
        select(Member.group_id, func.count())
        .join(Submission, Submission.member_id == Member.id)
        .where(Member.role == MemberRole.MEMBER, Submission.status == SubmissionStatus.COMPLETED)
        .group_by(Member.group_id)
    )).all()
    return rank_groups(groups, members, {gid: int(n) for (gid, n) in rows})
