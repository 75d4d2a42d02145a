from __future__ import annotations
from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from questrank.config import settings
from questrank.db import get_session
from questrank.deps import get_directory
from questrank.schemas.ranking import RankedEntry, SectionRankedEntry, GroupRankedEntry, MemberRank, GroupChallengeSummary
from questrank.services.directory import SqlDirectory
from questrank.services import ranking
from questrank.services.stats import challenge_stats

router = APIRouter(tags=["leaderboard"])

def _limit(limit: int | None) -> int:
    return min(limit or settings.leaderboard_default_limit, settings.leaderboard_max_limit)

@router.get("/groups/{group_id}/leaderboard", response_model=list[RankedEntry])
async def group_leaderboard(
    group_id: UUID = Path(...),
    limit: int | None = Query(default=None, ge=1),
    directory: SqlDirectory = Depends(get_directory),
):
    return await ranking.get_individual_ranking(directory, group_id, _limit(limit))

@router.get("/groups/{group_id}/leaderboard/sections", response_model=list[SectionRankedEntry])
async def section_leaderboard(group_id: UUID = Path(...), directory: SqlDirectory = Depends(get_directory)):
    return await ranking.get_section_ranking(directory, group_id)

@router.get("/groups/{group_id}/members/{member_id}/rank", response_model=MemberRank)
async def member_rank(
    group_id: UUID = Path(...),
    member_id: UUID = Path(...),
    directory: SqlDirectory = Depends(get_directory),
):
    rank = await ranking.get_individual_rank(directory, member_id, group_id)
    return MemberRank(member_id=member_id, group_id=group_id, rank=rank)

@router.get("/groups/{group_id}/challenges/stats", response_model=GroupChallengeSummary)
async def group_challenge_stats(
    group_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    directory: SqlDirectory = Depends(get_directory),
):
    return await challenge_stats(session, directory, group_id)

@router.get("/leaderboard", response_model=list[RankedEntry])
async def global_leaderboard(
    limit: int | None = Query(default=None, ge=1),
    directory: SqlDirectory = Depends(get_directory),
):
    return await ranking.get_global_ranking(directory, _limit(limit))

@router.get("/leaderboard/groups", response_model=list[GroupRankedEntry])
async def group_ranking(
    session: AsyncSession = Depends(get_session),
    directory: SqlDirectory = Depends(get_directory),
):
    return await ranking.get_group_ranking(session, directory)
