from __future__ import annotations
from pydantic import BaseModel
from uuid import UUID


class RankedEntry(BaseModel):
    rank: int
    member_id: UUID
    display_name: str
    group_id: UUID
    section_id: UUID | None = None
    points: int


class SectionRankedEntry(BaseModel):
    rank: int
    section_id: UUID
    name: str
    total_points: int
    member_count: int
    average_points: int


class MemberRank(BaseModel):
    member_id: UUID
    group_id: UUID
    rank: int


class ChallengeStats(BaseModel):
    challenge_id: UUID
    title: str
    points: int
    scoped_to_group: bool
    total_members: int
    completed_count: int
    pending_count: int
    completion_rate: int  # percent
    is_active: bool


class GroupChallengeSummary(BaseModel):
    group_id: UUID
    total_challenges: int
    active_challenges: int
    total_members: int
    total_validations: int
    total_pending: int
    average_completion_rate: int  # percent
    challenges: list[ChallengeStats]


class GroupRankedEntry(BaseModel):
    rank: int
    group_id: UUID
    name: str
    total_points: int
    member_count: int
    average_points: int
    completed_count: int
