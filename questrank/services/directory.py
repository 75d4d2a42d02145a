from __future__ import annotations
from typing import Protocol, Sequence
from uuid import UUID
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from questrank.models.challenge import Challenge
from questrank.models.group import Group, Section
from questrank.models.member import Member, MemberRole

# Read-only views of collaborators the engine does not own.

class MemberDirectory(Protocol):
    async def get_member(self, member_id: UUID) -> Member | None: ...
    async def members_in_group(self, group_id: UUID) -> Sequence[Member]: ...
    async def all_members(self) -> Sequence[Member]: ...


class ChallengeDirectory(Protocol):
    async def get_challenge(self, challenge_id: UUID) -> Challenge | None: ...
    async def challenges_for_group(self, group_id: UUID) -> Sequence[Challenge]: ...


class SectionDirectory(Protocol):
    async def sections_in_group(self, group_id: UUID) -> Sequence[Section]: ...


class GroupDirectory(Protocol):
    async def all_groups(self) -> Sequence[Group]: ...


class Directory(MemberDirectory, ChallengeDirectory, SectionDirectory, GroupDirectory, Protocol):
    pass


class SqlDirectory:
    """Directory backed by the same session the engine writes through."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_member(self, member_id: UUID) -> Member | None:
        return await self.session.get(Member, member_id, populate_existing=True)

    async def members_in_group(self, group_id: UUID) -> Sequence[Member]:
        """Ranked members only (role=member)."""
        return (await self.session.execute(
            select(Member)
            .where(Member.group_id == group_id, Member.role == MemberRole.MEMBER)
            .execution_options(populate_existing=True)
        )).scalars().all()

    async def all_members(self) -> Sequence[Member]:
        return (await self.session.execute(
            select(Member)
            .where(Member.role == MemberRole.MEMBER)
            .execution_options(populate_existing=True)
        )).scalars().all()

    async def get_challenge(self, challenge_id: UUID) -> Challenge | None:
        return await self.session.get(Challenge, challenge_id, populate_existing=True)

    async def challenges_for_group(self, group_id: UUID) -> Sequence[Challenge]:
        """Challenges scoped to the group plus unscoped ones, newest first."""
        return (await self.session.execute(
            select(Challenge)
            .where(or_(Challenge.group_id == group_id, Challenge.group_id.is_(None)))
            .order_by(Challenge.created_at.desc(), Challenge.id)
        )).scalars().all()

    async def sections_in_group(self, group_id: UUID) -> Sequence[Section]:
        return (await self.session.execute(
            select(Section).where(Section.group_id == group_id)
        )).scalars().all()

    async def all_groups(self) -> Sequence[Group]:
        return (await self.session.execute(select(Group))).scalars().all()
