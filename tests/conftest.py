from __future__ import annotations
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from questrank.db import Base, get_session
from questrank.main import app
from questrank.models.challenge import Challenge
from questrank.models.group import Group, Section
from questrank.models.member import Member, MemberRole
import questrank.models.submission  # noqa: F401  registers the table
import questrank.models.ledger  # noqa: F401
from questrank.services.directory import SqlDirectory


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File-backed so separate sessions get separate connections
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'questrank.db'}", future=True)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def directory(session):
    return SqlDirectory(session)


@pytest_asyncio.fixture
async def world(session_factory):
    """
    Group "Unit 1" with sections A (ana 300, alex 200) and B (ben 100),
    a reviewer, a member of another group, and three challenges:
    hike (50 pts, scoped to the group), knots (20 pts, unscoped), old (10 pts, ended).
    Built in a session of its own, so rollbacks in a test leave these loaded.
    """
    now = datetime.now(timezone.utc)
    async with session_factory() as session:
        return await _populate(session, now)


async def _populate(session, now):
    group = Group(name="Unit 1")
    other_group = Group(name="Unit 2")
    session.add_all([group, other_group])
    await session.flush()

    sec_a = Section(group_id=group.id, name="A")
    sec_b = Section(group_id=group.id, name="B")
    session.add_all([sec_a, sec_b])
    await session.flush()

    ana = Member(display_name="Ana", role=MemberRole.MEMBER, group_id=group.id, section_id=sec_a.id, points=300)
    alex = Member(display_name="Alex", role=MemberRole.MEMBER, group_id=group.id, section_id=sec_a.id, points=200)
    ben = Member(display_name="Ben", role=MemberRole.MEMBER, group_id=group.id, section_id=sec_b.id, points=100)
    reviewer = Member(display_name="Rita", role=MemberRole.ANIMATOR, group_id=group.id, points=0)
    outsider = Member(display_name="Olga", role=MemberRole.MEMBER, group_id=other_group.id, points=999)
    session.add_all([ana, alex, ben, reviewer, outsider])

    hike = Challenge(title="Hike", points=50, group_id=group.id)
    knots = Challenge(title="Knots", points=20, group_id=None)
    old = Challenge(
        title="Old", points=10, group_id=group.id,
        starts_at=now - timedelta(days=10), ends_at=now - timedelta(days=5),
    )
    session.add_all([hike, knots, old])
    await session.commit()

    return SimpleNamespace(
        group=group, other_group=other_group,
        sec_a=sec_a, sec_b=sec_b,
        ana=ana, alex=alex, ben=ben, reviewer=reviewer, outsider=outsider,
        hike=hike, knots=knots, old=old,
    )


@pytest_asyncio.fixture
async def client(session_factory):
    async def _get_session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
