from __future__ import annotations
import pytest

from questrank.services import submissions as svc
from questrank.services.stats import challenge_stats


async def _done(session, directory, world, challenge, member):
    s = await svc.submit_challenge(session, directory, challenge.id, member.id, "done")
    await svc.validate_submission(session, directory, s.id, world.reviewer.id)
    return s


@pytest.mark.asyncio
async def test_challenge_stats_for_group(session, directory, world):
    await _done(session, directory, world, world.hike, world.ana)
    await _done(session, directory, world, world.knots, world.ben)
    await _done(session, directory, world, world.hike, world.outsider)
    await svc.submit_challenge(session, directory, world.hike.id, world.alex.id, "done")
    rejected = await svc.submit_challenge(session, directory, world.knots.id, world.alex.id, "done")
    await svc.reject_submission(session, rejected.id, world.reviewer.id)
    await session.commit()

    summary = await challenge_stats(session, directory, world.group.id)

    assert summary.total_challenges == 3
    assert summary.active_challenges == 2
    assert summary.total_members == 3
    assert summary.total_validations == 2
    assert summary.total_pending == 1
    # 2 validations over 3 challenges x 3 members
    assert summary.average_completion_rate == 22

    by_title = {c.title: c for c in summary.challenges}
    assert (by_title["Hike"].completed_count, by_title["Hike"].pending_count) == (1, 1)
    assert by_title["Hike"].completion_rate == 33
    assert by_title["Hike"].scoped_to_group
    assert (by_title["Knots"].completed_count, by_title["Knots"].pending_count) == (1, 0)
    assert not by_title["Knots"].scoped_to_group
    assert by_title["Old"].completion_rate == 0
    assert not by_title["Old"].is_active


@pytest.mark.asyncio
async def test_challenge_stats_for_small_and_unknown_groups(session, directory, world):
    summary = await challenge_stats(session, directory, world.other_group.id)
    # only the unscoped challenge is open to the other group
    assert [c.title for c in summary.challenges] == ["Knots"]
    assert summary.total_members == 1
    assert summary.average_completion_rate == 0

    empty = await challenge_stats(session, directory, world.sec_a.id)
    assert empty.total_members == 0
    assert all(c.completion_rate == 0 for c in empty.challenges)
    assert empty.average_completion_rate == 0
