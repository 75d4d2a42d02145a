"""
State machine + ledger integration, exercised through the service layer
against a real (SQLite) database.
"""
from __future__ import annotations
import pytest

from datetime import datetime, timezone

from questrank.errors import (
    AlreadyCompleted,
    AlreadyPendingReview,
    AlreadyStarted,
    AttemptRejected,
    ChallengeNotFound,
    CommentRequired,
    NotAMember,
    NotFound,
    NotPending,
    SubmissionConflict,
)
from questrank.models.submission import Submission, SubmissionStatus
from questrank.services import ledger
from questrank.services import submissions as svc
from questrank.services.directory import SqlDirectory
from questrank.services.transitions import Action


async def _pending(session, directory, world, member, challenge=None, comment="done"):
    s = await svc.submit_challenge(session, directory, (challenge or world.hike).id, member.id, comment)
    await session.commit()
    return s


@pytest.mark.asyncio
async def test_start_submit_validate_awards_points_once(session, directory, world):
    s = await svc.start_challenge(session, directory, world.hike.id, world.ana.id)
    await session.commit()
    await session.refresh(s)
    assert s.status is SubmissionStatus.STARTED
    assert s.attempt == 1
    assert s.submitted_at is None
    started_at = s.started_at

    s = await svc.submit_challenge(session, directory, world.hike.id, world.ana.id, "done")
    await session.commit()
    assert s.status is SubmissionStatus.PENDING_VALIDATION
    assert s.started_at == started_at
    assert s.submitted_at is not None
    assert s.member_comment == "done"

    await svc.validate_submission(session, directory, s.id, world.reviewer.id, "well done")
    await session.commit()

    current = await svc.get_submission(session, world.hike.id, world.ana.id)
    assert current.id == s.id
    assert current.status is SubmissionStatus.COMPLETED
    assert current.validated_by == world.reviewer.id
    assert current.validated_at is not None
    assert current.reviewer_comment == "well done"
    assert await ledger.balance(session, world.ana.id) == 350

    with pytest.raises(NotPending):
        await svc.validate_submission(session, directory, s.id, world.reviewer.id)
    await session.rollback()
    assert await ledger.balance(session, world.ana.id) == 350
    assert len(await ledger.entries(session, world.ana.id)) == 1


@pytest.mark.asyncio
async def test_submit_without_start_creates_pending_submission(session, directory, world):
    s = await svc.submit_challenge(session, directory, world.hike.id, world.ben.id, "  made it  ", "https://img/1.jpg")
    await session.commit()
    assert s.status is SubmissionStatus.PENDING_VALIDATION
    assert s.started_at == s.submitted_at
    assert s.member_comment == "made it"
    assert s.proof_image_url == "https://img/1.jpg"


@pytest.mark.asyncio
@pytest.mark.parametrize("comment", ["", "   ", "\n\t", None])
async def test_submit_requires_comment_and_leaves_submission_untouched(session, directory, world, comment):
    s = await svc.start_challenge(session, directory, world.hike.id, world.alex.id)
    await session.commit()
    sid = s.id

    with pytest.raises(CommentRequired):
        await svc.submit_challenge(session, directory, world.hike.id, world.alex.id, comment)
    await session.rollback()

    current = await svc.get_submission(session, world.hike.id, world.alex.id)
    assert current.id == sid
    assert current.status is SubmissionStatus.STARTED
    assert current.submitted_at is None
    assert current.member_comment is None


@pytest.mark.asyncio
async def test_start_rejects_re_entry(session, directory, world):
    await svc.start_challenge(session, directory, world.hike.id, world.ana.id)
    await session.commit()
    with pytest.raises(AlreadyStarted):
        await svc.start_challenge(session, directory, world.hike.id, world.ana.id)
    await session.rollback()

    s = await svc.submit_challenge(session, directory, world.hike.id, world.ana.id, "done")
    await session.commit()
    sid = s.id
    with pytest.raises(AlreadyPendingReview):
        await svc.start_challenge(session, directory, world.hike.id, world.ana.id)
    await session.rollback()
    with pytest.raises(AlreadyPendingReview):
        await svc.submit_challenge(session, directory, world.hike.id, world.ana.id, "again")
    await session.rollback()

    await svc.validate_submission(session, directory, sid, world.reviewer.id)
    await session.commit()
    with pytest.raises(AlreadyCompleted):
        await svc.start_challenge(session, directory, world.hike.id, world.ana.id)
    await session.rollback()
    with pytest.raises(AlreadyCompleted):
        await svc.submit_challenge(session, directory, world.hike.id, world.ana.id, "again")
    await session.rollback()


@pytest.mark.asyncio
async def test_only_members_can_start_or_submit(session, directory, world):
    with pytest.raises(NotAMember):
        await svc.start_challenge(session, directory, world.hike.id, world.reviewer.id)
    with pytest.raises(NotAMember):
        await svc.submit_challenge(session, directory, world.hike.id, world.group.id, "done")


@pytest.mark.asyncio
async def test_unknown_challenge(session, directory, world):
    with pytest.raises(ChallengeNotFound):
        await svc.start_challenge(session, directory, world.group.id, world.ana.id)


@pytest.mark.asyncio
async def test_review_of_unknown_submission(session, directory, world):
    with pytest.raises(NotFound):
        await svc.validate_submission(session, directory, world.group.id, world.reviewer.id)
    with pytest.raises(NotFound):
        await svc.reject_submission(session, world.group.id, world.reviewer.id)


@pytest.mark.asyncio
async def test_validate_requires_pending(session, directory, world):
    s = await svc.start_challenge(session, directory, world.hike.id, world.ana.id)
    await session.commit()
    with pytest.raises(NotPending):
        await svc.validate_submission(session, directory, s.id, world.reviewer.id)
    with pytest.raises(NotPending):
        await svc.reject_submission(session, s.id, world.reviewer.id)


class _ChallengeGone(SqlDirectory):
    async def get_challenge(self, challenge_id):
        return None


@pytest.mark.asyncio
async def test_validate_fails_when_challenge_vanished(session, directory, world):
    s = await _pending(session, directory, world, world.ben)
    with pytest.raises(ChallengeNotFound):
        await svc.validate_submission(session, _ChallengeGone(session), s.id, world.reviewer.id)
    await session.rollback()

    current = await svc.get_submission(session, world.hike.id, world.ben.id)
    assert current.status is SubmissionStatus.PENDING_VALIDATION
    assert await ledger.balance(session, world.ben.id) == 100


@pytest.mark.asyncio
async def test_reject_expires_without_points(session, directory, world):
    s = await _pending(session, directory, world, world.ben)
    await svc.reject_submission(session, s.id, world.reviewer.id, "photo missing")
    await session.commit()

    current = await svc.get_submission(session, world.hike.id, world.ben.id)
    assert current.status is SubmissionStatus.EXPIRED
    assert current.validated_by == world.reviewer.id
    assert current.reviewer_comment == "photo missing"
    assert await ledger.balance(session, world.ben.id) == 100

    with pytest.raises(NotPending):
        await svc.validate_submission(session, directory, s.id, world.reviewer.id)


@pytest.mark.asyncio
async def test_retry_after_rejection_opens_new_attempt(session, directory, world):
    first = await _pending(session, directory, world, world.ben)
    await svc.reject_submission(session, first.id, world.reviewer.id)
    await session.commit()

    second = await svc.start_challenge(session, directory, world.hike.id, world.ben.id, allow_retry=True)
    await session.commit()
    assert second.id != first.id
    assert second.attempt == 2
    assert second.status is SubmissionStatus.STARTED

    current = await svc.get_submission(session, world.hike.id, world.ben.id)
    assert current.id == second.id

    second = await svc.submit_challenge(session, directory, world.hike.id, world.ben.id, "second try")
    await session.commit()
    await svc.validate_submission(session, directory, second.id, world.reviewer.id)
    await session.commit()
    assert await ledger.balance(session, world.ben.id) == 150
    assert [s.attempt for s in await svc.list_submissions_for_member(session, world.ben.id)] == [2, 1]


@pytest.mark.asyncio
async def test_retry_after_rejection_can_be_disabled(session, directory, world):
    first = await _pending(session, directory, world, world.ben)
    await svc.reject_submission(session, first.id, world.reviewer.id)
    await session.commit()

    with pytest.raises(AttemptRejected):
        await svc.start_challenge(session, directory, world.hike.id, world.ben.id, allow_retry=False)
    with pytest.raises(AttemptRejected):
        await svc.submit_challenge(session, directory, world.hike.id, world.ben.id, "again", allow_retry=False)


@pytest.mark.asyncio
async def test_stale_validate_loses_to_concurrent_reviewer(session_factory, session, directory, world):
    """Second reviewer read the row while it was pending; its write must not land."""
    s = await _pending(session, directory, world, world.ben)

    async with session_factory() as a, session_factory() as b:
        stale = await a.get(Submission, s.id)
        assert stale.status is SubmissionStatus.PENDING_VALIDATION

        await svc.validate_submission(b, SqlDirectory(b), s.id, world.reviewer.id)
        await b.commit()

        with pytest.raises(NotPending):
            await svc.apply_transition(a, stale, Action.VALIDATE, validated_by=world.reviewer.id)
        assert stale.status is SubmissionStatus.COMPLETED
        await a.rollback()

    assert await ledger.balance(session, world.ben.id) == 150
    assert len(await ledger.entries(session, world.ben.id)) == 1


@pytest.mark.asyncio
async def test_pending_queue_for_group(session, directory, world):
    on_hike = await _pending(session, directory, world, world.ana)
    on_knots = await _pending(session, directory, world, world.alex, challenge=world.knots)
    await _pending(session, directory, world, world.outsider)
    await svc.start_challenge(session, directory, world.hike.id, world.ben.id)
    await session.commit()

    ids = {s.id for s in await svc.list_pending_for_group(session, world.group.id)}
    assert ids == {on_hike.id, on_knots.id}

    scoped_only = await svc.list_pending_for_group(session, world.group.id, include_unscoped=False)
    assert [s.id for s in scoped_only] == [on_hike.id]


@pytest.mark.asyncio
async def test_processed_history_for_group(session, directory, world):
    ok = await _pending(session, directory, world, world.ana)
    ko = await _pending(session, directory, world, world.alex)
    await _pending(session, directory, world, world.ben)
    await svc.validate_submission(session, directory, ok.id, world.reviewer.id)
    await svc.reject_submission(session, ko.id, world.reviewer.id)
    await session.commit()

    processed = await svc.list_processed_for_group(session, world.group.id)
    assert {s.id for s in processed} == {ok.id, ko.id}
    assert all(s.status.is_terminal for s in processed)


@pytest.mark.asyncio
async def test_duplicate_attempt_is_a_conflict_left_for_caller_to_roll_back(session, directory, world):
    first = await _pending(session, directory, world, world.ben)
    first_id = first.id

    with pytest.raises(SubmissionConflict):
        await svc._open_attempt(
            session, None, world.hike.id, world.ben.id, SubmissionStatus.STARTED, datetime.now(timezone.utc),
        )
    await session.rollback()

    current = await svc.get_submission(session, world.hike.id, world.ben.id)
    assert current.id == first_id
    assert current.status is SubmissionStatus.PENDING_VALIDATION


@pytest.mark.asyncio
async def test_submissions_for_challenge(session, directory, world):
    ana = await _pending(session, directory, world, world.ana)
    ben_first = await _pending(session, directory, world, world.ben)
    await _pending(session, directory, world, world.alex, challenge=world.knots)
    await svc.reject_submission(session, ben_first.id, world.reviewer.id)
    ben_second = await svc.start_challenge(session, directory, world.hike.id, world.ben.id)
    await session.commit()

    rows = await svc.list_submissions_for_challenge(session, world.hike.id)
    assert [s.id for s in rows] == [ben_second.id, ben_first.id, ana.id]
    assert [s.status for s in rows] == [
        SubmissionStatus.STARTED, SubmissionStatus.EXPIRED, SubmissionStatus.PENDING_VALIDATION,
    ]
    assert await svc.list_submissions_for_challenge(session, world.old.id) == []
