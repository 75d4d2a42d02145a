"""
Challenge submissions: start, submit, validate, reject.

Status writes are conditional on the status observed when the caller read the
row (`UPDATE ... WHERE id = :id AND status = :observed`). When the write
matches nothing another request got there first, and the error raised is the
one the transition table gives for whatever status the row holds now. That is
what keeps a submission from being validated (and paid out) twice.

Nothing here commits; the caller commits once per operation, so the status
change and the points award land together or not at all.
"""
from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from uuid import UUID
import structlog
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from questrank.config import settings
from questrank.errors import (
    ChallengeNotFound,
    CommentRequired,
    NotAMember,
    NotFound,
    SubmissionConflict,
)
from questrank.models.challenge import Challenge
from questrank.models.member import Member, MemberRole
from questrank.models.submission import Submission, SubmissionStatus
from questrank.services import ledger
from questrank.services.directory import Directory, ChallengeDirectory, MemberDirectory
from questrank.services.transitions import Action, opens_new_attempt, transition

log = structlog.get_logger()


def _now() -> datetime:
    return datetime.now(dt_tz.utc)

def _clean(text: str | None) -> str | None:
    text = (text or "").strip()
    return text or None

def _retry_allowed(allow_retry: bool | None) -> bool:
    return settings.allow_retry_after_rejection if allow_retry is None else allow_retry


# ---------- reads ----------

async def get_submission(session: AsyncSession, challenge_id: UUID, member_id: UUID) -> Submission | None:
    """Current (latest) attempt for the pair, or None."""
    return await session.scalar(
        select(Submission)
        .where(Submission.challenge_id == challenge_id, Submission.member_id == member_id)
        .order_by(Submission.attempt.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )

async def get_submission_by_id(session: AsyncSession, submission_id: UUID) -> Submission:
    s = await session.get(Submission, submission_id, populate_existing=True)
    if not s:
        raise NotFound()
    return s

async def list_submissions_for_member(session: AsyncSession, member_id: UUID) -> list[Submission]:
    return list((await session.execute(
        select(Submission)
        .where(Submission.member_id == member_id)
        .order_by(func.coalesce(Submission.submitted_at, Submission.started_at).desc(), Submission.attempt.desc())
        .execution_options(populate_existing=True)
    )).scalars().all())

async def list_submissions_for_challenge(session: AsyncSession, challenge_id: UUID) -> list[Submission]:
    """Every attempt on a challenge, newest first."""
    return list((await session.execute(
        select(Submission)
        .where(Submission.challenge_id == challenge_id)
        .order_by(func.coalesce(Submission.submitted_at, Submission.started_at).desc(), Submission.attempt.desc(), Submission.id)
        .execution_options(populate_existing=True)
    )).scalars().all())

async def list_pending_for_group(
    session: AsyncSession,
    group_id: UUID,
    include_unscoped: bool = True,
) -> list[Submission]:
    """
    Review queue of a group, oldest submission first.
    include_unscoped=False leaves out challenges that belong to no group.
    """
    q = (
        select(Submission)
        .join(Member, Member.id == Submission.member_id)
        .join(Challenge, Challenge.id == Submission.challenge_id)
        .where(Member.group_id == group_id, Submission.status == SubmissionStatus.PENDING_VALIDATION)
    )
    if not include_unscoped:
        q = q.where(Challenge.group_id.is_not(None))
    q = q.order_by(Submission.submitted_at.asc(), Submission.id).execution_options(populate_existing=True)
    return list((await session.execute(q)).scalars().all())

async def list_processed_for_group(session: AsyncSession, group_id: UUID) -> list[Submission]:
    """Completed and rejected submissions of a group, most recently reviewed first."""
    return list((await session.execute(
        select(Submission)
        .join(Member, Member.id == Submission.member_id)
        .where(
            Member.group_id == group_id,
            Submission.status.in_([SubmissionStatus.COMPLETED, SubmissionStatus.EXPIRED]),
        )
        .order_by(Submission.validated_at.desc(), Submission.id)
        .execution_options(populate_existing=True)
    )).scalars().all())


# ---------- helpers ----------

async def _require_member(directory: MemberDirectory, member_id: UUID) -> Member:
    m = await directory.get_member(member_id)
    if not m or m.role != MemberRole.MEMBER:
        raise NotAMember()
    return m

async def _require_challenge(directory: ChallengeDirectory, challenge_id: UUID) -> Challenge:
    ch = await directory.get_challenge(challenge_id)
    if not ch:
        raise ChallengeNotFound()
    return ch

async def _open_attempt(
    session: AsyncSession,
    current: Submission | None,
    challenge_id: UUID,
    member_id: UUID,
    status: SubmissionStatus,
    now: datetime,
    **fields,
) -> Submission:
    s = Submission(
        challenge_id=challenge_id,
        member_id=member_id,
        attempt=(current.attempt + 1) if current else 1,
        status=status,
        started_at=now,
        **fields,
    )
    session.add(s)
    try:
        await session.flush()
    except IntegrityError:
        # Same attempt number inserted by a concurrent request; the caller rolls back
        log.warning("submission_conflict", challenge_id=str(challenge_id), member_id=str(member_id))
        raise SubmissionConflict()
    return s

async def apply_transition(session: AsyncSession, s: Submission, action: Action, **values) -> Submission:
    """
    Move `s` along `action`, writing only if the row still holds the status `s`
    was read with. Raises the transition error for the row's actual status if
    another request changed it in between.
    """
    observed = s.status
    target = transition(observed, action)
    res = await session.execute(
        update(Submission)
        .where(Submission.id == s.id, Submission.status == observed)
        .values(status=target, **values)
        .execution_options(synchronize_session=False)
    )
    await session.refresh(s)
    if res.rowcount != 1:
        log.warning(
            "submission_transition_lost",
            submission_id=str(s.id), action=action.value, observed=observed.value, current=s.status.value,
        )
        transition(s.status, action)
        raise SubmissionConflict()
    return s


# ---------- member actions ----------

async def start_challenge(
    session: AsyncSession,
    directory: Directory,
    challenge_id: UUID,
    member_id: UUID,
    *,
    allow_retry: bool | None = None,
) -> Submission:
    await _require_member(directory, member_id)
    await _require_challenge(directory, challenge_id)

    current = await get_submission(session, challenge_id, member_id)
    status = transition(current.status if current else None, Action.START, allow_retry=_retry_allowed(allow_retry))

    s = await _open_attempt(session, current, challenge_id, member_id, status, _now())
    log.info("submission_started", submission_id=str(s.id), challenge_id=str(challenge_id),
             member_id=str(member_id), attempt=s.attempt)
    return s

async def submit_challenge(
    session: AsyncSession,
    directory: Directory,
    challenge_id: UUID,
    member_id: UUID,
    comment: str | None,
    proof_image_url: str | None = None,
    *,
    allow_retry: bool | None = None,
) -> Submission:
    text = _clean(comment)
    if text is None:
        raise CommentRequired()
    proof = _clean(proof_image_url)

    await _require_member(directory, member_id)
    await _require_challenge(directory, challenge_id)

    current = await get_submission(session, challenge_id, member_id)
    observed = current.status if current else None
    status = transition(observed, Action.SUBMIT, allow_retry=_retry_allowed(allow_retry))

    now = _now()
    if opens_new_attempt(observed, Action.SUBMIT):
        # submit without a prior start: started_at == submitted_at
        s = await _open_attempt(
            session, current, challenge_id, member_id, status, now,
            submitted_at=now, member_comment=text, proof_image_url=proof,
        )
    else:
        s = await apply_transition(session, current, Action.SUBMIT, submitted_at=now, member_comment=text, proof_image_url=proof)

    log.info("submission_submitted", submission_id=str(s.id), challenge_id=str(challenge_id),
             member_id=str(member_id), attempt=s.attempt, has_proof=proof is not None)
    return s


# ---------- reviewer decisions ----------

async def validate_submission(
    session: AsyncSession,
    directory: ChallengeDirectory,
    submission_id: UUID,
    reviewer_id: UUID,
    comment: str | None = None,
) -> Submission:
    s = await get_submission_by_id(session, submission_id)
    transition(s.status, Action.VALIDATE)

    ch = await _require_challenge(directory, s.challenge_id)
    # Read the reward before the submission changes
    points = int(ch.points)

    await apply_transition(
        session, s, Action.VALIDATE,
        validated_by=reviewer_id, validated_at=_now(), reviewer_comment=_clean(comment),
    )
    new_balance = await ledger.award(session, s.member_id, points, ref_submission_id=s.id)

    log.info("submission_validated", submission_id=str(s.id), reviewer_id=str(reviewer_id),
             member_id=str(s.member_id), points=points, balance=new_balance)
    return s

async def reject_submission(
    session: AsyncSession,
    submission_id: UUID,
    reviewer_id: UUID,
    comment: str | None = None,
) -> Submission:
    s = await get_submission_by_id(session, submission_id)
    await apply_transition(
        session, s, Action.REJECT,
        validated_by=reviewer_id, validated_at=_now(), reviewer_comment=_clean(comment),
    )
    log.info("submission_rejected", submission_id=str(s.id), reviewer_id=str(reviewer_id), member_id=str(s.member_id))
    return s
