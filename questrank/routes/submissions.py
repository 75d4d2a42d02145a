from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from questrank.db import get_session
from questrank.deps import get_directory, http_error
from questrank.errors import ChallengeNotFound, ProgressionError
from questrank.models.submission import Submission
from questrank.schemas.submission import StartRequest, SubmitRequest, ReviewRequest, SubmissionPublic
from questrank.services.directory import SqlDirectory
from questrank.services import submissions as svc

router = APIRouter(tags=["submissions"])

def _pub(s: Submission) -> SubmissionPublic:
    return SubmissionPublic(
        id=s.id,
        challenge_id=s.challenge_id,
        member_id=s.member_id,
        attempt=s.attempt,
        status=s.status,
        started_at=s.started_at,
        submitted_at=s.submitted_at,
        proof_image_url=s.proof_image_url,
        member_comment=s.member_comment,
        validated_by=s.validated_by,
        validated_at=s.validated_at,
        reviewer_comment=s.reviewer_comment,
    )

# ---------- member actions ----------

@router.post("/challenges/{challenge_id}/start", response_model=SubmissionPublic, status_code=201)
async def start(
    payload: StartRequest,
    challenge_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    directory: SqlDirectory = Depends(get_directory),
):
    try:
        s = await svc.start_challenge(session, directory, challenge_id, payload.member_id)
    except ProgressionError as e:
        await session.rollback()
        raise http_error(e)
    await session.commit()
    return _pub(s)

@router.post("/challenges/{challenge_id}/submit", response_model=SubmissionPublic)
async def submit(
    payload: SubmitRequest,
    challenge_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    directory: SqlDirectory = Depends(get_directory),
):
    try:
        s = await svc.submit_challenge(
            session, directory, challenge_id, payload.member_id, payload.comment, payload.proof_image_url,
        )
    except ProgressionError as e:
        await session.rollback()
        raise http_error(e)
    await session.commit()
    return _pub(s)

@router.get("/challenges/{challenge_id}/submissions/{member_id}", response_model=SubmissionPublic)
async def get_for_member(
    challenge_id: UUID = Path(...),
    member_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
):
    s = await svc.get_submission(session, challenge_id, member_id)
    if not s:
        raise HTTPException(status_code=404, detail={"code": "submission_not_found", "message": "No submission for this challenge"})
    return _pub(s)

@router.get("/challenges/{challenge_id}/submissions", response_model=list[SubmissionPublic])
async def list_for_challenge(
    challenge_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    directory: SqlDirectory = Depends(get_directory),
):
    if not await directory.get_challenge(challenge_id):
        raise http_error(ChallengeNotFound())
    return [_pub(s) for s in await svc.list_submissions_for_challenge(session, challenge_id)]

# ---------- reviewer decisions ----------

@router.post("/submissions/{submission_id}/validate", response_model=SubmissionPublic)
async def validate(
    payload: ReviewRequest,
    submission_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
    directory: SqlDirectory = Depends(get_directory),
):
    try:
        s = await svc.validate_submission(session, directory, submission_id, payload.reviewer_id, payload.comment)
    except ProgressionError as e:
        await session.rollback()
        raise http_error(e)
    await session.commit()
    return _pub(s)

@router.post("/submissions/{submission_id}/reject", response_model=SubmissionPublic)
async def reject(
    payload: ReviewRequest,
    submission_id: UUID = Path(...),
    session: AsyncSession = Depends(get_session),
):
    try:
        s = await svc.reject_submission(session, submission_id, payload.reviewer_id, payload.comment)
    except ProgressionError as e:
        await session.rollback()
        raise http_error(e)
    await session.commit()
    return _pub(s)

# ---------- lists ----------

@router.get("/members/{member_id}/submissions", response_model=list[SubmissionPublic])
async def list_for_member(member_id: UUID = Path(...), session: AsyncSession = Depends(get_session)):
    return [_pub(s) for s in await svc.list_submissions_for_member(session, member_id)]

@router.get("/groups/{group_id}/submissions/pending", response_model=list[SubmissionPublic])
async def list_pending(
    group_id: UUID = Path(...),
    include_unscoped: int = Query(default=1, ge=0, le=1, description="0=only challenges scoped to this group"),
    session: AsyncSession = Depends(get_session),
):
    rows = await svc.list_pending_for_group(session, group_id, include_unscoped=bool(include_unscoped))
    return [_pub(s) for s in rows]

@router.get("/groups/{group_id}/submissions/processed", response_model=list[SubmissionPublic])
async def list_processed(group_id: UUID = Path(...), session: AsyncSession = Depends(get_session)):
    return [_pub(s) for s in await svc.list_processed_for_group(session, group_id)]
