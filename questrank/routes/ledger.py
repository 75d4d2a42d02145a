from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from questrank.db import get_session
from questrank.deps import http_error
from questrank.errors import ProgressionError
from questrank.schemas.ledger import PointsSnapshot, PointsEntryPublic
from questrank.services import ledger

router = APIRouter(tags=["ledger"])

@router.get("/members/{member_id}/points", response_model=PointsSnapshot)
async def get_points(member_id: UUID = Path(...), session: AsyncSession = Depends(get_session)):
    try:
        points = await ledger.balance(session, member_id)
    except ProgressionError as e:
        raise http_error(e)
    entries = await ledger.entries(session, member_id)
    return PointsSnapshot(
        member_id=member_id,
        points=points,
        entries=[
            PointsEntryPublic(
                id=e.id,
                member_id=e.member_id,
                amount=int(e.amount),
                ref_submission_id=e.ref_submission_id,
                note=e.note,
                created_at=e.created_at,
            ) for e in entries
        ],
    )
