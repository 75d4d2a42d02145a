from __future__ import annotations
from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from questrank.db import get_session
from questrank.errors import ProgressionError
from questrank.services.directory import SqlDirectory

async def get_directory(session: AsyncSession = Depends(get_session)) -> SqlDirectory:
    return SqlDirectory(session)

def http_error(e: ProgressionError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.detail)
