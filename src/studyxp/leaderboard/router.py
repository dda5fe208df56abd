"""Leaderboard API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from studyxp.database import get_session
from studyxp.dependencies import get_current_user_id
from studyxp.engagement.clock import utc_now, year_month
from studyxp.leaderboard.schemas import InstitutionLeaderboardResponse
from studyxp.leaderboard.service import get_institution_leaderboard

router = APIRouter(prefix="/api/v1/leaderboard", tags=["Leaderboard"])


@router.get("/institutions", response_model=InstitutionLeaderboardResponse)
async def institution_leaderboard(
    month: str | None = Query(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Institutions ranked by summed XP for a month (default: current UTC month)."""
    return await get_institution_leaderboard(db, month or year_month(utc_now().date()), user_id)
