"""Pydantic response models for leaderboard endpoints."""

from pydantic import BaseModel


class InstitutionLeaderboardEntry(BaseModel):
    rank: int
    institution_id: int
    institution_name: str
    acronym: str | None = None
    total_xp: int
    user_count: int
    is_user_institution: bool = False


class InstitutionLeaderboardResponse(BaseModel):
    leaderboard: list[InstitutionLeaderboardEntry]
    month: str
    user_institution_id: int | None = None
