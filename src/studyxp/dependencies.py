"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Header, HTTPException

from studyxp.redis_client import get_redis as _get_redis


async def get_redis_dep() -> AsyncGenerator[object, None]:
    """Yield the Redis client (or None) as a FastAPI dependency."""
    yield _get_redis()


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> int:
    """Resolve the caller from the X-User-Id header set by the auth gateway."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Unauthorized") from None
    if user_id <= 0:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id
