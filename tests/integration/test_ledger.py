"""Streak & XP ledger tests: idempotent crediting and streak transitions."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import func, insert, select

from studyxp.db.models import CompletionCredit, DailyActivity, UserStreak
from studyxp.engagement import ledger, xp_service
from studyxp.engagement.ledger import (
    BASE_XP,
    FLASHCARD_XP,
    record_completion,
    record_flashcard_review,
    set_vacation_mode,
)
from studyxp.engagement.xp_service import get_streak

MON = datetime(2025, 3, 3, 12, 0, tzinfo=timezone.utc)
TUE = datetime(2025, 3, 4, 12, 0, tzinfo=timezone.utc)
WED = datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc)
FRI = datetime(2025, 3, 7, 12, 0, tzinfo=timezone.utc)


class TestIdempotency:
    """One item pays out once."""

    @pytest.mark.asyncio
    async def test_second_completion_awards_nothing(self, db_session, make_user):
        user_id = await make_user()

        first = await record_completion(db_session, user_id, "task", "t1", now=WED)
        assert first["xp_earned"] == BASE_XP
        assert first["already_credited"] is False
        assert first["streak_updated"] is True
        assert first["new_streak"] == 1

        second = await record_completion(db_session, user_id, "task", "t1", now=WED)
        assert second["xp_earned"] == 0
        assert second["already_credited"] is True
        assert second["level_up"] is False
        assert second["new_achievements"] == []

        streak = await get_streak(db_session, user_id)
        assert streak.total_xp == BASE_XP
        assert streak.total_tasks_completed == 1

    @pytest.mark.asyncio
    async def test_same_id_different_type_is_separate(self, db_session, make_user):
        user_id = await make_user()
        await record_completion(db_session, user_id, "task", "42", now=WED)
        result = await record_completion(db_session, user_id, "assignment", "42", now=WED)
        assert result["xp_earned"] == BASE_XP

    @pytest.mark.asyncio
    async def test_lost_credit_race_is_zero_effect(self, db_session, make_user, monkeypatch):
        """A credit inserted between the pre-check and the flush rolls the whole unit back."""
        user_id = await make_user()
        await record_completion(db_session, user_id, "task", "t1", now=WED)

        async def _no_credit(*_args):
            return False

        monkeypatch.setattr(ledger, "has_credit", _no_credit)
        result = await record_completion(db_session, user_id, "task", "t1", now=WED)

        assert result["already_credited"] is True
        assert result["xp_earned"] == 0
        streak = await get_streak(db_session, user_id)
        assert streak.total_xp == BASE_XP
        assert streak.total_tasks_completed == 1

    @pytest.mark.asyncio
    async def test_completion_without_item_id_is_not_deduplicated(self, db_session, make_user):
        user_id = await make_user()
        await record_completion(db_session, user_id, "task", None, now=WED)
        await record_completion(db_session, user_id, "task", None, now=WED)

        streak = await get_streak(db_session, user_id)
        assert streak.total_xp == 2 * BASE_XP
        credits = await db_session.scalar(select(func.count(CompletionCredit.id)))
        assert credits == 0


class TestStreakTransitions:
    @pytest.mark.asyncio
    async def test_three_consecutive_weekdays(self, db_session, make_user):
        """10 + 10 + (10 + 5 bonus) with an empty achievement catalog."""
        user_id = await make_user()

        r1 = await record_completion(db_session, user_id, "task", "a", now=MON)
        r2 = await record_completion(db_session, user_id, "task", "b", now=TUE)
        r3 = await record_completion(db_session, user_id, "task", "c", now=WED)

        assert [r1["xp_earned"], r2["xp_earned"], r3["xp_earned"]] == [10, 10, 15]
        assert r3["new_streak"] == 3

        streak = await get_streak(db_session, user_id)
        assert streak.total_xp == 35
        assert streak.level == 1
        assert streak.current_streak == 3
        assert streak.longest_streak == 3
        assert streak.streak_start_date == date(2025, 3, 3)
        assert streak.last_activity_date == date(2025, 3, 5)

    @pytest.mark.asyncio
    async def test_same_day_does_not_extend(self, db_session, make_user):
        user_id = await make_user()
        await record_completion(db_session, user_id, "task", "a", now=WED)
        result = await record_completion(db_session, user_id, "task", "b", now=WED)
        assert result["new_streak"] == 1
        assert result["streak_updated"] is False

    @pytest.mark.asyncio
    async def test_missed_weekday_restarts(self, db_session, make_user):
        user_id = await make_user()
        await record_completion(db_session, user_id, "task", "a", now=MON)
        await record_completion(db_session, user_id, "task", "b", now=TUE)
        result = await record_completion(db_session, user_id, "task", "c", now=FRI)

        assert result["new_streak"] == 1
        streak = await get_streak(db_session, user_id)
        assert streak.longest_streak == 2
        assert streak.streak_start_date == date(2025, 3, 7)

    @pytest.mark.asyncio
    async def test_level_up_crossing_threshold(self, db_session, make_user):
        """70 -> 80 crosses the level 2 threshold at 75."""
        user_id = await make_user()
        db_session.add(UserStreak(user_id=user_id, total_xp=70, level=1))
        await db_session.commit()

        result = await record_completion(db_session, user_id, "task", "a", now=WED)

        assert result["level_up"] is True
        assert result["previous_level"] == 1
        assert result["new_level"] == 2
        streak = await get_streak(db_session, user_id)
        assert streak.total_xp == 80
        assert streak.level == 2

    @pytest.mark.asyncio
    async def test_local_day_follows_offset(self, db_session, make_user):
        """02:00 UTC in UTC-5 is still the previous local day."""
        user_id = await make_user()
        now = datetime(2025, 3, 6, 2, 0, tzinfo=timezone.utc)
        await record_completion(db_session, user_id, "task", "a", 300, now=now)

        streak = await get_streak(db_session, user_id)
        assert streak.last_activity_date == date(2025, 3, 5)
        activity = await db_session.scalar(select(DailyActivity).where(DailyActivity.user_id == user_id))
        assert activity.activity_date == date(2025, 3, 5)
        assert activity.xp_earned == BASE_XP
        assert activity.tasks_completed == 1

    @pytest.mark.asyncio
    async def test_time_of_day_counters(self, db_session, make_user):
        user_id = await make_user()
        await record_completion(db_session, user_id, "task", "a", now=datetime(2025, 3, 5, 6, 0, tzinfo=timezone.utc))
        await record_completion(db_session, user_id, "task", "b", now=datetime(2025, 3, 5, 23, 15, tzinfo=timezone.utc))
        await record_completion(db_session, user_id, "task", "c", now=WED)

        streak = await get_streak(db_session, user_id)
        assert streak.early_bird_count == 1
        assert streak.night_owl_count == 1


class TestVacationMode:
    @pytest.mark.asyncio
    async def test_vacation_freezes_streak(self, db_session, make_user):
        """A gap that would break the streak is ignored; flat base XP is awarded."""
        user_id = await make_user()
        await record_completion(db_session, user_id, "task", "a", now=MON)

        toggled = await set_vacation_mode(db_session, user_id, True, now=TUE)
        assert toggled["vacation_mode"] is True
        assert toggled["vacation_started_at"] is not None

        result = await record_completion(db_session, user_id, "task", "b", now=FRI)
        assert result["xp_earned"] == BASE_XP
        assert result["new_streak"] == 1
        assert result["streak_updated"] is False

        streak = await get_streak(db_session, user_id)
        assert streak.total_xp == 2 * BASE_XP
        assert streak.current_streak == 1
        assert streak.last_activity_date == date(2025, 3, 3)

    @pytest.mark.asyncio
    async def test_disable_clears_start_time(self, db_session, make_user):
        user_id = await make_user()
        await set_vacation_mode(db_session, user_id, True, now=MON)
        result = await set_vacation_mode(db_session, user_id, False, now=TUE)
        assert result == {"vacation_mode": False, "vacation_started_at": None}


class TestFlashcardReviews:
    @pytest.mark.asyncio
    async def test_review_awards_flashcard_xp_once(self, db_session, make_user):
        user_id = await make_user()

        first = await record_flashcard_review(db_session, user_id, "card-1", now=WED)
        assert first["xp_earned"] == FLASHCARD_XP
        assert first["new_streak"] == 1

        again = await record_flashcard_review(db_session, user_id, "card-1", now=FRI)
        assert again["already_credited"] is True

        streak = await get_streak(db_session, user_id)
        assert streak.total_xp == FLASHCARD_XP
        assert streak.total_tasks_completed == 0

    @pytest.mark.asyncio
    async def test_review_keeps_streak_alive_without_bonus(self, db_session, make_user):
        user_id = await make_user()
        await record_completion(db_session, user_id, "task", "a", now=MON)
        await record_completion(db_session, user_id, "task", "b", now=TUE)
        result = await record_flashcard_review(db_session, user_id, "card-1", now=WED)

        assert result["new_streak"] == 3
        assert result["xp_earned"] == FLASHCARD_XP


class TestStreakRowCreation:
    @pytest.mark.asyncio
    async def test_row_created_concurrently_is_reused(self, db_session, make_user, monkeypatch):
        """If another request inserts the streak row first, the existing row is returned."""
        user_id = await make_user()
        await db_session.execute(insert(UserStreak).values(user_id=user_id, total_xp=30, level=1))
        await db_session.commit()

        real_get_streak = xp_service.get_streak
        calls = {"n": 0}

        async def _miss_first_lookup(db, uid):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return await real_get_streak(db, uid)

        monkeypatch.setattr(xp_service, "get_streak", _miss_first_lookup)

        streak = await xp_service.get_or_create_streak(db_session, user_id)

        assert streak.total_xp == 30
        count = await db_session.scalar(select(func.count()).select_from(UserStreak))
        assert count == 1
