"""Tests for session numbering.

Tests cover:
- Chronological numbering of completed sessions
- Week rank over weeks that hold a session (empty weeks skipped)
- Planned sessions numbered after completed ones, undated last
- Linked plans sharing their workout's numbers
- Idempotence and user row creation (insert-if-missing, then lock)
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql

from runlog.db.models import PlanSession, User, Workout
from runlog.sessions.numbering import insert_user_statement, lock_user, recalculate_session_numbers


def _utc(month: int, day: int, hour: int = 7) -> datetime:
    return datetime(2024, month, day, hour, tzinfo=timezone.utc)


def _workout(user_id: str, when: datetime, **kwargs) -> Workout:
    return Workout(user_id=user_id, date=when, session_type="Footing", **kwargs)


class TestLockUser:
    def test_creates_missing_user(self, db_session, user_id):
        user = lock_user(db_session, user_id)

        assert user.id == user_id
        assert db_session.get(User, user_id) is not None

    def test_returns_existing_user(self, db_session, user_id):
        first = lock_user(db_session, user_id)
        assert lock_user(db_session, user_id) is first

    def test_user_added_elsewhere_is_kept(self, db_session, user_id):
        db_session.add(User(id=user_id, email="runner@example.com"))
        db_session.flush()

        user = lock_user(db_session, user_id)

        assert user.email == "runner@example.com"
        assert db_session.execute(select(func.count()).select_from(User)).scalar_one() == 1

    def test_postgres_insert_skips_existing_row(self):
        sql = str(insert_user_statement("postgresql", "user-1").compile(dialect=postgresql.dialect()))

        assert "ON CONFLICT (id) DO NOTHING" in sql

    def test_unsupported_dialect(self):
        with pytest.raises(ValueError, match="Unsupported database dialect"):
            insert_user_statement("oracle", "user-1")


class TestRecalculate:
    def test_completed_numbers_and_weeks(self, db_session, user_id):
        lock_user(db_session, user_id)
        late = _workout(user_id, _utc(3, 25))
        early = _workout(user_id, _utc(3, 4))
        same_week = _workout(user_id, _utc(3, 6))
        db_session.add_all([late, early, same_week])

        recalculate_session_numbers(db_session, user_id)

        assert [early.session_number, same_week.session_number, late.session_number] == [1, 2, 3]
        # Weeks 10 and 13 of 2024 hold sessions; 11 and 12 are skipped
        assert [early.week, same_week.week, late.week] == [1, 1, 2]

    def test_same_day_ordered_by_time(self, db_session, user_id):
        lock_user(db_session, user_id)
        evening = _workout(user_id, _utc(3, 4, 18))
        morning = _workout(user_id, _utc(3, 4, 6))
        db_session.add_all([evening, morning])

        recalculate_session_numbers(db_session, user_id)

        assert morning.session_number == 1
        assert evening.session_number == 2

    def test_planned_after_completed(self, db_session, user_id):
        lock_user(db_session, user_id)
        undated = PlanSession(user_id=user_id, session_type="Footing")
        later = PlanSession(user_id=user_id, session_type="Footing", planned_date=_utc(4, 2))
        sooner = PlanSession(user_id=user_id, session_type="Footing", planned_date=_utc(3, 28))
        workout = _workout(user_id, _utc(3, 4))
        db_session.add_all([undated, later, sooner, workout])

        recalculate_session_numbers(db_session, user_id)

        assert workout.session_number == 1
        assert [sooner.session_number, later.session_number, undated.session_number] == [2, 3, 4]
        assert sooner.week is None

    def test_linked_plan_shares_workout_numbers(self, db_session, user_id):
        lock_user(db_session, user_id)
        plan = PlanSession(user_id=user_id, status="completed", session_type="VMA", planned_date=_utc(3, 30))
        workout = _workout(user_id, _utc(3, 6))
        workout.plan_session = plan
        other_plan = PlanSession(user_id=user_id, session_type="Footing", planned_date=_utc(3, 28))
        db_session.add_all([workout, other_plan, _workout(user_id, _utc(3, 4))])

        recalculate_session_numbers(db_session, user_id)

        assert (plan.session_number, plan.week) == (workout.session_number, workout.week) == (2, 1)
        assert other_plan.session_number == 3

    def test_second_pass_changes_nothing(self, db_session, user_id):
        lock_user(db_session, user_id)
        db_session.add_all([_workout(user_id, _utc(3, 4)), PlanSession(user_id=user_id, session_type="Footing")])

        assert recalculate_session_numbers(db_session, user_id) == 2
        assert recalculate_session_numbers(db_session, user_id) == 0

    def test_other_users_untouched(self, db_session, user_id):
        lock_user(db_session, user_id)
        lock_user(db_session, "someone-else")
        mine = _workout(user_id, _utc(3, 4))
        theirs = _workout("someone-else", _utc(3, 1))
        db_session.add_all([mine, theirs])

        recalculate_session_numbers(db_session, user_id)

        assert mine.session_number == 1
        assert theirs.session_number is None
