"""Tests for unified session reads.

Tests cover:
- Default ordering (planned first, then by session number)
- Pagination across completed and planned sessions
- Status, type, search and date filters, and matching counts
- Multi-column sorting on metrics vs targets, inverted pace
- Planned dates exposed as dates
- Session types and lookups by id (linked plans hidden)
"""

from datetime import datetime, timezone

import pytest

from runlog.sessions.filters import SessionFilters
from runlog.sessions.read import fetch_session_by_id, fetch_session_count, fetch_session_types, fetch_sessions
from runlog.sessions.schemas import CompletedSessionCreate, PlannedSessionCreate, SessionView, WeatherData
from runlog.sessions.write import (
    bulk_create_sessions,
    create_completed_session,
    update_session_weather,
)


def _utc(month: int, day: int) -> datetime:
    return datetime(2024, month, day, 7, tzinfo=timezone.utc)


@pytest.fixture
def sessions(db_session, user_id) -> dict[str, str]:
    """Three completed and two planned sessions; returns ids by name."""
    created = bulk_create_sessions(
        db_session,
        user_id,
        [
            CompletedSessionCreate(date=_utc(3, 4), session_type="Footing", duration="45:00", distance=8.5),
            CompletedSessionCreate(
                date=_utc(3, 6), session_type="Fractionné", duration="50:00", distance=10.0, comments="VMA piste"
            ),
            CompletedSessionCreate(date=_utc(3, 25), session_type="Footing", duration="33:00", distance=6.0),
            PlannedSessionCreate(session_type="Sortie longue", planned_date=_utc(3, 28), target_distance=18.0),
            PlannedSessionCreate(
                session_type="Footing", planned_date=_utc(4, 2), target_distance=7.0, target_pace="5:20"
            ),
        ],
    )
    return dict(zip(["c1", "c2", "c3", "p1", "p2"], [s.id for s in created]))


def _names(result, sessions: dict[str, str]) -> list[str]:
    by_id = {v: k for k, v in sessions.items()}
    return [by_id[s.id] for s in result]


class TestOrderingAndPagination:
    def test_default_order(self, db_session, user_id, sessions):
        result = fetch_sessions(db_session, SessionFilters(user_id=user_id))

        assert _names(result, sessions) == ["p2", "p1", "c3", "c2", "c1"]
        assert [s.session_number for s in result] == [5, 4, 3, 2, 1]

    def test_page_spans_both_kinds(self, db_session, user_id, sessions):
        result = fetch_sessions(db_session, SessionFilters(user_id=user_id, limit=2, offset=1))

        assert _names(result, sessions) == ["p1", "c3"]

    def test_zero_limit_returns_everything(self, db_session, user_id, sessions):
        assert len(fetch_sessions(db_session, SessionFilters(user_id=user_id, limit=0))) == 5

    def test_offset_past_end(self, db_session, user_id, sessions):
        assert fetch_sessions(db_session, SessionFilters(user_id=user_id, limit=10, offset=10)) == []

    def test_other_user_sees_nothing(self, db_session, sessions):
        assert fetch_sessions(db_session, SessionFilters(user_id="someone-else")) == []


class TestFilters:
    @pytest.mark.parametrize(
        ("filters", "expected"),
        [
            ({"status": "completed"}, {"c1", "c2", "c3"}),
            ({"status": "planned"}, {"p1", "p2"}),
            ({"status": "all"}, {"c1", "c2", "c3", "p1", "p2"}),
            ({"session_type": "Footing"}, {"c1", "c3", "p2"}),
            ({"session_type": "all"}, {"c1", "c2", "c3", "p1", "p2"}),
            ({"search": "piste"}, {"c2"}),
            ({"search": "FOOTING"}, {"c1", "c3", "p2"}),
            ({"search": "   "}, {"c1", "c2", "c3", "p1", "p2"}),
        ],
    )
    def test_filter(self, db_session, user_id, sessions, filters, expected):
        session_filters = SessionFilters(user_id=user_id, **filters)

        result = fetch_sessions(db_session, session_filters)

        assert set(_names(result, sessions)) == expected
        assert fetch_session_count(db_session, session_filters) == len(expected)

    def test_date_from_only_bounds_completed(self, db_session, user_id, sessions):
        """Planned sessions are not filtered by date_from."""
        result = fetch_sessions(db_session, SessionFilters(user_id=user_id, date_from=_utc(3, 5)))

        assert set(_names(result, sessions)) == {"c2", "c3", "p1", "p2"}

    def test_count_ignores_pagination(self, db_session, user_id, sessions):
        assert fetch_session_count(db_session, SessionFilters(user_id=user_id, limit=1)) == 5


class TestSorting:
    def test_distance_uses_targets_for_planned(self, db_session, user_id, sessions):
        result = fetch_sessions(db_session, SessionFilters(user_id=user_id, sort="distance:asc"))

        assert _names(result, sessions) == ["c3", "p2", "c1", "c2", "p1"]

    def test_pace_desc_puts_fastest_first(self, db_session, user_id, sessions):
        result = fetch_sessions(db_session, SessionFilters(user_id=user_id, sort="avg_pace:desc"))

        assert _names(result, sessions) == ["c2", "c1", "p2", "c3", "p1"]

    def test_multi_column(self, db_session, user_id, sessions):
        result = fetch_sessions(db_session, SessionFilters(user_id=user_id, sort="session_type:asc,distance:desc"))

        assert _names(result, sessions) == ["c1", "p2", "c3", "c2", "p1"]

    def test_date_sort_puts_planned_last(self, db_session, user_id, sessions):
        result = fetch_sessions(db_session, SessionFilters(user_id=user_id, sort="date:desc"))

        assert _names(result, sessions)[:3] == ["c3", "c2", "c1"]

    def test_planned_date_as_date(self, db_session, user_id, sessions):
        result = fetch_sessions(
            db_session,
            SessionFilters(user_id=user_id, sort="date:desc", include_planned_date_as_date=True),
        )

        assert _names(result, sessions) == ["p2", "p1", "c3", "c2", "c1"]
        assert result[0].date == _utc(4, 2)

    def test_invalid_sort_falls_back_to_default(self, db_session, user_id, sessions):
        result = fetch_sessions(db_session, SessionFilters(user_id=user_id, sort="bogus:up"))

        assert _names(result, sessions) == ["p2", "p1", "c3", "c2", "c1"]


class TestLookups:
    def test_session_types(self, db_session, user_id, sessions):
        assert fetch_session_types(db_session, user_id) == ["Footing", "Fractionné", "Sortie longue"]

    def test_by_id(self, db_session, user_id, sessions):
        completed = fetch_session_by_id(db_session, user_id, sessions["c2"])
        planned = fetch_session_by_id(db_session, user_id, sessions["p2"])

        assert completed.status == "completed"
        assert completed.comments == "VMA piste"
        assert planned.status == "planned"
        assert planned.target_pace == "05:20"
        assert planned.date is None

    def test_by_id_other_user(self, db_session, sessions):
        assert fetch_session_by_id(db_session, "someone-else", sessions["c1"]) is None

    def test_linked_plan_not_returned_by_its_own_id(self, db_session, user_id):
        from runlog.db.models import Workout
        from runlog.intervals.types import IntervalDetails

        created = create_completed_session(
            db_session,
            user_id,
            CompletedSessionCreate(
                date=_utc(3, 4),
                session_type="VMA",
                duration="40:00",
                distance=8.0,
                interval_details=IntervalDetails(workout_type="VMA", repetition_count=8),
            ),
        )
        plan_id = db_session.get(Workout, created.id).plan_session_id

        assert fetch_session_by_id(db_session, user_id, plan_id) is None

    def test_weather_only_in_export_and_full_views(self, db_session, user_id, sessions):
        update_session_weather(db_session, user_id, sessions["c1"], WeatherData(temperature=12.0))

        table = fetch_session_by_id(db_session, user_id, sessions["c1"], view=SessionView.TABLE)
        export = fetch_session_by_id(db_session, user_id, sessions["c1"], view=SessionView.EXPORT)

        assert table.weather is None
        assert export.weather.temperature == 12.0
