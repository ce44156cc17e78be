"""Tests for ORM-to-session mapping.

Tests cover:
- Completed session fields from workout, metrics and linked plan
- Fallback of type and comments to the linked plan
- Strava preferred as the primary external source
- Weather and raw payload depending on the view
- Invalid stored interval details ignored
- Planned session date exposure
"""

from datetime import datetime, timezone

from runlog.db.models import ExternalActivity, PlanSession, WeatherObservation, Workout, WorkoutMetricsRaw
from runlog.sessions.mapper import map_plan_to_session, map_workout_to_session
from runlog.sessions.schemas import SessionView

WHEN = datetime(2024, 3, 12, 7, 30)


def _workout(**kwargs) -> Workout:
    values = {"id": "w1", "user_id": "u1", "date": WHEN, "session_type": "Footing", "comments": ""}
    values.update(kwargs)
    workout = Workout(**values)
    workout.metrics = WorkoutMetricsRaw(
        duration_seconds=2700, distance_meters=8500.0, avg_pace="05:18", avg_heart_rate=142, calories=610
    )
    return workout


class TestMapWorkout:
    def test_metrics(self):
        session = map_workout_to_session(_workout(session_number=3, week=2, perceived_exertion=4))

        assert session.status == "completed"
        assert session.date == WHEN.replace(tzinfo=timezone.utc)
        assert session.duration == "00:45:00"
        assert session.distance == 8.5
        assert session.avg_pace == "05:18"
        assert session.avg_heart_rate == 142
        assert session.calories == 610
        assert session.session_number == 3
        assert session.week == 2
        assert session.interval_details is None
        assert session.planned_date is None

    def test_without_metrics(self):
        workout = Workout(id="w1", user_id="u1", date=WHEN, comments="")

        session = map_workout_to_session(workout)

        assert session.duration is None
        assert session.distance is None
        assert session.session_number == 0

    def test_linked_plan_supplies_targets_and_fallbacks(self):
        plan = PlanSession(
            id="p1",
            user_id="u1",
            status="completed",
            session_type="Fractionné",
            planned_date=datetime(2024, 3, 11),
            target_pace="04:00",
            comments="Piste",
            interval_details={"workoutType": "VMA", "repetitionCount": 10},
        )
        workout = _workout(session_type=None)
        workout.plan_session = plan

        session = map_workout_to_session(workout)

        assert session.session_type == "Fractionné"
        assert session.comments == "Piste"
        assert session.target_pace == "04:00"
        assert session.planned_date == datetime(2024, 3, 11, tzinfo=timezone.utc)
        assert session.interval_details.repetition_count == 10

    def test_invalid_interval_details_are_ignored(self):
        workout = _workout()
        workout.plan_session = PlanSession(id="p1", user_id="u1", interval_details={"repetitionCount": "many"})

        assert map_workout_to_session(workout).interval_details is None

    def test_strava_is_primary_source(self):
        workout = _workout()
        workout.external_activities = [
            ExternalActivity(source="tcx", external_id="file-1", payload={"laps": 5}),
            ExternalActivity(source="strava", external_id="987", payload={"id": 987}),
        ]

        table = map_workout_to_session(workout, SessionView.TABLE)
        full = map_workout_to_session(workout, SessionView.FULL)

        assert table.source == "strava"
        assert table.external_id == "987"
        assert table.external_payload is None
        assert full.external_payload == {"id": 987}

    def test_weather_by_view(self):
        workout = _workout()
        workout.weather = WeatherObservation(temperature=9.0, humidity=80.0, observed_at=WHEN)

        assert map_workout_to_session(workout, SessionView.TABLE).weather is None
        export = map_workout_to_session(workout, SessionView.EXPORT).weather
        assert export.temperature == 9.0
        assert export.observed_at.tzinfo is not None


class TestMapPlan:
    def test_planned_fields(self):
        plan = PlanSession(
            id="p1",
            user_id="u1",
            session_number=7,
            session_type="Sortie longue",
            planned_date=datetime(2024, 3, 30, 8),
            target_distance=18.0,
            target_heart_rate_bpm="140-150",
            comments=None,
        )

        session = map_plan_to_session(plan)

        assert session.status == "planned"
        assert session.session_number == 7
        assert session.week is None
        assert session.date is None
        assert session.comments == ""
        assert session.target_distance == 18.0
        assert session.effective_distance_km() == 18.0

    def test_planned_date_as_date(self):
        plan = PlanSession(id="p1", user_id="u1", planned_date=datetime(2024, 3, 30, 8))

        session = map_plan_to_session(plan, include_planned_date_as_date=True)

        assert session.date == datetime(2024, 3, 30, 8, tzinfo=timezone.utc)
