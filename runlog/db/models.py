"""Database models for training sessions.

Completed sessions live in `workouts` (with raw metrics, external sources
and weather in side tables); planned sessions live in `plan_sessions`. A
plan session linked to a workout through `workouts.plan_session_id` is
hidden from the planned side of the session list.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    """Owner of sessions.

    The row doubles as the per-user lock taken before any session mutation.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    email: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class PlanSession(Base):
    """Planned session.

    Schema:
    - status: "planned", or "completed" once a workout is linked to it
    - target_duration: minutes
    - target_distance: kilometers
    - target_heart_rate_bpm: free text ("155" or "150-160")
    - target_pace_seconds, target_heart_rate_value: numeric sort keys derived
      from target_pace and target_heart_rate_bpm on write
    - interval_details: IntervalDetails JSON
    """

    __tablename__ = "plan_sessions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="planned")
    session_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    planned_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    session_type: Mapped[str | None] = mapped_column(String, nullable=True)
    target_duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    target_distance: Mapped[float | None] = mapped_column(Float, nullable=True)
    target_pace: Mapped[str | None] = mapped_column(String, nullable=True)
    target_pace_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    target_heart_rate_bpm: Mapped[str | None] = mapped_column(String, nullable=True)
    target_heart_rate_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    target_rpe: Mapped[int | None] = mapped_column(Integer, nullable=True)
    interval_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    recommendation_id: Mapped[str | None] = mapped_column(String, nullable=True)
    comments: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (Index("idx_plan_sessions_user_created", "user_id", "created_at"),)


class Workout(Base):
    """Completed session."""

    __tablename__ = "workouts"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)
    plan_session_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("plan_sessions.id"), nullable=True, unique=True, index=True
    )
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="completed")
    session_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    session_type: Mapped[str | None] = mapped_column(String, nullable=True)
    perceived_exertion: Mapped[int | None] = mapped_column(Integer, nullable=True)
    comments: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    plan_session: Mapped[PlanSession | None] = relationship("PlanSession", lazy="joined")
    metrics: Mapped[WorkoutMetricsRaw | None] = relationship(
        "WorkoutMetricsRaw", back_populates="workout", uselist=False, cascade="all, delete-orphan", lazy="joined"
    )
    external_activities: Mapped[list[ExternalActivity]] = relationship(
        "ExternalActivity", back_populates="workout", cascade="all, delete-orphan", order_by="ExternalActivity.created_at"
    )
    weather: Mapped[WeatherObservation | None] = relationship(
        "WeatherObservation", back_populates="workout", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_workouts_user_date", "user_id", "date"),)


class WorkoutMetricsRaw(Base):
    """Measured metrics of a workout, one row per workout."""

    __tablename__ = "workout_metrics_raw"

    workout_id: Mapped[str] = mapped_column(String, ForeignKey("workouts.id", ondelete="CASCADE"), primary_key=True)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    distance_meters: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_pace: Mapped[str | None] = mapped_column(String, nullable=True)
    avg_pace_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    avg_heart_rate: Mapped[int | None] = mapped_column(Integer, nullable=True)
    average_cadence: Mapped[float | None] = mapped_column(Float, nullable=True)
    elevation_gain: Mapped[float | None] = mapped_column(Float, nullable=True)
    calories: Mapped[int | None] = mapped_column(Integer, nullable=True)

    workout: Mapped[Workout] = relationship("Workout", back_populates="metrics")


class ExternalActivity(Base):
    """Link between a workout and its source activity (Strava, TCX upload...)."""

    __tablename__ = "external_activities"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    workout_id: Mapped[str] = mapped_column(String, ForeignKey("workouts.id", ondelete="CASCADE"), nullable=False, index=True)
    source: Mapped[str] = mapped_column(String, nullable=False)
    external_id: Mapped[str] = mapped_column(String, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    workout: Mapped[Workout] = relationship("Workout", back_populates="external_activities")

    __table_args__ = (UniqueConstraint("source", "external_id", name="uq_external_activity_source_id"),)


class WeatherObservation(Base):
    __tablename__ = "weather_observations"

    workout_id: Mapped[str] = mapped_column(String, ForeignKey("workouts.id", ondelete="CASCADE"), primary_key=True)
    observed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    apparent_temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    humidity: Mapped[float | None] = mapped_column(Float, nullable=True)
    wind_speed: Mapped[float | None] = mapped_column(Float, nullable=True)
    precipitation: Mapped[float | None] = mapped_column(Float, nullable=True)
    condition_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    workout: Mapped[Workout] = relationship("Workout", back_populates="weather")


class StravaAccount(Base):
    """Stored Strava credentials. Token refresh happens outside this service."""

    __tablename__ = "strava_accounts"

    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), primary_key=True)
    athlete_id: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    access_token: Mapped[str] = mapped_column(String, nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(String, nullable=True)
    expires_at: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship("User")
