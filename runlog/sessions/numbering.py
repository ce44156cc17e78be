"""Chronological numbering of a user's sessions.

Completed sessions are numbered 1..n by (date, created_at) and get the
1-based rank of their ISO week among the weeks that hold a session. Planned
sessions continue the sequence after the last completed one, ordered by
planned date, and carry no week. A plan linked to a workout shares the
workout's numbers.

Every mutation takes the user row lock first (lock_user) and renumbers in
the same transaction, so concurrent inserts and deletes for one user
serialize and the sequence never has gaps or duplicates.
"""

from __future__ import annotations

from loguru import logger
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from runlog.db.models import PlanSession, User, Workout
from runlog.utils.dates import ensure_utc
from runlog.utils.weeks import iso_week_key


_UPSERT_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


def insert_user_statement(dialect_name: str, user_id: str):
    """INSERT of the user row that leaves an existing row untouched."""
    dialect_insert = _UPSERT_INSERTS.get(dialect_name)
    if dialect_insert is None:
        raise ValueError(f"Unsupported database dialect: {dialect_name}")
    return dialect_insert(User.__table__).values(id=user_id).on_conflict_do_nothing(index_elements=["id"])


def lock_user(session: Session, user_id: str) -> User:
    """Lock the user row for the rest of the transaction, creating it on first use.

    The row is inserted with ON CONFLICT DO NOTHING before the FOR UPDATE
    select, so two first writes for the same user wait on one row instead
    of racing on the primary key.
    """
    inserted = session.execute(insert_user_statement(session.get_bind().dialect.name, user_id))
    if inserted.rowcount:
        logger.info(f"[NUMBERING] Created user row for user_id={user_id}")
    return session.execute(select(User).where(User.id == user_id).with_for_update()).scalar_one()



def _assign(row, session_number: int | None, week: int | None) -> bool:
    if row.session_number == session_number and row.week == week:
        return False
    row.session_number = session_number
    row.week = week
    return True


def recalculate_session_numbers(session: Session, user_id: str) -> int:
    """Renumber all sessions of a user.

    Callers must hold the lock from lock_user().

    Returns:
        Number of rows whose numbering changed
    """
    session.flush()

    workouts = (
        session.execute(
            select(Workout)
            .where(Workout.user_id == user_id)
            .order_by(Workout.date.asc(), Workout.created_at.asc(), Workout.id.asc())
        )
        .scalars()
        .all()
    )

    week_keys = sorted({iso_week_key(ensure_utc(w.date)) for w in workouts})
    week_numbers = {key: index for index, key in enumerate(week_keys, start=1)}

    changed = 0
    linked: dict[str, tuple[int, int]] = {}
    for number, workout in enumerate(workouts, start=1):
        week = week_numbers[iso_week_key(ensure_utc(workout.date))]
        changed += _assign(workout, number, week)
        if workout.plan_session_id:
            linked[workout.plan_session_id] = (number, week)

    plans = (
        session.execute(
            select(PlanSession)
            .where(PlanSession.user_id == user_id)
            .order_by(PlanSession.planned_date.asc().nulls_last(), PlanSession.created_at.asc(), PlanSession.id.asc())
        )
        .scalars()
        .all()
    )

    next_number = len(workouts) + 1
    for plan in plans:
        if plan.id in linked:
            changed += _assign(plan, *linked[plan.id])
        else:
            changed += _assign(plan, next_number, None)
            next_number += 1

    session.flush()
    logger.debug(
        f"[NUMBERING] Renumbered user_id={user_id}: {len(workouts)} completed, "
        f"{next_number - len(workouts) - 1} planned, {changed} changed"
    )
    return changed
