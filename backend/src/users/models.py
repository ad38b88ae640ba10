import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base


def _default_notifications() -> dict[str, bool]:
    return {"email": True, "push": True, "study_reminders": True}


class User(Base):
    """Learner profile, preferences and aggregate learning stats.

    Rows are created on first access by an authenticated identity; credentials
    live with the identity provider.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Profile
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    learning_preferences: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    skill_level: Mapped[str] = mapped_column(String(20), nullable=False, default="beginner")

    # Preferences
    daily_goal_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    notifications: Mapped[dict[str, bool]] = mapped_column(JSON, nullable=False, default=_default_notifications)
    theme: Mapped[str] = mapped_column(String(10), nullable=False, default="light")

    # Stats
    total_lessons_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # Minutes
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_goals_achieved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}  # noqa: RUF012


class AppliedStatsEvent(Base):
    """Idempotency record: one row per domain event already folded into user stats."""

    __tablename__ = "applied_stats_events"
    __table_args__ = (UniqueConstraint("user_id", "event_key", name="uq_user_event_key"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    event_key: Mapped[str] = mapped_column(String(200), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
