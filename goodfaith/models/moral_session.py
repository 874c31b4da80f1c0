"""MoralSession ORM — persists one session snapshot per user.

Invariants:
    - user_id is the primary key (one session per user)
    - snapshot is the flat document produced by core/session_snapshot.py
    - current_stage/terminal denormalized from the snapshot for cheap listing

Design Decisions:
    - JSON column for the whole aggregate: the session is always loaded and saved whole
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from goodfaith.db.base import Base


class MoralSessionRecord(Base):
    """Snapshot row for a user's MoralSession."""
    __tablename__ = "moral_sessions"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    snapshot: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    current_stage: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    terminal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
