"""SQL Session Store — SessionStore protocol over the moral_sessions table.

Invariants:
    - One row per user id; save() upserts
    - Snapshots are stored as produced by core/session_snapshot.py (no re-encoding)
"""

from datetime import datetime, timezone

from goodfaith.infrastructure.database import DatabaseSessionManager
from goodfaith.models.moral_session import MoralSessionRecord


class SqlSessionStore:
    """Persists MoralSession snapshots keyed by user id."""

    def __init__(self, db: DatabaseSessionManager):
        self.db = db

    async def load(self, user_id: str) -> dict | None:
        async with self.db.session() as session:
            row = await session.get(MoralSessionRecord, user_id)
            return dict(row.snapshot) if row is not None else None

    async def save(self, user_id: str, snapshot: dict) -> None:
        now = datetime.now(timezone.utc)
        async with self.db.session() as session:
            row = await session.get(MoralSessionRecord, user_id)
            if row is None:
                row = MoralSessionRecord(user_id=user_id, created_at=now)
                session.add(row)
            row.snapshot = snapshot
            row.current_stage = int(snapshot.get("current_stage", 1))
            row.terminal = bool(snapshot.get("terminal", False))
            row.updated_at = now
            await session.commit()
