"""Session Repository — load / create / save MoralSession aggregates through a SessionStore.

Invariants:
    - The store only ever sees snapshot dicts produced by core/session_snapshot.py
    - get_or_create() never overwrites an existing session
"""

import logging

from goodfaith.core.errors import ErrorContext, ResourceNotFoundError
from goodfaith.core.graph_model import MoralSession, validate_entity
from goodfaith.core.repository_protocols import SessionStore
from goodfaith.core.session_snapshot import session_from_snapshot, session_to_snapshot

logger = logging.getLogger(__name__)


class SessionRepository:

    def __init__(self, store: SessionStore):
        self.store = store

    async def find(self, user_id: str) -> MoralSession | None:
        data = await self.store.load(user_id)
        return session_from_snapshot(data) if data is not None else None

    async def get(self, user_id: str) -> MoralSession:
        session = await self.find(user_id)
        if session is None:
            raise ResourceNotFoundError(
                "Session", user_id, context=ErrorContext(user_id=user_id),
            )
        return session

    async def get_or_create(self, user_id: str) -> MoralSession:
        session = await self.find(user_id)
        if session is not None:
            return session
        session = validate_entity(MoralSession, {"user_id": user_id})
        await self.save(session)
        logger.info("Session created", extra={"user_id": user_id})
        return session

    async def save(self, session: MoralSession) -> None:
        await self.store.save(session.user_id, session_to_snapshot(session))
