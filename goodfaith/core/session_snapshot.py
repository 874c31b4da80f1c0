"""Session Snapshot — serialization / deserialization for MoralSession.

Invariants:
    - session_to_snapshot produces a JSON-safe dict (no datetimes, no Enums)
    - session_from_snapshot reconstructs a MoralSession from any valid snapshot dict
    - Missing keys fall back to MoralSession defaults (forward-compatible)
    - Unknown keys are ignored; invalid values raise EntityValidationError
"""

from goodfaith.core.graph_model import MoralSession, validate_entity

SNAPSHOT_VERSION = 1

_KNOWN_FIELDS: frozenset[str] = frozenset(MoralSession.model_fields)


def session_to_snapshot(session: MoralSession) -> dict:
    """Serialize MoralSession to a flat JSON-safe document. Pure, no IO."""
    return {
        "snapshot_version": SNAPSHOT_VERSION,
        **session.model_dump(mode="json"),
    }


def session_from_snapshot(data: dict) -> MoralSession:
    """Reconstruct MoralSession from snapshot dict. Pure, no IO."""
    fields = {k: v for k, v in data.items() if k in _KNOWN_FIELDS}
    session = validate_entity(MoralSession, fields)
    session.completed_stages = sorted(set(session.completed_stages))
    return session
