import json
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from rbac_chat.errors import PersistenceError
from rbac_chat.ir.draft import Draft
from rbac_chat.ir.policy import Policy
from rbac_chat.ir.session import ConversationTurn, SessionState
from .models import AuditEntry, SessionRecord

logger = logging.getLogger(__name__)

POLICY_UPDATE = "POLICY_UPDATE"
SYSTEM_RESET = "SYSTEM_RESET"


class SessionStore:
    """
    Durable session state and audit trail.

    Every database failure is re-raised as PersistenceError so callers
    deal with one exception type.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def load(self, session_id: str) -> Optional[SessionState]:
        try:
            with self.session_factory() as db:
                record = db.get(SessionRecord, session_id)
                if record is None:
                    return None
                return _to_state(record)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load session '{session_id}': {e}") from e

    def save(self, state: SessionState) -> None:
        try:
            with self.session_factory() as db:
                record = db.get(SessionRecord, state.session_id)
                if record is None:
                    record = SessionRecord(id=state.session_id)
                    db.add(record)

                record.draft = json.dumps(state.draft.to_dict())
                record.policy = json.dumps(state.policy.to_dict())
                record.conversation = json.dumps(state.history())
                db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not save session '{state.session_id}': {e}") from e

    def delete(self, session_id: str) -> None:
        try:
            with self.session_factory() as db:
                record = db.get(SessionRecord, session_id)
                if record is not None:
                    db.delete(record)
                    db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not delete session '{session_id}': {e}") from e

    def append_audit(self, session_id: str, action: str, details: Optional[Dict[str, Any]] = None) -> None:
        try:
            with self.session_factory() as db:
                db.add(
                    AuditEntry(
                        session_id=session_id,
                        action=action,
                        details=json.dumps(details or {}),
                    )
                )
                db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not append audit entry: {e}") from e

    def audit_trail(self, session_id: str) -> list:
        try:
            with self.session_factory() as db:
                entries = (
                    db.query(AuditEntry)
                    .filter(AuditEntry.session_id == session_id)
                    .order_by(AuditEntry.id)
                    .all()
                )
                return [
                    {"action": e.action, "details": json.loads(e.details or "{}")}
                    for e in entries
                ]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not read audit trail: {e}") from e


def _to_state(record: SessionRecord) -> SessionState:
    conversation = [
        ConversationTurn(
            role=t.get("role", "system"),
            content=t.get("content", ""),
            timestamp=t.get("timestamp", 0),
        )
        for t in json.loads(record.conversation or "[]")
    ]
    return SessionState(
        session_id=record.id,
        draft=Draft.from_dict(json.loads(record.draft or "{}")),
        policy=Policy.from_dict(json.loads(record.policy or "{}")),
        conversation=conversation,
    )
