import copy
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from rbac_chat.db.artifacts import ArtifactWriter
from rbac_chat.db.repository import POLICY_UPDATE, SYSTEM_RESET, SessionStore
from rbac_chat.errors import PersistenceError
from rbac_chat.ir.policy import Policy
from rbac_chat.ir.session import SessionState
from rbac_chat.pipeline.context import TurnOutcome
from rbac_chat.pipeline.controller import TurnController
from rbac_chat.policy.evaluator import AccessDecision, AccessQuery, evaluate_access
from rbac_chat.registry import SchemaRegistry
from rbac_chat.validation.policy_validator import PolicyValidationReport, PolicyValidator

logger = logging.getLogger(__name__)

DEFAULT_SESSION_ID = "default"


@dataclass
class ChatReply:
    response: str
    outcome: TurnOutcome
    state: SessionState


class SessionManager:
    """
    Single writer per session.

    Each session id gets its own lock, held across load -> turn -> save so
    two concurrent turns on one session run one after the other. The new
    draft and policy replace the stored ones only once the turn has settled.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        controller: TurnController,
        store: SessionStore,
        artifacts: ArtifactWriter,
    ):
        self.registry = registry
        self.controller = controller
        self.store = store
        self.artifacts = artifacts

        self._states: Dict[str, SessionState] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, session_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.Lock()
            return lock

    def _load(self, session_id: str) -> SessionState:
        state = self._states.get(session_id)
        if state is not None:
            return state

        try:
            state = self.store.load(session_id)
        except PersistenceError:
            logger.exception("Loading session %s failed, starting fresh", session_id)
            state = None

        if state is None:
            state = SessionState(session_id=session_id)

        self._states[session_id] = state
        return state

    # ----------------------------
    # Operations
    # ----------------------------

    def chat(self, text: str, session_id: str = DEFAULT_SESSION_ID) -> ChatReply:
        with self._lock_for(session_id):
            state = self._load(session_id)
            schema = self.registry.get_schema()

            result = self.controller.run_turn(text, state.draft, state.policy, schema)

            state.log("user", text)
            state.draft = result.draft
            state.policy = result.policy
            state.log("system", result.response)

            self._persist(state, result.outcome, schema)

            return ChatReply(
                response=result.response,
                outcome=result.outcome,
                state=copy.deepcopy(state),
            )

    def get_state(self, session_id: str = DEFAULT_SESSION_ID) -> SessionState:
        with self._lock_for(session_id):
            return copy.deepcopy(self._load(session_id))

    def reset(self, session_id: str = DEFAULT_SESSION_ID) -> None:
        with self._lock_for(session_id):
            self._states[session_id] = SessionState(session_id=session_id)
            try:
                self.store.delete(session_id)
                self.artifacts.clear()
                self.store.append_audit(session_id, SYSTEM_RESET)
            except PersistenceError:
                logger.exception("Reset of session %s was not fully persisted", session_id)

            # A reset also picks up registry edits made since startup
            schema = self.registry.refresh()

            logger.info("Session %s reset (schema version %s)", session_id, schema.version)

    def validate(self, session_id: str = DEFAULT_SESSION_ID) -> PolicyValidationReport:
        with self._lock_for(session_id):
            policy = self._load(session_id).policy
            report = PolicyValidator(self.registry.get_schema()).validate(policy)

            try:
                self.artifacts.write_report(report)
            except PersistenceError:
                logger.exception("Could not write validation report")

            return report

    def evaluate(
        self,
        query: AccessQuery,
        policy: Optional[Policy] = None,
        session_id: str = DEFAULT_SESSION_ID,
    ) -> AccessDecision:
        """Evaluate against ``policy`` when given, else the session's policy."""
        if policy is None:
            with self._lock_for(session_id):
                policy = copy.deepcopy(self._load(session_id).policy)

        return evaluate_access(policy, query)

    # ----------------------------
    # Persistence
    # ----------------------------

    def _persist(self, state: SessionState, outcome: TurnOutcome, schema) -> None:
        # Failures here never cost the user the computed response
        try:
            self.store.save(state)

            report = PolicyValidator(schema).validate(state.policy)
            self.artifacts.write(state.policy, report)
            self.store.append_audit(
                state.session_id,
                POLICY_UPDATE,
                {"outcome": outcome.value, "rule_count": len(state.policy.rules)},
            )
        except PersistenceError:
            logger.exception("Persisting session %s failed", state.session_id)

