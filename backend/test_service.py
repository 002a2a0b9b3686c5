"""Session manager: persistence, artifacts, audit trail and locking"""

import json
import threading

import pytest
import yaml
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rbac_chat.config import REGISTRY_PATH
from rbac_chat.db.artifacts import POLICY_FILE, REPORT_FILE, ArtifactWriter
from rbac_chat.db.models import Base
from rbac_chat.db.repository import SessionStore
from rbac_chat.db.session import make_engine
from rbac_chat.errors import PersistenceError
from rbac_chat.extraction import SlotExtractor
from rbac_chat.ir.policy import Effect, Policy, Rule
from rbac_chat.pipeline.context import TurnOutcome
from rbac_chat.pipeline.controller import TurnController
from rbac_chat.pipeline.questions import QuestionRenderer
from rbac_chat.policy.evaluator import AccessQuery
from rbac_chat.registry import SchemaRegistry
from rbac_chat.service import SessionManager


@pytest.fixture
def store():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    return SessionStore(sessionmaker(bind=engine, expire_on_commit=False))


def build_manager(store, artifacts_dir):
    return SessionManager(
        registry=SchemaRegistry(REGISTRY_PATH, cache_dir=None),
        controller=TurnController(extractor=SlotExtractor(), questions=QuestionRenderer()),
        store=store,
        artifacts=ArtifactWriter(artifacts_dir),
    )


def test_chat_persists_session_and_artifacts(store, tmp_path):
    manager = build_manager(store, tmp_path)

    reply = manager.chat("Admins can read invoices")

    assert reply.outcome == TurnOutcome.RULE_COMMITTED
    assert [t.role for t in reply.state.conversation] == ["user", "system"]

    saved = json.loads((tmp_path / POLICY_FILE).read_text())
    assert saved["rules"][0]["role"] == "admin"
    assert json.loads((tmp_path / REPORT_FILE).read_text())["valid"] is True
    assert store.audit_trail("default")[0]["action"] == "POLICY_UPDATE"


def test_state_survives_a_restart(store, tmp_path):
    build_manager(store, tmp_path).chat("admin", session_id="s1")

    state = build_manager(store, tmp_path).get_state("s1")

    assert state.draft.role == "admin"
    assert len(state.conversation) == 2


def test_reset_clears_everything(store, tmp_path):
    manager = build_manager(store, tmp_path)
    manager.chat("Admins can read invoices")

    manager.reset()

    state = manager.get_state()
    assert state.policy.rules == [] and state.draft.is_empty() and state.conversation == []
    assert not (tmp_path / POLICY_FILE).exists()
    assert store.load("default") is None
    assert store.audit_trail("default")[-1]["action"] == "SYSTEM_RESET"


def test_reset_reloads_the_registry(store, tmp_path):
    registry_file = tmp_path / "registry.yaml"
    with open(REGISTRY_PATH, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    registry_file.write_text(yaml.safe_dump(data))

    manager = SessionManager(
        registry=SchemaRegistry(str(registry_file), cache_dir=None),
        controller=TurnController(extractor=SlotExtractor(), questions=QuestionRenderer()),
        store=store,
        artifacts=ArtifactWriter(tmp_path / "artifacts"),
    )
    assert "auditor" not in manager.registry.get_schema().roles

    data["roles"].append("auditor")
    registry_file.write_text(yaml.safe_dump(data))
    manager.reset()

    assert "auditor" in manager.registry.get_schema().roles


def test_persistence_failure_keeps_response(store, tmp_path):
    class BrokenStore(SessionStore):
        def save(self, state):
            raise PersistenceError("disk full")

    manager = build_manager(BrokenStore(store.session_factory), tmp_path)

    reply = manager.chat("Admins can read invoices")

    assert reply.response == "Rule added: [admin] can [read] [invoice]."
    assert len(manager.get_state().policy.rules) == 1


def test_validate_and_evaluate(store, tmp_path):
    manager = build_manager(store, tmp_path)
    manager.chat("Admins can read invoices")

    assert manager.validate().valid
    assert manager.evaluate(AccessQuery("admin", "invoice", "read")).allowed

    inline = Policy(rules=[Rule(role="admin", resource="invoice", action="read", effect=Effect.DENY)])
    assert not manager.evaluate(AccessQuery("admin", "invoice", "read"), policy=inline).allowed


def test_concurrent_turns_do_not_lose_updates(store, tmp_path):
    manager = build_manager(store, tmp_path)
    messages = [
        "Admins can read invoices",
        "Admins can read reports",
        "Admins can read the system config",
        "Operators can export reports",
    ]

    threads = [threading.Thread(target=manager.chat, args=(m,)) for m in messages]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    state = manager.get_state()
    assert len(state.policy.rules) == 4
    assert len(state.conversation) == 8
