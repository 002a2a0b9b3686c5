"""HTTP surface through FastAPI's TestClient"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rbac_chat.api.routes import get_session_manager
from rbac_chat.config import REGISTRY_PATH
from rbac_chat.db.artifacts import ArtifactWriter
from rbac_chat.db.models import Base
from rbac_chat.db.repository import SessionStore
from rbac_chat.db.session import make_engine
from rbac_chat.errors import RegistryError
from rbac_chat.extraction import SlotExtractor
from rbac_chat.main import app
from rbac_chat.pipeline.controller import TurnController
from rbac_chat.pipeline.questions import QuestionRenderer
from rbac_chat.registry import SchemaRegistry
from rbac_chat.service import SessionManager


@pytest.fixture
def client(tmp_path):
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)

    manager = SessionManager(
        registry=SchemaRegistry(REGISTRY_PATH, cache_dir=str(tmp_path)),
        controller=TurnController(extractor=SlotExtractor(), questions=QuestionRenderer()),
        store=SessionStore(sessionmaker(bind=engine, expire_on_commit=False)),
        artifacts=ArtifactWriter(tmp_path / "artifacts"),
    )
    app.dependency_overrides[get_session_manager] = lambda: manager
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_check_connection(client):
    response = client.get("/api/check-connection")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["cache-control"] == "no-store"


def test_chat_commits_rule(client):
    response = client.post("/api/chat", json={"message": "Admins can read invoices"})

    body = response.json()
    assert response.status_code == 200
    assert body["outcome"] == "rule_committed"
    assert body["response"] == "Rule added: [admin] can [read] [invoice]."
    assert body["state"]["policy"]["rules"][0]["action"] == "read"
    assert body["state"]["draft"] == {}


def test_chat_requires_message(client):
    assert client.post("/api/chat", json={"message": ""}).status_code == 422
    assert client.post("/api/chat", json={}).status_code == 422


def test_state_and_reset(client):
    client.post("/api/chat", json={"message": "admin"}, params={"session_id": "s1"})

    state = client.get("/api/state", params={"session_id": "s1"}).json()
    assert state["draft"] == {"role": "admin", "type": "RULE"}
    assert [h["role"] for h in state["history"]] == ["user", "system"]
    assert "admin" in state["schema"]["roles"]

    reset = client.post("/api/reset", params={"session_id": "s1"})
    assert reset.status_code == 200
    assert client.get("/api/state", params={"session_id": "s1"}).json()["history"] == []


def test_evaluate_session_policy(client):
    client.post("/api/chat", json={"message": "Admins can read invoices in prod"})

    allowed = client.post(
        "/api/evaluate",
        json={"query": {"role": "admin", "action": "read", "resource": "invoice", "environment": "prod"}},
    ).json()
    denied = client.post(
        "/api/evaluate",
        json={"query": {"role": "admin", "action": "read", "resource": "invoice", "environment": "staging"}},
    ).json()

    assert allowed["allowed"] is True and allowed["reason"] == "explicit allow"
    assert len(allowed["matched_rules"]) == 1
    assert denied == {"allowed": False, "reason": "implicit deny", "matched_rules": []}


def test_evaluate_inline_policy(client):
    policy = {
        "rules": [
            {"rule_id": "r1", "role": "admin", "resource": "invoice", "action": ["read", "delete"]},
            {"rule_id": "r2", "role": "admin", "resource": "invoice", "action": "delete", "effect": "DENY"},
        ]
    }

    body = client.post(
        "/api/evaluate",
        json={"policy": policy, "query": {"role": "admin", "action": "delete", "resource": "invoice"}},
    ).json()

    assert body == {"allowed": False, "reason": "explicit deny", "matched_rules": ["r1", "r2"]}


def test_evaluate_rejects_incomplete_query(client):
    response = client.post("/api/evaluate", json={"query": {"role": "admin", "resource": "invoice"}})
    assert response.status_code == 422


def test_validate_reports_policy(client):
    client.post("/api/chat", json={"message": "Admins can read invoices"})

    report = client.get("/api/validate").json()

    assert report["valid"] is True
    assert report["errors"] == []


def test_registry_failure_is_503(client):
    class BrokenRegistry(SchemaRegistry):
        def get_schema(self):
            raise RegistryError("Registry file not found: /nowhere.yaml")

    manager = app.dependency_overrides[get_session_manager]()
    manager.registry = BrokenRegistry()

    response = client.get("/api/schema")

    assert response.status_code == 503
    assert "Registry file not found" in response.json()["detail"]
