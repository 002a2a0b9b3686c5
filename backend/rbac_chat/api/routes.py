import logging
from functools import lru_cache

from fastapi import APIRouter, Depends

from rbac_chat.api.serializers import serialize_state, to_jsonable
from rbac_chat.config import API_VERSION, ARTIFACTS_DIR
from rbac_chat.db.artifacts import ArtifactWriter
from rbac_chat.db.repository import SessionStore
from rbac_chat.db.session import SessionLocal
from rbac_chat.extraction import SlotExtractor
from rbac_chat.inference.config import get_llm_client
from rbac_chat.ir.policy import Policy
from rbac_chat.pipeline.controller import TurnController
from rbac_chat.pipeline.questions import QuestionRenderer
from rbac_chat.policy.evaluator import AccessQuery
from rbac_chat.registry import get_schema_registry
from rbac_chat.schemas import ChatRequest, ChatResponse, EvaluateRequest, EvaluateResponse
from rbac_chat.service import DEFAULT_SESSION_ID, SessionManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@lru_cache(maxsize=1)
def get_session_manager() -> SessionManager:
    client = get_llm_client()
    logger.info("LLM extraction %s", "enabled" if client else "disabled (pattern matching only)")

    return SessionManager(
        registry=get_schema_registry(),
        controller=TurnController(
            extractor=SlotExtractor(client),
            questions=QuestionRenderer(client),
        ),
        store=SessionStore(SessionLocal),
        artifacts=ArtifactWriter(ARTIFACTS_DIR),
    )


@router.get("/check-connection")
def check_connection():
    return {"status": "ok", "version": API_VERSION}


@router.get("/schema")
def get_schema(manager: SessionManager = Depends(get_session_manager)):
    return to_jsonable(manager.registry.get_schema())


@router.get("/state")
def get_state(
    session_id: str = DEFAULT_SESSION_ID,
    manager: SessionManager = Depends(get_session_manager),
):
    state = manager.get_state(session_id)
    return serialize_state(state, manager.registry.get_schema())


@router.post("/reset")
def reset(
    session_id: str = DEFAULT_SESSION_ID,
    manager: SessionManager = Depends(get_session_manager),
):
    manager.reset(session_id)
    return {"message": "Session reset. Policy and draft cleared."}


@router.post("/chat", response_model=ChatResponse)
def chat(
    request: ChatRequest,
    session_id: str = DEFAULT_SESSION_ID,
    manager: SessionManager = Depends(get_session_manager),
):
    reply = manager.chat(request.message, session_id)
    return ChatResponse(
        response=reply.response,
        outcome=reply.outcome.value,
        state=serialize_state(reply.state, manager.registry.get_schema()),
    )


@router.get("/validate")
def validate(
    session_id: str = DEFAULT_SESSION_ID,
    manager: SessionManager = Depends(get_session_manager),
):
    return manager.validate(session_id).to_dict()


@router.post("/evaluate", response_model=EvaluateResponse)
def evaluate(
    request: EvaluateRequest,
    session_id: str = DEFAULT_SESSION_ID,
    manager: SessionManager = Depends(get_session_manager),
):
    policy = None
    if request.policy is not None:
        policy = Policy.from_dict(request.policy.model_dump())

    query = AccessQuery(**request.query.model_dump())
    decision = manager.evaluate(query, policy=policy, session_id=session_id)

    return EvaluateResponse(**decision.to_dict())
