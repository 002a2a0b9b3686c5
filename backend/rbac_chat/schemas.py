from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional, Union


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)


class QueryPayload(BaseModel):
    """One access question: may <role> <action> <resource> [in <environment>]?"""
    role: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)
    resource: str = Field(..., min_length=1)
    environment: Optional[str] = None


class RulePayload(BaseModel):
    rule_id: Optional[str] = None
    role: str
    resource: str
    action: Union[str, List[str]]
    conditions: Dict[str, Any] = {}
    effect: Literal["ALLOW", "DENY"] = "ALLOW"


class PolicyPayload(BaseModel):
    version: str = "1.0"
    rules: List[RulePayload] = []


class EvaluateRequest(BaseModel):
    policy: Optional[PolicyPayload] = None  # Session policy when omitted
    query: QueryPayload

class EvaluateResponse(BaseModel):
    allowed: bool
    reason: str
    matched_rules: List[str] = []


class ChatResponse(BaseModel):
    response: str
    outcome: str
    state: Dict[str, Any]
