from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =========================
# ASK
# =========================
class AskRequest(CamelModel):
    question: str = Field(max_length=2000)
    session_id: Optional[str] = Field(None, max_length=128)


class AskResponse(CamelModel):
    session_id: str
    question: str
    answer: str


class DetailedAskRequest(CamelModel):
    question: str = Field(max_length=2000)


class ToolExecutionResponse(CamelModel):
    tool: str
    arguments: Any = None
    ok: bool
    error: Optional[Dict[str, Any]] = None


class DetailedAskResponse(CamelModel):
    question: str
    answer: str
    query: Optional[str] = None
    result: Any = None
    tools: List[ToolExecutionResponse] = []


# =========================
# SESSIONS / CATALOG
# =========================
class ClearSessionResponse(BaseModel):
    ok: bool
    existed: bool


class ToolInfo(BaseModel):
    name: str
    description: str
    parameters: Dict[str, Any]
