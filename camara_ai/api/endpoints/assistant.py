import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from camara_ai.assistant.errors import AssistantError
from camara_ai.assistant.llm import OpenAIChatModel
from camara_ai.assistant.service import AssistantService
from camara_ai.assistant.sessions import InMemorySessionStore
from camara_ai.assistant.tools import TOOL_DEFINITIONS
from camara_ai.core import schemas
from camara_ai.core.database import AsyncSessionLocal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["Assistant"])

session_store = InMemorySessionStore()

# Created on first use so the app starts without model credentials
_assistant: Optional[AssistantService] = None


def get_assistant() -> AssistantService:
    global _assistant
    if _assistant is None:
        _assistant = AssistantService(
            model=OpenAIChatModel(),
            session_factory=AsyncSessionLocal,
            store=session_store,
        )
    return _assistant


assistant_dep = Annotated[AssistantService, Depends(get_assistant)]


def require_question(question: str) -> str:
    question = question.strip()
    if not question:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Question must not be empty")
    return question


def processing_error(e: AssistantError) -> HTTPException:
    logger.error(f"Question failed: {e.kind}: {e.message}")
    return HTTPException(
        status.HTTP_502_BAD_GATEWAY,
        f"Erro ao processar sua pergunta: {e.message}",
    )


@router.post("/ask", response_model=schemas.AskResponse)
async def ask(payload: schemas.AskRequest, assistant: assistant_dep):
    """
    Answer a question about deputies' expenses.
    Send back the returned sessionId to keep the conversation going.
    """
    question = require_question(payload.question)
    try:
        result = await assistant.answer(question, session_id=payload.session_id)
    except AssistantError as e:
        raise processing_error(e)
    return schemas.AskResponse(
        session_id=result.session_id, question=question, answer=result.answer
    )


@router.post("/ask-detailed", response_model=schemas.DetailedAskResponse)
async def ask_detailed(payload: schemas.DetailedAskRequest, assistant: assistant_dep):
    """Answer without conversation memory, also returning the query and raw rows."""
    question = require_question(payload.question)
    try:
        result = await assistant.answer_detailed(question)
    except AssistantError as e:
        raise processing_error(e)
    return schemas.DetailedAskResponse(
        question=question,
        answer=result.answer,
        query=result.query,
        result=result.result,
        tools=[
            schemas.ToolExecutionResponse(
                tool=execution.tool,
                arguments=execution.arguments,
                ok=execution.ok,
                error=execution.error,
            )
            for execution in result.tools
        ],
    )


@router.delete("/sessions/{session_id}", response_model=schemas.ClearSessionResponse)
async def clear_session(session_id: str, assistant: assistant_dep):
    """Forget the conversation history of a session."""
    existed = await assistant.clear_session(session_id)
    return {"ok": True, "existed": existed}


@router.get("/tools", response_model=List[schemas.ToolInfo])
async def list_tools():
    """The analytic operations the assistant can use."""
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.schema()["function"]["parameters"],
        }
        for tool in TOOL_DEFINITIONS
    ]
