"""
ASSISTANT SERVICE - Orchestrate the conversation with the language model

Flow for one question:
    1. Build history: system prompt + last N question/answer pairs + question
    2. Ask the model
    3. Final text → done
       Tool calls → run the whole batch concurrently, append one tool result
       per call id, go back to 2
    4. Stop after MAX_TOOL_ROUNDS model calls, returning the last text the
       model produced

Failures of a single tool call (unknown tool, bad arguments, database error,
timeout) go back to the model as the result of that call so it can adapt.
A failure of the model itself ends the question with UpstreamModelError.
"""

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import async_sessionmaker

from camara_ai.assistant.errors import AssistantError, ExecutionError, UpstreamModelError
from camara_ai.assistant.executor import run_tool
from camara_ai.assistant.llm import LanguageModel, ModelReply, ToolCallRequest
from camara_ai.assistant.prompts import CAP_REACHED_ANSWER, SYSTEM_PROMPT
from camara_ai.assistant.sessions import SessionStore
from camara_ai.assistant.tools import tool_schemas
from camara_ai.core.config import settings

# Configure logging for the assistant
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

EMPTY_RESULT_MESSAGE = "Nenhum registro encontrado para os filtros informados."


@dataclass
class ToolExecution:
    """What happened to one tool call."""

    call_id: str
    tool: str
    arguments: Any
    ok: bool
    result: Any = None
    query: Optional[str] = None
    error: Optional[Dict[str, Any]] = None

    def to_message(self) -> Dict[str, Any]:
        if not self.ok:
            content = self.error
        elif isinstance(self.result, list):
            content = {"rows": self.result, "row_count": len(self.result)}
            if not self.result:
                content["message"] = EMPTY_RESULT_MESSAGE
        else:
            content = self.result
        return {
            "role": "tool",
            "tool_call_id": self.call_id,
            "content": json.dumps(content, ensure_ascii=False, default=str),
        }


@dataclass
class AssistantAnswer:
    session_id: str
    answer: str


@dataclass
class DetailedAnswer:
    answer: str
    query: Optional[str] = None
    result: Any = None
    tools: List[ToolExecution] = field(default_factory=list)


class AssistantService:
    def __init__(
        self,
        model: LanguageModel,
        session_factory: async_sessionmaker,
        store: SessionStore,
        max_rounds: int = settings.MAX_TOOL_ROUNDS,
        history_pairs: int = settings.HISTORY_WINDOW_PAIRS,
        query_timeout: float = settings.QUERY_TIMEOUT_SECONDS,
        model_timeout: float = settings.MODEL_TIMEOUT_SECONDS,
    ):
        self.model = model
        self.session_factory = session_factory
        self.store = store
        self.max_rounds = max_rounds
        self.history_pairs = history_pairs
        self.query_timeout = query_timeout
        self.model_timeout = model_timeout
        self.tools = tool_schemas()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def answer(self, question: str, session_id: Optional[str] = None) -> AssistantAnswer:
        """
        Answer a question inside a conversation.

        A new session id is generated when none is given. The question and
        the final answer are stored only when the exchange succeeds.
        """
        session_id = session_id or uuid.uuid4().hex
        previous_turns = await self.store.get(session_id)

        answer, _ = await self._converse(question, previous_turns)

        async with self.store.lock(session_id):
            await self.store.append(
                session_id,
                [
                    {"role": "user", "content": question},
                    {"role": "assistant", "content": answer},
                ],
            )
        return AssistantAnswer(session_id=session_id, answer=answer)

    async def answer_detailed(self, question: str) -> DetailedAnswer:
        """Stateless answer plus the query and rows of the last successful lookup."""
        answer, executions = await self._converse(question, [])

        detailed = DetailedAnswer(answer=answer, tools=executions)
        for execution in reversed(executions):
            if execution.ok and execution.query:
                detailed.query = execution.query
                detailed.result = execution.result
                break
        return detailed

    async def clear_session(self, session_id: str) -> bool:
        async with self.store.lock(session_id):
            return await self.store.clear(session_id)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def history_window(self, turns: List[Dict[str, str]]) -> List[Dict[str, str]]:
        """Last ``history_pairs`` question/answer pairs, oldest first."""
        if self.history_pairs <= 0:
            return []
        return [
            {"role": turn["role"], "content": turn["content"]}
            for turn in turns[-self.history_pairs * 2 :]
        ]

    async def _converse(
        self, question: str, previous_turns: List[Dict[str, str]]
    ) -> Tuple[str, List[ToolExecution]]:
        window = self.history_window(previous_turns)
        exchange: List[Dict[str, Any]] = [{"role": "user", "content": question}]
        executions: List[ToolExecution] = []
        last_text: Optional[str] = None

        logger.info(f"Question: {question}")
        for round_number in range(1, self.max_rounds + 1):
            reply = await self._ask_model(window + exchange)
            text = (reply.content or "").strip()
            if text:
                last_text = text

            if not reply.wants_tools:
                if not text:
                    raise UpstreamModelError("Language model returned an empty answer")
                logger.info(f"Answered after {round_number} model call(s)")
                return text, executions

            logger.info(
                f"Round {round_number}: model requested "
                f"{[call.name for call in reply.tool_calls]}"
            )
            exchange.append(reply.as_message())

            # Reads are idempotent: a cancelled request lets them finish,
            # but no further model call is made
            batch = await asyncio.shield(
                asyncio.gather(*(self._execute(call) for call in reply.tool_calls))
            )
            for execution in batch:
                executions.append(execution)
                exchange.append(execution.to_message())

        logger.warning(f"Tool round limit ({self.max_rounds}) reached for: {question}")
        return last_text or CAP_REACHED_ANSWER, executions

    async def _ask_model(self, history: List[Dict[str, Any]]) -> ModelReply:
        try:
            return await asyncio.wait_for(
                self.model.converse(SYSTEM_PROMPT, history, self.tools),
                timeout=self.model_timeout,
            )
        except asyncio.TimeoutError:
            raise UpstreamModelError(
                f"Language model did not answer within {self.model_timeout:g}s"
            ) from None

    async def _execute(self, call: ToolCallRequest) -> ToolExecution:
        try:
            async with self.session_factory() as db:
                result = await run_tool(call.name, call.arguments, db, self.query_timeout)
        except AssistantError as e:
            logger.warning(f"[Tool {call.name}] {e.kind}: {e.message}")
            return self._failed(call, e)
        except Exception as e:
            # Driver errors SQLAlchemy does not wrap (connection refused, socket reset)
            logger.exception(f"[Tool {call.name}] unexpected failure")
            return self._failed(
                call, ExecutionError(call.name, f"{e.__class__.__name__}: {e}")
            )

        return ToolExecution(
            call_id=call.id,
            tool=call.name,
            arguments=result.arguments,
            ok=True,
            result=result.data,
            query=result.query,
        )

    @staticmethod
    def _failed(call: ToolCallRequest, error: AssistantError) -> ToolExecution:
        return ToolExecution(
            call_id=call.id,
            tool=call.name,
            arguments=call.arguments,
            ok=False,
            error=error.to_payload(),
        )
