"""
Language model capability.

The orchestrator only needs one thing from a model: given the system prompt,
the message history and the tool catalog, either a final text or a list of
tool calls. Messages use the OpenAI chat format, which most providers accept.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import openai

from camara_ai.assistant.errors import UpstreamModelError
from camara_ai.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class ToolCallRequest:
    id: str
    name: str
    arguments: Any
    # Raw argument text, kept to echo back in the assistant message
    raw_arguments: str = "{}"


@dataclass
class ModelReply:
    content: Optional[str] = None
    tool_calls: List[ToolCallRequest] = field(default_factory=list)

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)

    def as_message(self) -> Dict[str, Any]:
        """Assistant turn to append to the history."""
        message: Dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.raw_arguments},
                }
                for call in self.tool_calls
            ]
        return message


class LanguageModel(ABC):
    @abstractmethod
    async def converse(
        self,
        system_prompt: str,
        history: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> ModelReply:
        """
        Run one model turn.

        Raises:
            UpstreamModelError: provider failure or unusable response
        """
        ...


def parse_tool_arguments(raw: Optional[str]) -> Any:
    """
    Decode the JSON argument string of a tool call.

    Undecodable text is returned as-is so argument validation reports it for
    that call instead of failing the whole exchange.
    """
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Model sent non-JSON tool arguments: {raw[:200]}")
        return raw


class OpenAIChatModel(LanguageModel):
    """Chat completions with function calling, via the openai SDK."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        self.model = model or settings.OPENAI_MODEL
        self.temperature = settings.MODEL_TEMPERATURE if temperature is None else temperature
        self._client = openai.AsyncOpenAI(
            api_key=api_key or settings.OPENAI_API_KEY,
            base_url=base_url or settings.OPENAI_BASE_URL,
            timeout=timeout or settings.MODEL_TIMEOUT_SECONDS,
            max_retries=0,
        )

    async def converse(self, system_prompt, history, tools) -> ModelReply:
        messages = [{"role": "system", "content": system_prompt}] + list(history)
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if tools:
            request["tools"] = tools
            request["tool_choice"] = "auto"

        try:
            response = await self._client.chat.completions.create(**request)
        except openai.OpenAIError as e:
            raise UpstreamModelError(f"Language model request failed: {e}") from e

        if not response.choices:
            raise UpstreamModelError("Language model returned no choices")

        message = response.choices[0].message
        calls = [
            ToolCallRequest(
                id=call.id,
                name=call.function.name,
                arguments=parse_tool_arguments(call.function.arguments),
                raw_arguments=call.function.arguments or "{}",
            )
            for call in (message.tool_calls or [])
        ]
        return ModelReply(content=message.content, tool_calls=calls)
