from typing import Any, Dict, Optional


class AssistantError(Exception):
    """Base class for every failure raised by the assistant."""

    kind = "AssistantError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        """Shape sent back to the model as a tool result."""
        return {"error": {"type": self.kind, "message": self.message}}


class ValidationError(AssistantError):
    """Tool arguments are missing or have the wrong type. Never reaches the database."""

    kind = "ValidationError"

    def __init__(self, tool: str, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.tool = tool
        self.field = field

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["error"]["tool"] = self.tool
        if self.field:
            payload["error"]["field"] = self.field
        return payload


class ToolNotFoundError(AssistantError):
    kind = "ToolNotFoundError"

    def __init__(self, tool: str):
        super().__init__(f"Tool '{tool}' does not exist")
        self.tool = tool


class ExecutionError(AssistantError):
    """Database failure, timeout or malformed plan for one tool call."""

    kind = "ExecutionError"

    def __init__(self, tool: str, message: str):
        super().__init__(message)
        self.tool = tool

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["error"]["tool"] = self.tool
        return payload


class UpstreamModelError(AssistantError):
    """The language model failed or answered with something unusable."""

    kind = "UpstreamModelError"
