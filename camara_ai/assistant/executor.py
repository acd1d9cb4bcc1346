"""
EXECUTOR MODULE - Run one tool call against the database

validate → compile → execute (with timeout) → finalize → JSON-ready result

Anything that goes wrong after validation is reported as an ExecutionError
for that tool call; the caller decides what to do with it.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from camara_ai.assistant.errors import ExecutionError
from camara_ai.assistant.query_plan import QueryPlan
from camara_ai.assistant.tools import ToolDefinition, get_tool

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    tool: str
    arguments: Dict[str, Any]
    data: Any
    query: Optional[str] = None

    @property
    def row_count(self) -> int:
        return len(self.data) if isinstance(self.data, list) else 1


def to_jsonable(value: Any) -> Any:
    """Decimals and dates are not JSON; the model only needs plain numbers and ISO dates."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


async def execute_plan(
    plan: QueryPlan, db: AsyncSession, tool: str, timeout: float
) -> List[Dict[str, Any]]:
    """
    Execute a compiled plan and return its rows as dicts keyed by column label.

    Raises:
        ExecutionError: database error, timeout or a plan that does not compile
    """
    try:
        stmt = plan.statement()
        result = await asyncio.wait_for(db.execute(stmt), timeout=timeout)
        return [dict(row) for row in result.mappings().all()]
    except asyncio.TimeoutError:
        raise ExecutionError(tool, f"Query timed out after {timeout:g}s") from None
    except SQLAlchemyError as e:
        raise ExecutionError(tool, f"Database error: {e.__class__.__name__}: {e}") from e


async def run_tool(
    name: str, raw_arguments: Any, db: AsyncSession, timeout: float
) -> ToolResult:
    """
    Look up, validate and run one tool.

    Raises:
        ToolNotFoundError: unknown tool name
        ValidationError: arguments rejected, nothing executed
        ExecutionError: failure while running the query
    """
    tool: ToolDefinition = get_tool(name)
    args = tool.validate(raw_arguments)
    arguments = args.model_dump(by_alias=True, exclude_none=True, mode="json")

    if not tool.uses_database:
        return ToolResult(tool=name, arguments=arguments, data=to_jsonable(tool.respond(args)))

    try:
        plan = tool.compile(args)
        query = plan.describe()
    except SQLAlchemyError as e:
        raise ExecutionError(name, f"Could not build query: {e}") from e

    logger.info(f"[Tool {name}] args={arguments}")
    rows = await execute_plan(plan, db, name, timeout)
    logger.info(f"[Tool {name}] {len(rows)} rows")

    data = tool.finalize(rows, args) if tool.finalize else rows
    return ToolResult(tool=name, arguments=arguments, data=to_jsonable(data), query=query)
