from datetime import date
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from camara_ai.assistant.errors import ValidationError
from camara_ai.assistant.query_plan import ExpenseFilters


# =========================
# Base argument models
# =========================
class ToolArguments(BaseModel):
    """Arguments arrive in camelCase from the model (deputyId, expenseType...)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class PeriodArguments(ToolArguments):
    year: Optional[int] = Field(None, ge=1990, le=2100, description="Filter by year (e.g., 2024)")
    month: Optional[int] = Field(None, ge=1, le=12, description="Filter by month (1-12)")
    day: Optional[int] = Field(None, ge=1, le=31, description="Filter by day of month (1-31)")
    legislature: Optional[int] = Field(
        None, description="Filter by legislature number (e.g., 57 for 2023-2027)"
    )
    start_date: Optional[date] = Field(
        None, description="Start of the period (format: YYYY-MM-DD)"
    )
    end_date: Optional[date] = Field(None, description="End of the period (format: YYYY-MM-DD)")

    @model_validator(mode="after")
    def check_period(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must be on or before endDate")
        return self

    def filters(self) -> ExpenseFilters:
        return ExpenseFilters(
            year=self.year,
            month=self.month,
            day=self.day,
            legislature=self.legislature,
            start_date=self.start_date,
            end_date=self.end_date,
        )


# =========================
# Pydantic errors -> ValidationError
# =========================
EXPECTED_TYPES = {
    "int": "integer",
    "float": "number",
    "string": "string",
    "str": "string",
    "bool": "boolean",
    "list": "array",
    "date": "date (YYYY-MM-DD)",
    "enum": "one of the allowed values",
    "literal": "one of the allowed values",
    "model": "object",
    "dict": "object",
}


def _expected_type(error_type: str) -> Optional[str]:
    prefix = error_type.split("_", 1)[0]
    return EXPECTED_TYPES.get(prefix)


def translate_error(tool: str, exc: PydanticValidationError) -> ValidationError:
    """Turn the first pydantic error into a message naming the field."""
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ())) or None
    error_type = error.get("type", "")

    if error_type == "missing":
        return ValidationError(tool, f"Missing required argument '{field}'", field)

    expected = _expected_type(error_type)
    if field and expected:
        message = f"Argument '{field}' must be {expected}: {error['msg']}"
    elif field:
        message = f"Invalid argument '{field}': {error['msg']}"
    else:
        message = f"Invalid arguments: {error['msg']}"
    return ValidationError(tool, message, field)


def parse_arguments(tool: str, model: Type[ToolArguments], raw: Any) -> ToolArguments:
    if raw is None:
        raw = {}
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        raise translate_error(tool, exc) from exc


def json_schema(model: Type[ToolArguments]) -> Dict[str, Any]:
    return model.model_json_schema(by_alias=True)
