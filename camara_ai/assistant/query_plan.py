"""
QUERY PLAN MODULE - Structured description of one analytic query

A tool never writes SQL text. It fills a QueryPlan (columns, joins, an ordered
list of predicates, grouping, ordering, limit) and the plan renders itself as
a SQLAlchemy ``Select``. Every value travels as a bind parameter; the only
things that shape the statement text are model columns and enum tokens.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, asc, desc, extract, or_, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.sql import ColumnElement, Select

from camara_ai.core import models


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class QueryPlan:
    """
    Ordered query description.

    Example:
        plan = QueryPlan(columns=[models.Deputy.name], source=models.Deputy)
        plan.where(models.Deputy.name.icontains("silva", autoescape=True))
        plan.limit = 10
        stmt = plan.statement()
    """

    columns: List[Any]
    source: Any
    joins: List[Tuple[Any, Any, bool]] = field(default_factory=list)
    predicates: List[ColumnElement] = field(default_factory=list)
    group_by: List[Any] = field(default_factory=list)
    having: List[ColumnElement] = field(default_factory=list)
    order_by: List[Any] = field(default_factory=list)
    limit: Optional[int] = None

    def join(self, target, onclause, outer: bool = False) -> "QueryPlan":
        self.joins.append((target, onclause, outer))
        return self

    def has_join(self, target) -> bool:
        return any(joined is target for joined, _, _ in self.joins)

    def where(self, predicate: ColumnElement) -> "QueryPlan":
        self.predicates.append(predicate)
        return self

    def where_any(self, predicates: Sequence[ColumnElement]) -> "QueryPlan":
        """Append one predicate that ORs the given ones together."""
        predicates = list(predicates)
        if len(predicates) == 1:
            return self.where(predicates[0])
        return self.where(or_(*predicates))

    def order(self, column, direction: SortOrder) -> "QueryPlan":
        self.order_by.append(desc(column) if direction == SortOrder.DESC else asc(column))
        return self

    def statement(self) -> Select:
        stmt = select(*self.columns).select_from(self.source)
        for target, onclause, outer in self.joins:
            stmt = stmt.join(target, onclause, isouter=outer)
        if self.predicates:
            stmt = stmt.where(and_(*self.predicates))
        if self.group_by:
            stmt = stmt.group_by(*self.group_by)
        if self.having:
            stmt = stmt.having(and_(*self.having))
        if self.order_by:
            stmt = stmt.order_by(*self.order_by)
        if self.limit is not None:
            stmt = stmt.limit(self.limit)
        return stmt

    def describe(self) -> str:
        """SQL text with placeholders, as PostgreSQL would receive it."""
        return str(self.statement().compile(dialect=postgresql.dialect()))

    def parameters(self) -> Dict[str, Any]:
        return dict(self.statement().compile(dialect=postgresql.dialect()).params)


# ============================================================================
# SHARED FILTERS
# ============================================================================


@dataclass
class ExpenseFilters:
    """Optional period filters shared by most tools. Each one present adds one AND."""

    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None
    legislature: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def expense_predicates(self) -> List[ColumnElement]:
        expense = models.Expense
        predicates = []
        if self.year is not None:
            predicates.append(expense.year == self.year)
        if self.month is not None:
            predicates.append(expense.month == self.month)
        if self.day is not None:
            predicates.append(extract("day", expense.document_date) == self.day)
        if self.start_date is not None:
            predicates.append(expense.document_date >= self.start_date)
        if self.end_date is not None:
            predicates.append(expense.document_date <= self.end_date)
        return predicates

    def deputy_predicates(self) -> List[ColumnElement]:
        if self.legislature is not None:
            return [models.Deputy.legislature_id == self.legislature]
        return []

    def apply(self, plan: QueryPlan) -> QueryPlan:
        """Add every filter to a plan that already joins deputies and expenses."""
        for predicate in self.deputy_predicates() + self.expense_predicates():
            plan.where(predicate)
        return plan


def expense_type_predicates(keywords: Sequence[str]) -> List[ColumnElement]:
    """One case-insensitive substring match per keyword, to be OR-joined."""
    return [
        models.Expense.expense_type.icontains(keyword, autoescape=True) for keyword in keywords
    ]
