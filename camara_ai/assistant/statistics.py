"""
STATISTICS MODULE - Average expense per deputy, counting deputies who spent nothing

Why not SQL AVG():
    AVG over the expenses join only sees deputies with at least one expense
    row. A party with 10 deputies where 4 spent R$ 100k has an average of
    R$ 40k per deputy, not R$ 100k. So:

    1. sum expenses per deputy (subquery, expense filters applied here)
    2. LEFT JOIN that onto every deputy of the requested population
    3. missing totals count as zero
    4. group total / group size

Group-size filtering runs after aggregation (HAVING), since the full group
size is only known then. Averages, ordering and limit are computed here in
Python over the grouped rows.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from camara_ai.assistant.query_plan import QueryPlan
from camara_ai.assistant.resolver import normalize_state, resolve_party
from camara_ai.assistant.tool_arguments import PeriodArguments
from camara_ai.core import models
from sqlalchemy import distinct, func, select


class GroupBy(str, Enum):
    STATE = "state"
    PARTY = "party"
    NONE = "none"


class StatisticsOrder(str, Enum):
    AVG_ASC = "avg_asc"
    AVG_DESC = "avg_desc"
    TOTAL_ASC = "total_asc"
    TOTAL_DESC = "total_desc"


class StatisticsArguments(PeriodArguments):
    group_by: GroupBy = Field(
        description="How to group: state=by UF, party=by political party, none=overall numbers"
    )
    state: Optional[str] = Field(None, description="Only deputies from this state (e.g., MG, SP)")
    party: Optional[str] = Field(None, description="Only deputies from this party (e.g., PT, PL)")
    order_by: StatisticsOrder = Field(
        StatisticsOrder.TOTAL_DESC,
        description=(
            'Sort order when grouping: "avg_asc" lowest average ("menor média"), '
            '"avg_desc" highest average ("maior média"), "total_asc" lowest total, '
            '"total_desc" highest total (default). Ignored when groupBy="none".'
        ),
    )
    limit: Optional[int] = Field(
        None, ge=1, le=100, description="Maximum number of groups (default: all groups)"
    )
    min_group_size: int = Field(
        1,
        ge=1,
        description=(
            "Minimum number of deputies in a group (default 1). Use e.g. 5 to drop "
            "small parties/states whose averages are skewed."
        ),
    )


GROUP_COLUMNS = {
    GroupBy.STATE: models.Deputy.state_code,
    GroupBy.PARTY: models.Deputy.party_code,
}


def compile_statistics(args: StatisticsArguments) -> QueryPlan:
    filters = args.filters()

    # 1. Per-deputy totals, with the expense filters
    per_deputy = (
        select(
            models.Expense.deputy_id.label("deputy_id"),
            func.sum(models.Expense.net_value).label("total"),
        )
        .where(*filters.expense_predicates())
        .group_by(models.Expense.deputy_id)
        .subquery("expenses_per_deputy")
    )
    deputy_total = func.coalesce(per_deputy.c.total, 0)
    deputy_count = func.count(distinct(models.Deputy.external_id))

    columns = [
        deputy_count.label("deputy_count"),
        func.coalesce(func.sum(per_deputy.c.total), 0).label("total_expenses"),
        func.min(deputy_total).label("min_per_deputy"),
        func.max(deputy_total).label("max_per_deputy"),
    ]
    group_column = GROUP_COLUMNS.get(args.group_by)
    if group_column is not None:
        columns.insert(0, group_column.label("group_name"))

    # 2. Every deputy of the population, spending or not
    plan = QueryPlan(columns=columns, source=models.Deputy)
    plan.join(per_deputy, models.Deputy.external_id == per_deputy.c.deputy_id, outer=True)
    for predicate in filters.deputy_predicates():
        plan.where(predicate)
    if args.state:
        plan.where(models.Deputy.state_code == normalize_state(args.state))
    if args.party:
        plan.where(models.Deputy.party_code == resolve_party(args.party))

    if group_column is not None:
        plan.group_by.append(group_column)
        plan.having.append(deputy_count >= args.min_group_size)
    return plan


def _average(total: Decimal, count: int) -> float:
    if not count:
        return 0.0
    return float(Decimal(total) / count)


SORT_KEYS = {
    StatisticsOrder.AVG_ASC: ("avg_per_deputy", False),
    StatisticsOrder.AVG_DESC: ("avg_per_deputy", True),
    StatisticsOrder.TOTAL_ASC: ("total_expenses", False),
    StatisticsOrder.TOTAL_DESC: ("total_expenses", True),
}


def finalize_statistics(rows: List[Dict[str, Any]], args: StatisticsArguments) -> List[Dict[str, Any]]:
    """
    Add avg_per_deputy to every group, then order and cut.

    Rows arrive with Decimal totals straight from the database. Ties keep the
    order the database returned them in (stable sort); callers should not
    depend on it.
    """
    groups = []
    for row in rows:
        count = int(row["deputy_count"] or 0)
        total = Decimal(row["total_expenses"] or 0)
        group = dict(row)
        group["deputy_count"] = count
        group["total_expenses"] = float(total)
        group["avg_per_deputy"] = _average(total, count)
        group["min_per_deputy"] = float(row["min_per_deputy"] or 0)
        group["max_per_deputy"] = float(row["max_per_deputy"] or 0)
        groups.append(group)

    if args.group_by == GroupBy.NONE:
        return groups

    key, reverse = SORT_KEYS[args.order_by]
    groups.sort(key=lambda group: group[key], reverse=reverse)
    if args.limit is not None:
        groups = groups[: args.limit]
    return groups
