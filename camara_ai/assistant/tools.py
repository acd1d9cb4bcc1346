"""
TOOLS MODULE - The fixed catalog of analytic operations

Each tool is a ToolDefinition: a name, the description the language model
reads to decide when to call it, a pydantic argument model (the parameter
schema) and a compile function turning validated arguments into a QueryPlan.

Data Flow:
    raw JSON args → parse_arguments() → compile() → QueryPlan
                                                        ↓
                                            executor runs the statement
                                                        ↓
                                      finalize() (optional post-processing)

The model can only pick from this catalog. It never writes SQL.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import Field
from sqlalchemy import distinct, func

from camara_ai.assistant import cota
from camara_ai.assistant.errors import ToolNotFoundError
from camara_ai.assistant.query_plan import (
    QueryPlan,
    SortOrder,
    expense_type_predicates,
)
from camara_ai.assistant.resolver import (
    normalize_state,
    resolve_expense_type,
    resolve_party,
)
from camara_ai.assistant.statistics import (
    StatisticsArguments,
    compile_statistics,
    finalize_statistics,
)
from camara_ai.assistant.tool_arguments import (
    PeriodArguments,
    ToolArguments,
    json_schema,
    parse_arguments,
)
from camara_ai.core import models


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    arguments: Type[ToolArguments]
    compile: Optional[Callable[[Any], QueryPlan]] = None
    finalize: Optional[Callable[[List[Dict[str, Any]], Any], Any]] = None
    # Static tools answer without a query
    respond: Optional[Callable[[Any], Any]] = None

    @property
    def uses_database(self) -> bool:
        return self.compile is not None

    def validate(self, raw: Any) -> ToolArguments:
        return parse_arguments(self.name, self.arguments, raw)

    def schema(self) -> Dict[str, Any]:
        """OpenAI-style function declaration."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": json_schema(self.arguments),
            },
        }


# ============================================================================
# SHARED PIECES
# ============================================================================

ORDER_DESCRIPTION = (
    'Sort order: "desc" for highest expenses (default), "asc" for lowest. '
    'Use "asc" when the user asks "menos gastaram", "que menos gastou", "menores gastos".'
)
EXPENSE_TYPE_DESCRIPTION = (
    "Filter by expense category in the user's words (e.g., \"Passagens Aéreas\", "
    '"Alimentação", "Hospedagem", "Telefonia", "Aluguel de carros", "Combustível", '
    '"Divulgação da atividade parlamentar"). Synonyms and partial names are understood.'
)

SPENT = func.sum(models.Expense.net_value)


def deputy_expense_plan(columns) -> QueryPlan:
    """Deputies joined to their expenses."""
    plan = QueryPlan(columns=columns, source=models.Deputy)
    return plan.join(models.Expense, models.Deputy.external_id == models.Expense.deputy_id)


def expense_plan(columns, with_deputies: bool = False) -> QueryPlan:
    """Expenses alone; deputies joined only when a deputy attribute is filtered."""
    plan = QueryPlan(columns=columns, source=models.Expense)
    if with_deputies:
        plan.join(models.Deputy, models.Expense.deputy_id == models.Deputy.external_id)
    return plan


def filter_expense_type(plan: QueryPlan, expense_type: Optional[str]) -> QueryPlan:
    if expense_type:
        plan.where_any(expense_type_predicates(resolve_expense_type(expense_type)))
    return plan


DEPUTY_IDENTITY = [
    models.Deputy.external_id,
    models.Deputy.name,
    models.Deputy.party_code,
    models.Deputy.state_code,
]

DEPUTY_COLUMNS = [
    models.Deputy.external_id.label("deputy_id"),
    models.Deputy.name.label("name"),
    models.Deputy.party_code.label("party"),
    models.Deputy.state_code.label("state"),
]


# ============================================================================
# DEPUTY LOOKUP
# ============================================================================


class SearchDeputyArguments(ToolArguments):
    name: str = Field(min_length=1, description="Deputy name or part of it")


def compile_search_deputy(args: SearchDeputyArguments) -> QueryPlan:
    plan = QueryPlan(
        columns=DEPUTY_COLUMNS + [models.Deputy.email, models.Deputy.photo_url],
        source=models.Deputy,
    )
    plan.where(models.Deputy.name.icontains(args.name.strip(), autoescape=True))
    plan.order(models.Deputy.name, SortOrder.ASC)
    plan.limit = 10
    return plan


class DeputiesByPartyArguments(ToolArguments):
    party: str = Field(min_length=1, description="Party acronym (e.g., CIDADANIA, PT, PL, MDB)")
    state: Optional[str] = Field(None, description="Only deputies from this state (e.g., SP, RJ)")
    limit: int = Field(100, ge=1, le=600, description="Maximum number of deputies (default 100)")


def compile_deputies_by_party(args: DeputiesByPartyArguments) -> QueryPlan:
    plan = QueryPlan(
        columns=DEPUTY_COLUMNS + [models.Deputy.email, models.Deputy.photo_url],
        source=models.Deputy,
    )
    plan.where(models.Deputy.party_code == resolve_party(args.party))
    if args.state:
        plan.where(models.Deputy.state_code == normalize_state(args.state))
    plan.order(models.Deputy.name, SortOrder.ASC)
    plan.limit = args.limit
    return plan


# ============================================================================
# ONE DEPUTY
# ============================================================================


class DeputyExpensesArguments(PeriodArguments):
    deputy_id: int = Field(description="Deputy id (the 'deputy_id' returned by search_deputy)")


def compile_deputy_expenses(args: DeputyExpensesArguments) -> QueryPlan:
    plan = deputy_expense_plan(
        DEPUTY_COLUMNS
        + [SPENT.label("total"), func.count(models.Expense.id).label("count")]
    )
    plan.where(models.Deputy.external_id == args.deputy_id)
    args.filters().apply(plan)
    plan.group_by.extend(DEPUTY_IDENTITY)
    return plan


class DeputyMonthlyExpensesArguments(PeriodArguments):
    deputy_id: int = Field(description="Deputy id (the 'deputy_id' returned by search_deputy)")


def compile_deputy_monthly_expenses(args: DeputyMonthlyExpensesArguments) -> QueryPlan:
    plan = deputy_expense_plan(
        DEPUTY_COLUMNS
        + [
            models.Expense.year.label("year"),
            models.Expense.month.label("month"),
            SPENT.label("monthly_total"),
            func.count(models.Expense.id).label("monthly_count"),
        ]
    )
    plan.where(models.Deputy.external_id == args.deputy_id)
    args.filters().apply(plan)
    plan.group_by.extend(DEPUTY_IDENTITY + [models.Expense.year, models.Expense.month])
    plan.order(models.Expense.year, SortOrder.ASC)
    plan.order(models.Expense.month, SortOrder.ASC)
    return plan


def finalize_deputy_monthly_expenses(rows, args) -> Dict[str, Any]:
    """
    Monthly breakdown plus summary.

    The average divides by the months that have expenses. Months without a
    single expense row are not in the result and do not count as zero.
    """
    breakdown = [
        {
            "year": int(row["year"]),
            "month": int(row["month"]),
            "monthly_total": float(row["monthly_total"] or 0),
            "monthly_count": int(row["monthly_count"]),
        }
        for row in rows
    ]
    total_expenses = sum(month["monthly_total"] for month in breakdown)
    total_count = sum(month["monthly_count"] for month in breakdown)
    months_with_expenses = len(breakdown)

    deputy_info = None
    if rows:
        first = rows[0]
        deputy_info = {
            "deputy_id": first["deputy_id"],
            "name": first["name"],
            "party": first["party"],
            "state": first["state"],
        }

    return {
        "deputy_info": deputy_info,
        "monthly_breakdown": breakdown,
        "summary": {
            "total_expenses": total_expenses,
            "total_count": total_count,
            "months_with_expenses": months_with_expenses,
            "avg_monthly_expense": (
                total_expenses / months_with_expenses if months_with_expenses else 0.0
            ),
        },
    }


# ============================================================================
# RANKINGS
# ============================================================================


class RankingArguments(PeriodArguments):
    order_by: SortOrder = Field(SortOrder.DESC, description=ORDER_DESCRIPTION)
    limit: int = Field(10, ge=1, le=100, description="Number of results (default 10)")
    expense_type: Optional[str] = Field(None, description=EXPENSE_TYPE_DESCRIPTION)


class TopDeputiesArguments(RankingArguments):
    state: Optional[str] = Field(None, description="Only deputies from this state (e.g., SP, RJ, MG)")
    party: Optional[str] = Field(None, description="Only deputies from this party (e.g., PT, PL)")


def compile_top_deputies(args: TopDeputiesArguments) -> QueryPlan:
    plan = deputy_expense_plan(
        DEPUTY_COLUMNS
        + [SPENT.label("total"), func.count(models.Expense.id).label("count")]
    )
    args.filters().apply(plan)
    if args.state:
        plan.where(models.Deputy.state_code == normalize_state(args.state))
    if args.party:
        plan.where(models.Deputy.party_code == resolve_party(args.party))
    filter_expense_type(plan, args.expense_type)
    plan.group_by.extend(DEPUTY_IDENTITY)
    plan.order("total", args.order_by)
    plan.limit = args.limit
    return plan


class TopPartiesArguments(RankingArguments):
    state: Optional[str] = Field(None, description="Only deputies from this state (e.g., SP, RJ, MG)")


def compile_top_parties(args: TopPartiesArguments) -> QueryPlan:
    plan = deputy_expense_plan(
        [
            models.Deputy.party_code.label("party"),
            SPENT.label("total"),
            func.count(distinct(models.Deputy.external_id)).label("deputy_count"),
        ]
    )
    args.filters().apply(plan)
    if args.state:
        plan.where(models.Deputy.state_code == normalize_state(args.state))
    filter_expense_type(plan, args.expense_type)
    plan.group_by.append(models.Deputy.party_code)
    plan.order("total", args.order_by)
    plan.limit = args.limit
    return plan


class TopStatesArguments(RankingArguments):
    party: Optional[str] = Field(None, description="Only deputies from this party (e.g., PT, PL)")


def compile_top_states(args: TopStatesArguments) -> QueryPlan:
    plan = deputy_expense_plan(
        [
            models.Deputy.state_code.label("state"),
            SPENT.label("total"),
            func.count(distinct(models.Deputy.external_id)).label("deputy_count"),
        ]
    )
    args.filters().apply(plan)
    if args.party:
        plan.where(models.Deputy.party_code == resolve_party(args.party))
    filter_expense_type(plan, args.expense_type)
    plan.group_by.append(models.Deputy.state_code)
    plan.order("total", args.order_by)
    plan.limit = args.limit
    return plan


# ============================================================================
# BREAKDOWNS
# ============================================================================


class ExpenseTypesArguments(PeriodArguments):
    deputy_id: Optional[int] = Field(
        None, description="Deputy id (if not provided, covers all deputies)"
    )
    state: Optional[str] = Field(None, description="Only expenses of deputies from this state (e.g., SP)")
    expense_type: Optional[str] = Field(
        None,
        description=EXPENSE_TYPE_DESCRIPTION + " When provided, returns the total of that category.",
    )
    limit: int = Field(10, ge=1, le=100, description="Number of categories (default 10)")


def compile_expense_types(args: ExpenseTypesArguments) -> QueryPlan:
    filters = args.filters()
    # Joining deputies for nothing costs time and can duplicate rows
    needs_deputies = bool(args.state) or args.legislature is not None
    plan = expense_plan(
        [
            models.Expense.expense_type.label("expense_type"),
            SPENT.label("total"),
            func.count(models.Expense.id).label("count"),
        ],
        with_deputies=needs_deputies,
    )
    if args.deputy_id is not None:
        plan.where(models.Expense.deputy_id == args.deputy_id)
    for predicate in filters.deputy_predicates():
        plan.where(predicate)
    if args.state:
        plan.where(models.Deputy.state_code == normalize_state(args.state))
    filter_expense_type(plan, args.expense_type)
    for predicate in filters.expense_predicates():
        plan.where(predicate)
    plan.group_by.append(models.Expense.expense_type)
    plan.order("total", SortOrder.DESC)
    plan.limit = args.limit
    return plan


class TopSuppliersArguments(PeriodArguments):
    deputy_id: Optional[int] = Field(
        None,
        description=(
            "Deputy id. Leave empty to rank suppliers across ALL deputies "
            '(e.g., "principais fornecedores" with no deputy mentioned).'
        ),
    )
    limit: int = Field(10, ge=1, le=100, description="Number of results (default 10)")


def compile_top_suppliers(args: TopSuppliersArguments) -> QueryPlan:
    filters = args.filters()
    plan = expense_plan(
        [
            models.Expense.supplier_name.label("supplier_name"),
            models.Expense.supplier_tax_id.label("supplier_tax_id"),
            SPENT.label("total"),
            func.count(models.Expense.id).label("count"),
        ],
        with_deputies=args.legislature is not None,
    )
    if args.deputy_id is not None:
        plan.where(models.Expense.deputy_id == args.deputy_id)
    for predicate in filters.deputy_predicates() + filters.expense_predicates():
        plan.where(predicate)
    plan.group_by.extend([models.Expense.supplier_name, models.Expense.supplier_tax_id])
    plan.order("total", SortOrder.DESC)
    plan.limit = args.limit
    return plan


# ============================================================================
# COMPARISONS (full set, no limit)
# ============================================================================


class ComparisonArguments(PeriodArguments):
    expense_type: Optional[str] = Field(None, description=EXPENSE_TYPE_DESCRIPTION)


class CompareDeputiesArguments(ComparisonArguments):
    deputy_ids: List[int] = Field(min_length=1, description="Deputy ids to compare")


def compile_compare_deputies(args: CompareDeputiesArguments) -> QueryPlan:
    plan = deputy_expense_plan(
        DEPUTY_COLUMNS
        + [SPENT.label("total"), func.count(models.Expense.id).label("count")]
    )
    plan.where(models.Deputy.external_id.in_(args.deputy_ids))
    args.filters().apply(plan)
    filter_expense_type(plan, args.expense_type)
    plan.group_by.extend(DEPUTY_IDENTITY)
    plan.order("total", SortOrder.DESC)
    return plan


class ComparePartiesArguments(ComparisonArguments):
    parties: List[str] = Field(
        min_length=1, description='Party acronyms to compare (e.g., ["PT", "PL", "PSDB"])'
    )


def compile_compare_parties(args: ComparePartiesArguments) -> QueryPlan:
    plan = deputy_expense_plan(
        [
            models.Deputy.party_code.label("party"),
            SPENT.label("total"),
            func.count(distinct(models.Deputy.external_id)).label("deputy_count"),
            func.count(models.Expense.id).label("expense_count"),
        ]
    )
    plan.where(models.Deputy.party_code.in_([resolve_party(party) for party in args.parties]))
    args.filters().apply(plan)
    filter_expense_type(plan, args.expense_type)
    plan.group_by.append(models.Deputy.party_code)
    plan.order("total", SortOrder.DESC)
    return plan


class CompareStatesArguments(ComparisonArguments):
    states: List[str] = Field(
        min_length=1, description='State acronyms to compare (e.g., ["SP", "RJ", "MG"])'
    )


def compile_compare_states(args: CompareStatesArguments) -> QueryPlan:
    plan = deputy_expense_plan(
        [
            models.Deputy.state_code.label("state"),
            SPENT.label("total"),
            func.count(distinct(models.Deputy.external_id)).label("deputy_count"),
            func.count(models.Expense.id).label("expense_count"),
        ]
    )
    plan.where(models.Deputy.state_code.in_([normalize_state(state) for state in args.states]))
    args.filters().apply(plan)
    filter_expense_type(plan, args.expense_type)
    plan.group_by.append(models.Deputy.state_code)
    plan.order("total", SortOrder.DESC)
    return plan


# ============================================================================
# STATIC KNOWLEDGE
# ============================================================================


class CotaInfoArguments(ToolArguments):
    topic: Optional[str] = Field(
        None,
        description=(
            "What the user wants to know (e.g., 'regras', 'valor por estado', "
            "'despesas proibidas', 'categorias permitidas'). Empty returns everything."
        ),
    )
    state: Optional[str] = Field(None, description="State to show the monthly allowance for (e.g., SP)")


def respond_cota_info(args: CotaInfoArguments) -> Dict[str, Any]:
    return cota.get_cota_info(topic=args.topic, state=args.state)


# ============================================================================
# CATALOG
# ============================================================================

TOOL_DEFINITIONS = [
    ToolDefinition(
        name="search_deputy",
        description=(
            "Search for deputies by name (partial, case-insensitive). Returns id, party and "
            "state. Call this first to get the deputy_id other tools need."
        ),
        arguments=SearchDeputyArguments,
        compile=compile_search_deputy,
    ),
    ToolDefinition(
        name="get_deputies_by_party",
        description=(
            'List the deputies of a political party. Use for "deputados do partido X", '
            '"quem são os deputados do PL". Optionally filtered by state.'
        ),
        arguments=DeputiesByPartyArguments,
        compile=compile_deputies_by_party,
    ),
    ToolDefinition(
        name="get_deputy_expenses",
        description=(
            "Total expenses (sum and number of expenses) of one deputy, optionally filtered "
            "by year, month, day, legislature or date range."
        ),
        arguments=DeputyExpensesArguments,
        compile=compile_deputy_expenses,
    ),
    ToolDefinition(
        name="get_deputy_monthly_expenses",
        description=(
            "Expenses of one deputy grouped by month, with the monthly totals and the "
            'average monthly expense. Use for "gasto médio por mês" or monthly patterns. '
            "The average only counts months that have expenses."
        ),
        arguments=DeputyMonthlyExpensesArguments,
        compile=compile_deputy_monthly_expenses,
        finalize=finalize_deputy_monthly_expenses,
    ),
    ToolDefinition(
        name="get_top_deputies",
        description=(
            'Ranking of deputies by expenses. orderBy="desc" for who spent most, "asc" for '
            "who spent least. Filters: year, month, day, state, party, expenseType, "
            "legislature, date range."
        ),
        arguments=TopDeputiesArguments,
        compile=compile_top_deputies,
    ),
    ToolDefinition(
        name="get_top_parties",
        description=(
            'Ranking of political parties by total expenses. orderBy="desc" for highest, '
            '"asc" for lowest. Filters: year, month, day, state, expenseType, legislature, '
            "date range."
        ),
        arguments=TopPartiesArguments,
        compile=compile_top_parties,
    ),
    ToolDefinition(
        name="get_top_states",
        description=(
            'Ranking of states (UFs) by total expenses. orderBy="desc" for highest, "asc" '
            "for lowest. Filters: year, month, day, party, expenseType, legislature, date range."
        ),
        arguments=TopStatesArguments,
        compile=compile_top_states,
    ),
    ToolDefinition(
        name="get_expense_types",
        description=(
            "Breakdown of expenses by type/category. Filter by deputy, state, year, month, "
            "day, legislature or date range. With expenseType, returns the total for that "
            "category instead of a ranking."
        ),
        arguments=ExpenseTypesArguments,
        compile=compile_expense_types,
    ),
    ToolDefinition(
        name="get_top_suppliers",
        description=(
            "Ranking of suppliers/companies by total received. Without deputyId covers ALL "
            "deputies; with deputyId only that deputy's suppliers. Filters: year, month, day, "
            "legislature, date range."
        ),
        arguments=TopSuppliersArguments,
        compile=compile_top_suppliers,
    ),
    ToolDefinition(
        name="compare_deputies",
        description=(
            "Compare expenses of two or more deputies (by id). Filters: year, month, day, "
            "expenseType, legislature, date range."
        ),
        arguments=CompareDeputiesArguments,
        compile=compile_compare_deputies,
    ),
    ToolDefinition(
        name="compare_parties",
        description=(
            "Compare expenses of two or more political parties. Filters: year, month, day, "
            "expenseType, legislature, date range."
        ),
        arguments=ComparePartiesArguments,
        compile=compile_compare_parties,
    ),
    ToolDefinition(
        name="compare_states",
        description=(
            "Compare expenses of two or more states (UFs). Filters: year, month, day, "
            "expenseType, legislature, date range."
        ),
        arguments=CompareStatesArguments,
        compile=compile_compare_states,
    ),
    ToolDefinition(
        name="get_statistics",
        description=(
            "Statistics (average, total, count, min, max) of deputies' expenses, overall or "
            "grouped by state or party. IMPORTANT: the average per deputy divides the group's "
            "total by ALL deputies in the group, including those with zero expenses. Use for "
            '"média", "estatística", "quantos deputados", "maior/menor média". Use '
            "minGroupSize to ignore tiny groups."
        ),
        arguments=StatisticsArguments,
        compile=compile_statistics,
        finalize=finalize_statistics,
    ),
    ToolDefinition(
        name="get_cota_info",
        description=(
            "Reference information about the CEAP (cota parlamentar): how it works, monthly "
            "allowance per state, allowed categories, prohibited expenses. No database "
            "query; use for questions about rules rather than actual spending."
        ),
        arguments=CotaInfoArguments,
        respond=respond_cota_info,
    ),
]

TOOLS: Dict[str, ToolDefinition] = {tool.name: tool for tool in TOOL_DEFINITIONS}


def get_tool(name: str) -> ToolDefinition:
    try:
        return TOOLS[name]
    except KeyError:
        raise ToolNotFoundError(name) from None


def tool_schemas() -> List[Dict[str, Any]]:
    return [tool.schema() for tool in TOOL_DEFINITIONS]
