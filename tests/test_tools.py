import pytest

from camara_ai.assistant.errors import ToolNotFoundError, ValidationError
from camara_ai.assistant.executor import run_tool
from camara_ai.assistant.tools import TOOL_DEFINITIONS, get_tool, tool_schemas

from conftest import CAR_RENTAL, FLIGHTS, FUEL, LODGING, PHONE


async def run(db, name, arguments):
    return await run_tool(name, arguments, db, timeout=5)


# =========================
# Catalog and validation
# =========================
def test_catalog():
    names = [tool.name for tool in TOOL_DEFINITIONS]
    assert len(names) == len(set(names)) == 14
    for schema in tool_schemas():
        assert schema["type"] == "function"
        assert schema["function"]["parameters"]["type"] == "object"


def test_schema_uses_camel_case():
    parameters = get_tool("get_deputy_expenses").schema()["function"]["parameters"]
    assert "deputyId" in parameters["properties"]
    assert "startDate" in parameters["properties"]
    assert parameters["required"] == ["deputyId"]


def test_unknown_tool():
    with pytest.raises(ToolNotFoundError) as exc:
        get_tool("drop_everything")
    assert exc.value.message == "Tool 'drop_everything' does not exist"


@pytest.mark.asyncio
async def test_missing_required_argument(db_session):
    """Missing deputyId is reported before anything runs"""
    with pytest.raises(ValidationError) as exc:
        await run(db_session, "get_deputy_expenses", {"year": 2024})

    assert exc.value.field == "deputyId"
    assert exc.value.message == "Missing required argument 'deputyId'"
    payload = exc.value.to_payload()
    assert payload["error"]["type"] == "ValidationError"
    assert payload["error"]["tool"] == "get_deputy_expenses"


@pytest.mark.asyncio
async def test_wrong_argument_type(db_session):
    with pytest.raises(ValidationError) as exc:
        await run(db_session, "get_deputy_expenses", {"deputyId": "abc"})
    assert exc.value.message.startswith("Argument 'deputyId' must be integer")


@pytest.mark.asyncio
async def test_out_of_range_argument(db_session):
    with pytest.raises(ValidationError) as exc:
        await run(db_session, "get_top_deputies", {"month": 13})
    assert exc.value.field == "month"


@pytest.mark.asyncio
async def test_inverted_date_range(db_session):
    with pytest.raises(ValidationError) as exc:
        await run(
            db_session,
            "get_deputy_expenses",
            {"deputyId": 100, "startDate": "2024-12-31", "endDate": "2024-01-01"},
        )
    assert "startDate must be on or before endDate" in exc.value.message


@pytest.mark.asyncio
async def test_non_object_arguments(db_session):
    with pytest.raises(ValidationError):
        await run(db_session, "search_deputy", "not json")


# =========================
# Deputies
# =========================
@pytest.mark.asyncio
async def test_search_deputy(db_session):
    result = await run(db_session, "search_deputy", {"name": "SILVA"})

    assert result.row_count == 1
    assert result.data[0]["deputy_id"] == 100
    assert result.data[0]["party"] == "PT"
    assert result.query.startswith("SELECT")


@pytest.mark.asyncio
async def test_search_deputy_wildcards_are_literal(db_session):
    """'%' and '_' in a name match themselves, not every deputy"""
    for name in ("%", "_", "Ana%"):
        result = await run(db_session, "search_deputy", {"name": name})
        assert result.data == []


@pytest.mark.asyncio
async def test_unknown_expense_type_wildcards_are_literal(db_session):
    result = await run(db_session, "get_top_deputies", {"expenseType": "%"})
    assert result.data == []


@pytest.mark.asyncio
async def test_deputies_by_party(db_session):
    result = await run(db_session, "get_deputies_by_party", {"party": "pt"})
    assert [row["name"] for row in result.data] == ["Ana Silva", "Bruno Costa", "Carla Souza"]

    result = await run(db_session, "get_deputies_by_party", {"party": "PT", "state": "mg"})
    assert [row["deputy_id"] for row in result.data] == [102]


@pytest.mark.asyncio
async def test_deputy_expenses_filters(db_session):
    result = await run(db_session, "get_deputy_expenses", {"deputyId": 100})
    assert result.data[0]["total"] == 6500.0
    assert result.data[0]["count"] == 4

    result = await run(db_session, "get_deputy_expenses", {"deputyId": 100, "year": 2024})
    assert result.data[0]["total"] == 6000.0

    result = await run(
        db_session, "get_deputy_expenses", {"deputyId": 100, "year": 2024, "month": 1}
    )
    assert result.data[0]["total"] == 4000.0

    result = await run(
        db_session, "get_deputy_expenses", {"deputyId": 100, "year": 2024, "day": 15}
    )
    assert result.data[0]["total"] == 3000.0

    result = await run(
        db_session,
        "get_deputy_expenses",
        {"deputyId": 100, "startDate": "2023-12-01", "endDate": "2024-01-12"},
    )
    assert result.data[0]["total"] == 1500.0


@pytest.mark.asyncio
async def test_deputy_without_expenses_has_no_rows(db_session):
    result = await run(db_session, "get_deputy_expenses", {"deputyId": 102})
    assert result.data == []


@pytest.mark.asyncio
async def test_monthly_average_counts_only_months_with_expenses(db_session):
    result = await run(
        db_session, "get_deputy_monthly_expenses", {"deputyId": 100, "year": 2024}
    )
    data = result.data

    assert data["deputy_info"]["name"] == "Ana Silva"
    assert [(m["month"], m["monthly_total"]) for m in data["monthly_breakdown"]] == [
        (1, 4000.0),
        (3, 2000.0),
    ]
    assert data["summary"]["total_expenses"] == 6000.0
    assert data["summary"]["total_count"] == 3
    assert data["summary"]["months_with_expenses"] == 2
    assert data["summary"]["avg_monthly_expense"] == 3000.0


@pytest.mark.asyncio
async def test_monthly_without_expenses(db_session):
    result = await run(db_session, "get_deputy_monthly_expenses", {"deputyId": 102})
    assert result.data["deputy_info"] is None
    assert result.data["summary"]["avg_monthly_expense"] == 0.0


# =========================
# Rankings
# =========================
@pytest.mark.asyncio
async def test_top_deputies_both_directions(db_session):
    result = await run(db_session, "get_top_deputies", {"year": 2024, "limit": 3})
    assert [row["deputy_id"] for row in result.data] == [103, 100, 101]
    assert result.arguments["orderBy"] == "desc"

    result = await run(
        db_session, "get_top_deputies", {"year": 2024, "limit": 2, "orderBy": "asc"}
    )
    assert [row["deputy_id"] for row in result.data] == [109, 106]


@pytest.mark.asyncio
async def test_top_deputies_by_colloquial_expense_type(db_session):
    """'aluguel de carro' matches LOCAÇÃO OU FRETAMENTO DE VEÍCULOS AUTOMOTORES"""
    result = await run(
        db_session, "get_top_deputies", {"year": 2024, "expenseType": "aluguel de carro"}
    )
    assert [(row["deputy_id"], row["total"]) for row in result.data] == [
        (103, 5000.0),
        (100, 3000.0),
    ]


@pytest.mark.asyncio
async def test_top_deputies_by_legislature_and_party(db_session):
    result = await run(db_session, "get_top_deputies", {"legislature": 56})
    assert [row["deputy_id"] for row in result.data] == [106]

    result = await run(db_session, "get_top_deputies", {"year": 2024, "party": "pl"})
    assert [row["deputy_id"] for row in result.data] == [103, 104]


@pytest.mark.asyncio
async def test_top_parties_limit(db_session):
    result = await run(
        db_session, "get_top_parties", {"year": 2024, "orderBy": "desc", "limit": 5}
    )

    assert result.row_count == 5
    assert [row["party"] for row in result.data] == ["PL", "PT", "PSD", "PSB", "NOVO"]
    assert result.data[0]["total"] == 12800.0
    assert result.data[1]["deputy_count"] == 2


@pytest.mark.asyncio
async def test_top_states(db_session):
    result = await run(db_session, "get_top_states", {"year": 2024})
    assert [(row["state"], row["total"]) for row in result.data] == [
        ("RJ", 12100.0),
        ("SP", 7850.0),
        ("BA", 300.0),
        ("PE", 200.0),
    ]


# =========================
# Breakdowns
# =========================
@pytest.mark.asyncio
async def test_expense_types_joins_deputies_only_when_needed(db_session):
    result = await run(db_session, "get_expense_types", {"year": 2024})
    assert "JOIN deputies" not in result.query

    result = await run(db_session, "get_expense_types", {"year": 2024, "state": "SP"})
    assert "JOIN deputies" in result.query
    assert [(row["expense_type"], row["total"]) for row in result.data] == [
        (CAR_RENTAL, 3000.0),
        (FLIGHTS, 2000.0),
        (FUEL, 1650.0),
        (LODGING, 800.0),
        (PHONE, 400.0),
    ]


@pytest.mark.asyncio
async def test_expense_types_single_category(db_session):
    result = await run(
        db_session, "get_expense_types", {"deputyId": 100, "expenseType": "combustível"}
    )
    assert result.data == [{"expense_type": FUEL, "total": 1500.0, "count": 2}]


@pytest.mark.asyncio
async def test_top_suppliers(db_session):
    result = await run(db_session, "get_top_suppliers", {"year": 2024, "limit": 2})
    assert [row["supplier_name"] for row in result.data] == ["Locadora Rota", "Gráfica Norte"]

    result = await run(db_session, "get_top_suppliers", {"deputyId": 100, "year": 2024})
    assert [row["total"] for row in result.data] == [3000.0, 2000.0, 1000.0]


# =========================
# Comparisons
# =========================
@pytest.mark.asyncio
async def test_compare_deputies(db_session):
    result = await run(
        db_session, "compare_deputies", {"deputyIds": [100, 103, 102], "year": 2024}
    )
    # Deputies without expenses in the period have no row
    assert [row["deputy_id"] for row in result.data] == [103, 100]


@pytest.mark.asyncio
async def test_compare_deputies_needs_ids(db_session):
    with pytest.raises(ValidationError):
        await run(db_session, "compare_deputies", {"deputyIds": []})


@pytest.mark.asyncio
async def test_compare_parties_resolves_old_acronyms(db_session):
    result = await run(
        db_session, "compare_parties", {"parties": ["pt", "pl", "pmdb"], "year": 2024}
    )
    assert [row["party"] for row in result.data] == ["PL", "PT"]
    assert result.data[1]["expense_count"] == 5


@pytest.mark.asyncio
async def test_compare_states(db_session):
    result = await run(
        db_session,
        "compare_states",
        {"states": ["sp", "rj"], "year": 2024, "expenseType": "telefone"},
    )
    assert [(row["state"], row["total"]) for row in result.data] == [
        ("SP", 400.0),
        ("RJ", 100.0),
    ]


# =========================
# Static
# =========================
@pytest.mark.asyncio
async def test_cota_info_runs_without_query(db_session):
    result = await run(db_session, "get_cota_info", {"state": "DF"})
    assert result.query is None
    assert result.data["monthly_allowance_brl"] == {"DF": 36582.46}
