import pytest

from camara_ai.assistant.executor import run_tool
from camara_ai.assistant.errors import ValidationError

from conftest import DEPUTIES


async def statistics(db, **arguments):
    result = await run_tool("get_statistics", arguments, db, timeout=5)
    return result.data


def by_group(rows):
    return {row["group_name"]: row for row in rows}


@pytest.mark.asyncio
async def test_group_by_is_required(db_session):
    with pytest.raises(ValidationError) as exc:
        await statistics(db_session, year=2024)
    assert exc.value.field == "groupBy"


@pytest.mark.asyncio
async def test_average_counts_deputies_without_expenses(db_session):
    """PT has 3 deputies and only 2 spent in 2024: the average divides by 3"""
    groups = by_group(await statistics(db_session, groupBy="party", year=2024))

    pt = groups["PT"]
    assert pt["deputy_count"] == 3
    assert pt["total_expenses"] == 7000.0
    assert pt["avg_per_deputy"] == pytest.approx(7000 / 3)
    assert pt["min_per_deputy"] == 0.0
    assert pt["max_per_deputy"] == 6000.0

    # Whole group without a single expense still shows up
    assert groups["MDB"]["deputy_count"] == 1
    assert groups["MDB"]["total_expenses"] == 0.0
    assert groups["MDB"]["avg_per_deputy"] == 0.0


@pytest.mark.asyncio
async def test_group_sizes_cover_the_population(db_session):
    rows = await statistics(db_session, groupBy="state", year=2024)
    assert sum(row["deputy_count"] for row in rows) == len(DEPUTIES)

    rows = await statistics(db_session, groupBy="state", year=2024, legislature=57)
    assert sum(row["deputy_count"] for row in rows) == len(DEPUTIES) - 1


@pytest.mark.asyncio
async def test_min_group_size_drops_small_groups(db_session):
    rows = await statistics(db_session, groupBy="party", year=2024, minGroupSize=2)
    assert [row["group_name"] for row in rows] == ["PL", "PT"]


@pytest.mark.asyncio
async def test_order_by_average(db_session):
    rows = await statistics(db_session, groupBy="party", year=2024, orderBy="avg_asc")
    averages = [row["avg_per_deputy"] for row in rows]
    assert averages == sorted(averages)
    assert rows[0]["group_name"] == "MDB"

    rows = await statistics(
        db_session, groupBy="party", year=2024, orderBy="avg_desc", limit=2
    )
    assert [row["group_name"] for row in rows] == ["PL", "PT"]


@pytest.mark.asyncio
async def test_overall_numbers(db_session):
    rows = await statistics(db_session, groupBy="none", year=2024)

    assert len(rows) == 1
    overall = rows[0]
    assert "group_name" not in overall
    assert overall["deputy_count"] == 10
    assert overall["total_expenses"] == 20450.0
    assert overall["avg_per_deputy"] == 2045.0
    assert overall["min_per_deputy"] == 0.0
    assert overall["max_per_deputy"] == 12000.0


@pytest.mark.asyncio
async def test_filtered_population(db_session):
    groups = by_group(
        await statistics(db_session, groupBy="state", party="pt", year=2024)
    )
    assert set(groups) == {"SP", "MG"}
    assert groups["SP"]["deputy_count"] == 2
    assert groups["MG"]["total_expenses"] == 0.0


@pytest.mark.asyncio
async def test_expense_filters_do_not_shrink_groups(db_session):
    """Filtering by month changes totals, never who is counted"""
    groups = by_group(
        await statistics(db_session, groupBy="party", year=2024, month=1)
    )
    assert groups["PT"]["deputy_count"] == 3
    assert groups["PT"]["total_expenses"] == 4000.0
