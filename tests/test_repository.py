import datetime as dt
from unittest.mock import MagicMock

import pytest

from errors import DuplicateCategory, RecordNotFound
from records import EXPENSE_COLUMNS, GROCERY_COLUMNS, ExpenseRecord, GroceryRecord
from repository import ExpenseRepository


def _without_id(record):
    return record.model_dump(exclude={"id"})


def test_first_create_writes_header(repo, workbook, expenses):
    new_id = repo.create_record(expenses[0])

    assert new_id == "2"
    rows = workbook.read_rows("Expenses")
    assert rows[0] == EXPENSE_COLUMNS
    assert rows[1][0] == "2"


def test_ids_are_sequential_per_sheet(repo, expenses, groceries):
    assert [repo.create_record(r) for r in expenses] == ["2", "3", "4"]
    assert repo.create_record(groceries[0]) == "2"


def test_next_id_skips_ids_in_use_after_delete(repo, expenses):
    for record in expenses:
        repo.create_record(record)
    repo.delete_record("2", is_grocery=False)

    assert repo.next_id(is_grocery=False) == "5"


def test_round_trip(repo, sample_records):
    for record in sample_records:
        repo.create_record(record)

    march = repo.list_records(3, 2024)
    expected = [r for r in sample_records if r.date.month == 3 and r.date.year == 2024]
    assert sorted(map(_without_id, march), key=str) == sorted(map(_without_id, expected), key=str)


def test_grocery_written_to_grocery_sheet(repo, workbook, groceries):
    repo.create_record(groceries[1])

    rows = workbook.read_rows("Groceries")
    assert rows[0] == GROCERY_COLUMNS
    assert workbook.read_rows("Expenses") == []
    record = repo.get_record("2", is_grocery=True)
    assert isinstance(record, GroceryRecord)
    assert record.seller_rate == 4.4
    assert record.seller_rate_in_lb == pytest.approx(2.0)


def test_same_id_in_both_sheets(repo, expenses, groceries):
    repo.create_record(expenses[0])
    repo.create_record(groceries[0])

    assert repo.get_record("2", is_grocery=False).name == "Bus pass"
    assert repo.get_record("2", is_grocery=True).name == "Milk"


def test_get_missing_record(repo):
    with pytest.raises(RecordNotFound):
        repo.get_record("99", is_grocery=False)


def test_update_record(repo, expenses):
    record_id = repo.create_record(expenses[0])
    changed = expenses[0].model_copy(update={"price": 99.0, "store": "Go Transit"})

    repo.update_record(record_id, changed)

    record = repo.get_record(record_id, is_grocery=False)
    assert record.price == 99.0
    assert record.store == "Go Transit"
    assert len(repo.list_records()) == 1


def test_update_missing_record(repo, expenses):
    repo.create_record(expenses[0])
    with pytest.raises(RecordNotFound):
        repo.update_record("42", expenses[0])


def test_delete_record(repo, expenses):
    for record in expenses:
        repo.create_record(record)

    repo.delete_record("3", is_grocery=False)

    assert [r.id for r in repo.list_records()] == ["2", "4"]
    with pytest.raises(RecordNotFound):
        repo.delete_record("3", is_grocery=False)


def test_history_spans_both_sheets(repo):
    repo.create_record(GroceryRecord(date=dt.date(2024, 1, 1), name="Coffee", price=8.0))
    repo.create_record(ExpenseRecord(date=dt.date(2024, 2, 1), name="coffee", price=4.0, category="Dining"))

    assert [r.price for r in repo.history("Coffee")] == [4.0, 8.0]


def test_lookups(repo, sample_records):
    for record in sample_records:
        repo.create_record(record)

    assert set(repo.names()) == {r.name for r in sample_records}
    assert set(repo.stores()) == {"Presto", "Pizza Place", "NoFrills", "Costco"}
    assert set(repo.subcategories()) == {"Dairy", "Fruits", "Non-veg"}
    assert repo.grocery_subcategory_options()[:6] == ["Vegies", "Non-veg", "Dairy", "Fruits", "Long-Term", "Snacks"]
    assert repo.store_categories()["Presto"] == "Transport"
    assert repo.store_categories()["NoFrills"] == "Grocery"


def test_new_subcategory_extends_options(repo):
    repo.create_record(GroceryRecord(date=dt.date(2024, 1, 1), name="Tofu", price=3.0, sub_category="Vegan"))
    assert repo.grocery_subcategory_options()[-1] == "Vegan"


def test_lookups_are_cached_until_mutation(workbook, expenses):
    client = MagicMock(wraps=workbook)
    repo = ExpenseRepository(client)
    repo.create_record(expenses[0])

    assert repo.stores() == ["Presto"]
    reads = client.read_rows.call_count
    assert repo.stores() == ["Presto"]
    assert client.read_rows.call_count == reads

    repo.create_record(expenses[1])
    assert repo.stores() == ["Presto", "Pizza Place"]


def test_refresh_drops_cached_lookups(repo, workbook, expenses):
    repo.create_record(expenses[0])
    assert repo.names() == ["Bus pass"]

    # A write made behind the repository's back is only seen after a refresh
    workbook.append_row("Expenses", ["3", "2024-03-06", "Taxi", "Transport", "20"])
    assert repo.names() == ["Bus pass"]
    repo.refresh()
    assert repo.names() == ["Bus pass", "Taxi"]


def test_budgets(repo):
    repo.add_budget("Grocery", 400)
    repo.add_budget("Transport", 150.5)

    assert [(b.category, b.budget) for b in repo.list_budgets()] == [("Grocery", 400.0), ("Transport", 150.5)]

    repo.update_budget("Grocery", 450)
    assert repo.list_budgets()[0].budget == 450.0


def test_add_duplicate_budget(repo):
    repo.add_budget("Grocery", 400)
    with pytest.raises(DuplicateCategory):
        repo.add_budget("Grocery", 500)


def test_update_missing_budget(repo):
    repo.add_budget("Grocery", 400)
    with pytest.raises(RecordNotFound, match="Category not found"):
        repo.update_budget("Rent", 1000)


def test_categories_exclude_total(repo):
    repo.add_budget("Rent", 1500)
    repo.add_budget("Total", 3000)
    assert repo.categories() == ["Rent"]


def test_budget_summary(repo, sample_records):
    for record in sample_records:
        repo.create_record(record)
    repo.add_budget("Grocery", 400)
    repo.add_budget("Transport", 150)

    lines = {line["category"]: line for line in repo.budget_summary(3, 2024)}

    assert lines["Grocery"]["total"] == pytest.approx(10.5)
    assert lines["Transport"]["total"] == pytest.approx(120.0)
    assert lines["Total"]["budget"] == pytest.approx(550.0)


def test_reports(repo, sample_records):
    for record in sample_records:
        repo.create_record(record)

    assert len(repo.yearly_rollup(2024)) == 12
    assert repo.store_distribution(3, 2024)[0]["store"] == "Presto"
    assert repo.grocery_subcategory_totals(3, 2024) == {"Dairy": 4.5, "Fruits": 6.0}


def test_unreadable_rows_still_count_for_ids(repo, workbook, expenses):
    workbook.append_row("Expenses", EXPENSE_COLUMNS)
    workbook.append_row("Expenses", ["2", "2024-01-02", "Refund", "Snacks", "-5"])

    assert repo.list_records() == []
    assert repo.create_record(expenses[0]) == "3"


def test_store_distribution_for_whole_year(repo, sample_records):
    for record in sample_records:
        repo.create_record(record)

    march = {d["store"]: d["total"] for d in repo.store_distribution(3, 2024)}
    year = {d["store"]: d["total"] for d in repo.store_distribution(None, 2024)}

    assert march["Presto"] == pytest.approx(120.0)
    assert year["Presto"] == pytest.approx(150.0)
    assert "Costco" not in year
