"""
repository.py
-------------
CRUD over the Expenses / Groceries / CategoryWiseMaxBudget sheets plus the
lookup lists the entry forms use.

Records are never cached: every read is a full scan filtered in memory.
Lookup lists (names, stores, sub-categories, ...) are read-through caches
that any mutation drops.
"""

import logging
from collections import Counter
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Union

import aggregation
import config
from errors import DuplicateCategory, RecordNotFound
from records import (
    BUDGET_COLUMNS,
    EXPENSE_COLUMNS,
    GROCERY_COLUMNS,
    GROCERY_SUBCATEGORIES,
    TOTAL_CATEGORY,
    BudgetCategory,
    ExpenseRecord,
    GroceryRecord,
    budget_from_row,
    format_number,
    records_from_rows,
    to_row,
)
from sheets import get_client

logger = logging.getLogger(__name__)

AnyRecord = Union[ExpenseRecord, GroceryRecord]


class ExpenseRepository:
    def __init__(
        self,
        client,
        expense_sheet: str = config.EXPENSE_SHEET,
        grocery_sheet: str = config.GROCERY_SHEET,
        budget_sheet: str = config.BUDGET_SHEET,
    ):
        self.client = client
        self.expense_sheet = expense_sheet
        self.grocery_sheet = grocery_sheet
        self.budget_sheet = budget_sheet
        self._lookups: Dict[str, object] = {}

    # --- Lookup cache ---

    def _cached(self, key: str, build: Callable):
        if key not in self._lookups:
            self._lookups[key] = build()
        return self._lookups[key]

    def refresh(self):
        self._lookups.clear()

    def _sheet_for(self, is_grocery: bool) -> str:
        return self.grocery_sheet if is_grocery else self.expense_sheet

    # --- Records ---

    def _load(self, is_grocery: bool) -> List[AnyRecord]:
        rows = self.client.read_rows(self._sheet_for(is_grocery))
        return records_from_rows(rows[1:], is_grocery)

    def list_records(self, month: Optional[int] = None, year: Optional[int] = None) -> List[AnyRecord]:
        records = self._load(False) + self._load(True)
        return aggregation.filter_records(records, month, year)

    def get_record(self, record_id: str, is_grocery: bool) -> AnyRecord:
        for record in self._load(is_grocery):
            if record.id == str(record_id):
                return record
        raise RecordNotFound(f"Expense {record_id} not found")

    def _find_row(self, sheet: str, record_id: str) -> int:
        rows = self.client.read_rows(sheet)
        for index, row in enumerate(rows):
            if index > 0 and row and row[0] == str(record_id):
                return index + 1
        raise RecordNotFound(f"Expense {record_id} not found")

    def next_id(self, is_grocery: bool) -> str:
        """
        Row number the next appended row will land on.

        After deletions that number can already be in use, in which case the
        id after the largest numeric id is used.
        """
        rows = self.client.read_rows(self._sheet_for(is_grocery))
        candidate = len(rows) + 1
        taken = {row[0] for row in rows[1:] if row}
        if str(candidate) in taken:
            numeric = [int(i) for i in taken if i.isdigit()]
            candidate = max(numeric) + 1
        return str(candidate)

    def create_record(self, record: AnyRecord) -> str:
        sheet = self._sheet_for(record.is_grocery)
        if not self.client.read_rows(sheet):
            self.client.append_row(sheet, GROCERY_COLUMNS if record.is_grocery else EXPENSE_COLUMNS)
        new_id = self.next_id(record.is_grocery)
        self.client.append_row(sheet, to_row(record.model_copy(update={"id": new_id})))
        self.refresh()
        logger.info("Created %s %s", "grocery" if record.is_grocery else "expense", new_id)
        return new_id

    def update_record(self, record_id: str, record: AnyRecord) -> AnyRecord:
        sheet = self._sheet_for(record.is_grocery)
        row_number = self._find_row(sheet, record_id)
        updated = record.model_copy(update={"id": str(record_id)})
        self.client.update_row(sheet, row_number, to_row(updated))
        self.refresh()
        return updated

    def delete_record(self, record_id: str, is_grocery: bool):
        sheet = self._sheet_for(is_grocery)
        row_number = self._find_row(sheet, record_id)
        self.client.delete_row(sheet, row_number)
        self.refresh()

    def history(self, name: str) -> List[AnyRecord]:
        return aggregation.name_history(self.list_records(), name)

    # --- Budgets ---

    def list_budgets(self) -> List[BudgetCategory]:
        rows = self.client.read_rows(self.budget_sheet)
        budgets = (budget_from_row(row) for row in rows[1:])
        return [b for b in budgets if b is not None]

    def update_budget(self, category: str, budget: float):
        rows = self.client.read_rows(self.budget_sheet)
        for index, row in enumerate(rows):
            if index > 0 and row and row[0] == category:
                self.client.update_row(self.budget_sheet, index + 1, [category, format_number(budget)])
                self.refresh()
                return
        raise RecordNotFound("Category not found")

    def add_budget(self, category: str, budget: float):
        rows = self.client.read_rows(self.budget_sheet)
        if any(row and row[0] == category for row in rows[1:]):
            raise DuplicateCategory(f"Category {category} already exists")
        if not rows:
            self.client.append_row(self.budget_sheet, BUDGET_COLUMNS)
        self.client.append_row(self.budget_sheet, [category, format_number(budget)])
        self.refresh()

    # --- Lookups ---

    def names(self) -> List[str]:
        return self._cached("names", lambda: _distinct(r.name for r in self.list_records()))

    def stores(self) -> List[str]:
        return self._cached("stores", lambda: _distinct(r.store for r in self.list_records()))

    def subcategories(self) -> List[str]:
        return self._cached(
            "subcategories",
            lambda: _distinct(r.sub_category for r in self._load(True)),
        )

    def grocery_subcategory_options(self) -> List[str]:
        return _distinct(GROCERY_SUBCATEGORIES + self.subcategories())

    def categories(self) -> List[str]:
        return self._cached(
            "categories",
            lambda: [b.category for b in self.list_budgets() if b.category != TOTAL_CATEGORY],
        )

    def store_categories(self) -> Dict[str, str]:
        """Most frequent category bought at each store."""

        def build():
            counts: Dict[str, Counter] = {}
            for record in self.list_records():
                if record.store and record.category:
                    counts.setdefault(record.store, Counter())[record.category] += 1
            return {store: counter.most_common(1)[0][0] for store, counter in counts.items()}

        return self._cached("store_categories", build)

    # --- Reports ---

    def budget_summary(self, month: int, year: int) -> List[dict]:
        return aggregation.budget_summary(self.list_records(month, year), self.list_budgets(), month, year)

    def yearly_rollup(self, year: int) -> List[dict]:
        return aggregation.yearly_rollup(self.list_records(year=year), year, self.categories())

    def store_distribution(self, month: Optional[int] = None, year: Optional[int] = None) -> List[dict]:
        return aggregation.store_distribution(self.list_records(month, year))

    def grocery_subcategory_totals(self, month: Optional[int] = None, year: Optional[int] = None) -> Dict[str, float]:
        return aggregation.grocery_subcategory_totals(self.list_records(month, year), month, year)


def _distinct(values) -> List[str]:
    return list(dict.fromkeys(v for v in values if v))


@lru_cache(maxsize=1)
def get_repository() -> ExpenseRepository:
    return ExpenseRepository(get_client())
