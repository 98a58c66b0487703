"""
seed_sheets.py
--------------
Prepare an empty spreadsheet (or CSV workbook): write the header row of each
sheet that has none and optionally seed a starting set of category budgets.
"""

import argparse
import logging

import config
from errors import DuplicateCategory
from records import BUDGET_COLUMNS, EXPENSE_COLUMNS, GROCERY_COLUMNS, TOTAL_CATEGORY
from repository import ExpenseRepository, get_repository

logger = logging.getLogger(__name__)

DEFAULT_BUDGETS = {
    "Grocery": 600,
    "Rent": 1500,
    "Utilities": 250,
    "Transport": 200,
    "Dining": 200,
    "Shopping": 150,
    TOTAL_CATEGORY: 0,
}


def seed_headers(repo: ExpenseRepository) -> list:
    """Write header rows where missing; returns the sheets that were touched."""
    touched = []
    for sheet, header in (
        (repo.expense_sheet, EXPENSE_COLUMNS),
        (repo.grocery_sheet, GROCERY_COLUMNS),
        (repo.budget_sheet, BUDGET_COLUMNS),
    ):
        if repo.client.read_rows(sheet):
            continue
        repo.client.append_row(sheet, header)
        touched.append(sheet)
    return touched


def seed_budgets(repo: ExpenseRepository, budgets: dict = DEFAULT_BUDGETS) -> int:
    count = 0
    for category, amount in budgets.items():
        try:
            repo.add_budget(category, amount)
            count += 1
        except DuplicateCategory:
            logger.info("Budget for %s already exists. Skipping.", category)
    return count


def main(argv=None):
    parser = argparse.ArgumentParser(description="Write sheet headers and default budgets")
    parser.add_argument("--budgets", action="store_true", help="also seed default category budgets")
    args = parser.parse_args(argv)

    config.configure_logging()
    repo = get_repository()

    touched = seed_headers(repo)
    if touched:
        print(f"Wrote headers for: {', '.join(touched)}")
    else:
        print("Headers already exist. Skipping.")

    if args.budgets:
        print(f"Seeded {seed_budgets(repo)} budgets.")


if __name__ == "__main__":
    main()
