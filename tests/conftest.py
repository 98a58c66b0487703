"""
Pytest configuration and fixtures
"""
import datetime as dt

import pytest

from records import WEIGHT_UNIT, BudgetCategory, ExpenseRecord, GroceryRecord
from repository import ExpenseRepository
from sheets import CsvWorkbook


@pytest.fixture
def workbook(tmp_path):
    """CSV workbook in a temporary directory"""
    return CsvWorkbook(root=tmp_path)


@pytest.fixture
def repo(workbook):
    return ExpenseRepository(workbook)


@pytest.fixture
def expenses():
    return [
        ExpenseRecord(id="2", date=dt.date(2024, 3, 5), name="Bus pass", category="Transport",
                      price=120.0, store="Presto"),
        ExpenseRecord(id="3", date=dt.date(2024, 3, 20), name="Dinner", category="Dining",
                      price=45.5, store="Pizza Place"),
        ExpenseRecord(id="4", date=dt.date(2024, 4, 2), name="Train", category="Transport",
                      price=30.0, store="Presto"),
    ]


@pytest.fixture
def groceries():
    return [
        GroceryRecord(id="2", date=dt.date(2024, 3, 10), name="Milk", price=4.5, store="NoFrills",
                      sub_category="Dairy", quantity=2, unit="each"),
        GroceryRecord(id="3", date=dt.date(2024, 3, 12), name="Apples", price=6.0, store="NoFrills",
                      sub_category="Fruits", unit=WEIGHT_UNIT, seller_rate=4.4),
        GroceryRecord(id="4", date=dt.date(2023, 12, 31), name="Chicken", price=12.0, store="Costco",
                      sub_category="Non-veg"),
    ]


@pytest.fixture
def sample_records(expenses, groceries):
    return expenses + groceries


@pytest.fixture
def budgets():
    return [
        BudgetCategory(category="Grocery", budget=400),
        BudgetCategory(category="Transport", budget=150),
        BudgetCategory(category="Dining", budget=100),
    ]
