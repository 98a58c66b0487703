"""
records.py
----------
Record models and the fixed row layouts used by the spreadsheet.

Expense and grocery rows live on separate sheets with different column
orders.  Ids are only unique within one sheet.
"""

import datetime as dt
import logging
from typing import Annotated, List, Literal, Optional, Sequence, Union

import pandas as pd
from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

GROCERY_CATEGORY = "Grocery"
TOTAL_CATEGORY = "Total"

LB_PER_KG = 2.20462
WEIGHT_UNIT = "per kg/per lb"
EACH_UNIT = "each"
UNITS = [WEIGHT_UNIT, EACH_UNIT]

GROCERY_SUBCATEGORIES = ["Vegies", "Non-veg", "Dairy", "Fruits", "Long-Term", "Snacks"]

EXPENSE_COLUMNS = [
    "ID", "Date", "Name", "Category", "Price", "Store", "Additional Details",
    "Long Term Buy", "Expected Duration", "Duration Unit", "Is Grocery", "Unit",
]
GROCERY_COLUMNS = [
    "ID", "Date", "Name", "Price", "Store", "Additional Details", "Long Term Buy",
    "Expected Duration", "Duration Unit", "Quantity", "Sub Category", "Unit",
    "Seller Rate", "Seller Rate In Lb", "Is Grocery",
]
BUDGET_COLUMNS = ["Category", "Budget"]


def parse_number(value) -> Optional[float]:
    """Parse a sheet cell like ``"$1,250.50"``; blanks and junk give None."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return None if pd.isna(value) else float(value)
    text = str(value).replace("$", "").replace(",", "").strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return None if pd.isna(number) else number


def format_number(value) -> str:
    if value is None:
        return ""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def parse_sheet_date(value) -> Optional[dt.date]:
    """
    Read a date cell as a UTC calendar date.

    Values with an offset are shifted to UTC first; naive values are taken
    as UTC already.  Unreadable values give None.
    """
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        ts = pd.Timestamp(value)
        ts = ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")
        return ts.date()
    if isinstance(value, dt.date):
        return value
    text = str(value).strip()
    if not text:
        return None
    ts = pd.to_datetime(text, utc=True, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.date()


def rate_per_lb(rate_per_kg: float) -> float:
    return round(rate_per_kg / LB_PER_KG, 2)


def rate_per_kg(rate_per_lb_value: float) -> float:
    return round(rate_per_lb_value * LB_PER_KG, 2)


class RecordBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    date: Optional[dt.date] = None
    name: str = ""
    price: float = Field(0.0, ge=0)
    store: Optional[str] = None
    additional_details: Optional[str] = None
    is_long_term_buy: bool = False
    expected_duration: Optional[int] = None
    duration_unit: Optional[str] = None
    unit: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value):
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("date", mode="before")
    @classmethod
    def _date_from_text(cls, value):
        if isinstance(value, str):
            return parse_sheet_date(value)
        return value


class ExpenseRecord(RecordBase):
    category: str = ""
    is_grocery: Literal[False] = False


class GroceryRecord(RecordBase):
    category: Literal["Grocery"] = GROCERY_CATEGORY
    quantity: Optional[Union[float, str]] = None
    sub_category: Optional[str] = None
    seller_rate: Optional[float] = None
    seller_rate_in_lb: Optional[float] = None
    is_grocery: Literal[True] = True

    @field_validator("category", mode="before")
    @classmethod
    def _always_grocery(cls, value):
        return GROCERY_CATEGORY

    @field_validator("quantity", mode="before")
    @classmethod
    def _numeric_quantity(cls, value):
        if isinstance(value, str):
            number = parse_number(value)
            if number is not None:
                return number
            return value.strip() or None
        return value

    @model_validator(mode="after")
    def _sync_seller_rates(self):
        # Per-kg rate is the canonical input, per-lb is derived from it
        if self.unit == WEIGHT_UNIT:
            if self.seller_rate is not None and self.seller_rate_in_lb is None:
                self.seller_rate_in_lb = rate_per_lb(self.seller_rate)
            elif self.seller_rate_in_lb is not None and self.seller_rate is None:
                self.seller_rate = rate_per_kg(self.seller_rate_in_lb)
        return self


def _record_kind(value) -> str:
    if isinstance(value, dict):
        flag = value.get("isGrocery", value.get("is_grocery", False))
    else:
        flag = getattr(value, "is_grocery", False)
    return "grocery" if flag is True else "expense"


Record = Annotated[
    Union[Annotated[GroceryRecord, Tag("grocery")], Annotated[ExpenseRecord, Tag("expense")]],
    Discriminator(_record_kind),
]
record_adapter = TypeAdapter(Record)


class BudgetCategory(BaseModel):
    category: str
    budget: float = Field(0.0, ge=0)
    total: Optional[float] = None


class ReceiptData(BaseModel):
    """Whatever the receipt parser could pull out of the OCR text."""

    date: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None
    store: Optional[str] = None
    category: Optional[str] = None


# --- Row codecs ---

def _cell(row: Sequence, idx: int) -> str:
    if idx >= len(row) or row[idx] is None:
        return ""
    return str(row[idx]).strip()


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _duration(value: str) -> Optional[int]:
    number = parse_number(value)
    return int(number) if number is not None else None


def to_row(record: Union[ExpenseRecord, GroceryRecord]) -> List[str]:
    """Lay a record out in its sheet's column order."""
    common_head = [record.id or "", record.date.isoformat() if record.date else "", record.name or ""]
    if isinstance(record, GroceryRecord):
        quantity = record.quantity
        if isinstance(quantity, float):
            quantity = format_number(quantity)
        return common_head + [
            format_number(record.price),
            record.store or "",
            record.additional_details or "",
            _yes_no(record.is_long_term_buy),
            format_number(record.expected_duration),
            record.duration_unit or "",
            quantity or "",
            record.sub_category or "",
            record.unit or "",
            format_number(record.seller_rate),
            format_number(record.seller_rate_in_lb),
            "Yes",
        ]
    return common_head + [
        record.category or "",
        format_number(record.price),
        record.store or "",
        record.additional_details or "",
        _yes_no(record.is_long_term_buy),
        format_number(record.expected_duration),
        record.duration_unit or "",
        "No",
        record.unit or "",
    ]


def record_from_row(row: Sequence, is_grocery: bool) -> Union[ExpenseRecord, GroceryRecord]:
    if is_grocery:
        return GroceryRecord(
            id=_cell(row, 0),
            date=parse_sheet_date(_cell(row, 1)),
            name=_cell(row, 2),
            price=parse_number(_cell(row, 3)) or 0.0,
            store=_cell(row, 4) or None,
            additional_details=_cell(row, 5) or None,
            is_long_term_buy=_cell(row, 6) == "Yes",
            expected_duration=_duration(_cell(row, 7)),
            duration_unit=_cell(row, 8) or None,
            quantity=_cell(row, 9) or None,
            sub_category=_cell(row, 10) or None,
            unit=_cell(row, 11) or None,
            seller_rate=parse_number(_cell(row, 12)),
            seller_rate_in_lb=parse_number(_cell(row, 13)),
        )
    return ExpenseRecord(
        id=_cell(row, 0),
        date=parse_sheet_date(_cell(row, 1)),
        name=_cell(row, 2),
        category=_cell(row, 3),
        price=parse_number(_cell(row, 4)) or 0.0,
        store=_cell(row, 5) or None,
        additional_details=_cell(row, 6) or None,
        is_long_term_buy=_cell(row, 7) == "Yes",
        expected_duration=_duration(_cell(row, 8)),
        duration_unit=_cell(row, 9) or None,
        unit=_cell(row, 11) or None,
    )


def records_from_rows(rows: Sequence[Sequence], is_grocery: bool) -> list:
    """Decode data rows (header already removed); invalid rows are skipped."""
    records = []
    for offset, row in enumerate(rows):
        if not any(_cell(row, i) for i in range(len(row))):
            continue
        try:
            records.append(record_from_row(row, is_grocery))
        except ValidationError as exc:
            logger.warning("Skipping unreadable %s row %d: %s",
                           "grocery" if is_grocery else "expense", offset + 2, exc)
    return records


def budget_from_row(row: Sequence) -> Optional[BudgetCategory]:
    category = _cell(row, 0)
    if not category:
        return None
    try:
        return BudgetCategory(category=category, budget=parse_number(_cell(row, 1)) or 0.0)
    except ValidationError as exc:
        logger.warning("Skipping unreadable budget row for %s: %s", category, exc)
        return None
