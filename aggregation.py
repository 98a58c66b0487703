import datetime as dt
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from records import GROCERY_CATEGORY, TOTAL_CATEGORY, BudgetCategory

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

FRAME_COLUMNS = ["id", "date", "name", "category", "bucket", "price", "store", "sub_category", "is_grocery"]


def records_frame(records: Iterable) -> pd.DataFrame:
    """
    Flatten expense and grocery records into one frame.

    ``bucket`` is the reporting category: groceries always land in "Grocery",
    blank expense categories in "Uncategorized".
    """
    rows = [
        {
            "id": r.id,
            "date": r.date,
            "name": r.name,
            "category": r.category,
            "bucket": GROCERY_CATEGORY if r.is_grocery else r.category,
            "price": r.price,
            "store": r.store,
            "sub_category": getattr(r, "sub_category", None),
            "is_grocery": r.is_grocery,
        }
        for r in records
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    df["price"] = pd.to_numeric(df["price"], errors="coerce").fillna(0.0)
    df["bucket"] = df["bucket"].fillna("Uncategorized").replace("", "Uncategorized")
    df["is_grocery"] = df["is_grocery"].astype(bool)
    return df


def filter_records(records: Iterable, month: Optional[int] = None, year: Optional[int] = None) -> list:
    """Keep records whose (UTC) date falls in the given month and/or year."""
    if month is None and year is None:
        return list(records)
    return [
        r for r in records
        if r.date is not None
        and (month is None or r.date.month == month)
        and (year is None or r.date.year == year)
    ]


def budget_summary(records: Iterable, budgets: Sequence[BudgetCategory], month: int, year: int) -> List[dict]:
    """
    Spend vs budget per category for one month.

    "Grocery" is summed from grocery records only; every other category from
    expense records with exactly that category.  A "Total" line carries the
    sum of all other lines.  An existing "Total" budget row keeps its budget
    and only has its total replaced; otherwise one is appended with the sum
    of all budgets.
    """
    frame = records_frame(filter_records(records, month, year))
    grocery_spend = float(frame.loc[frame["is_grocery"], "price"].sum())
    expenses = frame[~frame["is_grocery"]]
    by_category = expenses.groupby("category")["price"].sum()

    lines = []
    spent = 0.0
    for budget in budgets:
        if budget.category == GROCERY_CATEGORY:
            total = grocery_spend
        elif budget.category == TOTAL_CATEGORY:
            total = 0.0
        else:
            total = float(by_category.get(budget.category, 0.0))
        if budget.category != TOTAL_CATEGORY:
            spent += total
        lines.append({"category": budget.category, "total": total, "budget": float(budget.budget)})

    total_line = next((line for line in lines if line["category"] == TOTAL_CATEGORY), None)
    if total_line:
        total_line["total"] = spent
    else:
        lines.append({
            "category": TOTAL_CATEGORY,
            "total": spent,
            "budget": sum(line["budget"] for line in lines),
        })
    return lines


def budget_status(line: dict) -> dict:
    """Percentage used, remaining amount and a colour band for one budget line."""
    budget = line["budget"]
    total = line["total"]
    pct = total / budget * 100 if budget > 0 else 0.0
    if total > budget:
        band = "red"
    elif pct < 50:
        band = "green"
    elif pct < 75:
        band = "amber"
    elif pct < 100:
        band = "orange"
    else:
        band = "red"
    return {
        "category": line["category"],
        "total": total,
        "budget": budget,
        "pct": pct,
        "remaining": budget - total,
        "is_over": total > budget,
        "band": band,
    }


def yearly_rollup(records: Iterable, year: int, categories: Optional[Sequence[str]] = None) -> List[dict]:
    """
    One row per calendar month of ``year`` with spend per category and a total.

    Months without records are zero-filled.  ``categories`` fixes the column
    order; categories seen in the data but not listed are appended.
    """
    frame = records_frame(filter_records(records, year=year))
    buckets = [c for c in (categories or []) if c != TOTAL_CATEGORY]
    for bucket in sorted(frame["bucket"].unique()):
        if bucket not in buckets:
            buckets.append(bucket)

    grouped: Dict = {}
    if not frame.empty:
        grouped = frame.groupby([frame["date"].dt.month, "bucket"])["price"].sum().to_dict()

    rollup = []
    for month_num, label in enumerate(MONTH_LABELS, start=1):
        row = {"month": label}
        for bucket in buckets:
            row[bucket] = float(grouped.get((month_num, bucket), 0.0))
        row["total"] = sum(row[bucket] for bucket in buckets)
        rollup.append(row)
    return rollup


def store_distribution(records: Iterable) -> List[dict]:
    """Spend per store with its share of the total, largest first."""
    frame = records_frame(records)
    frame["store"] = frame["store"].fillna("").astype(str).str.strip()
    frame = frame[frame["store"] != ""]
    if frame.empty:
        return []

    by_store = frame.groupby("store")["price"].sum().sort_values(ascending=False, kind="stable")
    grand_total = float(by_store.sum())
    return [
        {
            "store": store,
            "total": float(total),
            "percentage": float(total) / grand_total * 100 if grand_total else 0.0,
        }
        for store, total in by_store.items()
    ]


def grocery_subcategory_totals(records: Iterable, month: Optional[int] = None, year: Optional[int] = None) -> Dict[str, float]:
    frame = records_frame(filter_records(records, month, year))
    groceries = frame[frame["is_grocery"] & frame["sub_category"].notna() & (frame["sub_category"] != "")]
    return {str(k): float(v) for k, v in groceries.groupby("sub_category")["price"].sum().items()}


def name_history(records: Iterable, name: str) -> list:
    """Every purchase of an item (case-insensitive exact name), newest first."""
    target = name.strip().lower()
    matches = [r for r in records if (r.name or "").strip().lower() == target]
    return sorted(matches, key=lambda r: r.date or dt.date.min, reverse=True)


def recent_records(records: Iterable, limit: int = 5) -> list:
    dated = [r for r in records if r.date is not None]
    return sorted(dated, key=lambda r: r.date, reverse=True)[:limit]


def search_records(records: Iterable, query: str) -> list:
    needle = (query or "").strip().lower()
    if not needle:
        return list(records)

    def haystack(r):
        return " ".join(
            (value or "").lower()
            for value in (r.name, r.store, getattr(r, "sub_category", None), r.additional_details)
        )

    return [r for r in records if needle in haystack(r)]
