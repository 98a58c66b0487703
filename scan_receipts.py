"""
scan_receipts.py
----------------
Scan a directory of receipt photos, pull date / store / total out of each
one and print the results as a table.  With ``--append`` every receipt that
yielded a date and a total is recorded as an expense.
"""

from __future__ import annotations

import argparse
import glob
import os
from pathlib import Path
from typing import List, Optional

import pandas as pd

import config
from errors import ReceiptScanError
from ocr import scan_receipt
from records import ExpenseRecord
from repository import ExpenseRepository, get_repository

IMAGE_PATTERNS = ["*.png", "*.jpg", "*.jpeg", "*.tif", "*.tiff"]
RESULT_COLUMNS = ["File", "Date", "Store", "Name", "Price", "Category"]


def find_images(folder: str) -> List[Path]:
    files = []
    for pattern in IMAGE_PATTERNS:
        files.extend(glob.glob(os.path.join(folder, pattern)))
    return sorted(Path(f) for f in set(files))


def process_files(files: List[Path], repo: Optional[ExpenseRepository] = None, day_first=None) -> pd.DataFrame:
    """Scan each image and return one row per readable receipt."""
    known_stores = repo.stores() if repo is not None else []
    store_categories = repo.store_categories() if repo is not None else {}

    rows = []
    for file in files:
        try:
            data = scan_receipt(file, known_stores, store_categories, day_first=day_first)
        except ReceiptScanError as exc:
            print(f"Failed to read {file}: {exc}")
            continue
        rows.append({
            "File": file.name,
            "Date": data.date,
            "Store": data.store,
            "Name": data.name,
            "Price": data.price,
            "Category": data.category,
        })

    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def append_expenses(df: pd.DataFrame, repo: ExpenseRepository, category: Optional[str] = None) -> int:
    """Record every complete row as an expense; returns how many were written."""
    count = 0
    for _, row in df.iterrows():
        if pd.isna(row["Date"]) or pd.isna(row["Price"]):
            print(f"Skipping {row['File']}: no date or total found")
            continue
        record = ExpenseRecord(
            date=row["Date"],
            name=row["Name"] if pd.notna(row["Name"]) else (row["Store"] if pd.notna(row["Store"]) else row["File"]),
            price=float(row["Price"]),
            store=row["Store"] if pd.notna(row["Store"]) else None,
            category=category or (row["Category"] if pd.notna(row["Category"]) else ""),
            additional_details=f"Scanned from {row['File']}",
        )
        if record.date is None:
            print(f"Skipping {row['File']}: unreadable date {row['Date']}")
            continue
        repo.create_record(record)
        count += 1
    return count


def main(argv=None):
    parser = argparse.ArgumentParser(description="Extract expenses from receipt photos")
    parser.add_argument("folder", help="directory containing receipt images")
    parser.add_argument("--append", action="store_true", help="record scanned receipts as expenses")
    parser.add_argument("--category", help="category for appended expenses (default: inferred from store)")
    parser.add_argument("--output", help="also write the results to this CSV file")
    parser.add_argument("--day-first", dest="day_first", action=argparse.BooleanOptionalAction, default=None,
                        help="read ambiguous dates as DD/MM (--no-day-first forces MM/DD)")
    args = parser.parse_args(argv)

    config.configure_logging()

    files = find_images(args.folder)
    if not files:
        print(f"No receipt images found in {args.folder}")
        return 1

    repo = get_repository()
    df = process_files(files, repo, day_first=args.day_first)
    if df.empty:
        print("No receipts could be read.")
        return 1

    print(df.to_string(index=False))
    if args.output:
        df.to_csv(args.output, index=False)
        print(f"Saved {len(df)} rows to {args.output}")

    if args.append:
        print(f"Appended {append_expenses(df, repo, args.category)} expenses.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
