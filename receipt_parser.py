"""
receipt_parser.py
-----------------
Pull a single purchase (date, item name, price, store) out of OCR text.

The parser is a best-effort, single forward pass over the lines of the
receipt.  The first date, the first store match and the first price win.
Nothing here raises on bad input; missing fields are simply left unset
and the entry form asks for them.

Known limitation: ``12/05/2024`` style dates are ambiguous.  Unless
``day_first`` is given, a first component above 12 is read as the day
(DD/MM/YYYY) and anything else as the month (MM/DD/YYYY).

Store names are matched with an edit-distance ratio (``fuzz.ratio``), not a
bigram similarity.  OCR noise between letters (``W.A.L.M.A.R.T``) still
matches, while a store name buried in a long line does not.
"""

import logging
import re
from typing import Mapping, Optional, Sequence

from rapidfuzz import fuzz, process

from records import ReceiptData

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"(?:date\s*[:\-]?\s*)?(\d{1,2}/\d{1,2}/\d{2,4})", re.IGNORECASE)
DEFAULT_PRICE_PATTERN = re.compile(r"\$?\d+\.\d{2}")

# Receipts from these stores print prices flush right with no currency sign
STORE_PRICE_PATTERNS = {
    "NoFrills": re.compile(r"\d{1,2}\.\d{2}$"),
}

STORE_MATCH_THRESHOLD = 0.5

_HAS_ALPHA = re.compile(r"[a-zA-Z]")
_QUANTITY_PREFIX = re.compile(r"\b(?:QTY|QUANTITY|ITEM|NO)\b\s*:?\s*", re.IGNORECASE)


def format_receipt_date(raw: str, day_first: Optional[bool] = None) -> str:
    """Normalise ``D/M/Y`` or ``M/D/Y`` (2 or 4 digit year) to ``YYYY-MM-DD``."""
    first, second, year = (int(part) for part in raw.split("/"))
    if year < 100:
        year += 2000
    if day_first is None:
        day_first = first > 12
    day, month = (first, second) if day_first else (second, first)
    return f"{year:04d}-{month:02d}-{day:02d}"


def clean_item_name(name: str) -> str:
    name = re.sub(r"^[\d.\s]+", "", name)
    name = re.sub(r"\s{2,}", " ", name)
    name = re.sub(r"[*#]+", "", name)
    name = re.sub(r"^\W+|\W+$", "", name)
    name = _QUANTITY_PREFIX.sub("", name)
    return name.strip()


def match_store(line: str, known_stores: Sequence[str]) -> Optional[str]:
    """Best fuzzy match for a receipt line, if it scores at least 0.5."""
    text = line.strip().upper()
    if not text or not known_stores:
        return None
    best = process.extractOne(text, [s.upper() for s in known_stores], scorer=fuzz.ratio)
    if best is None:
        return None
    _, score, index = best
    if score / 100 >= STORE_MATCH_THRESHOLD:
        return known_stores[index]
    return None


def _usable_name(candidate: str) -> Optional[str]:
    cleaned = clean_item_name(candidate)
    if cleaned and _HAS_ALPHA.search(cleaned):
        return cleaned
    return None


def parse_receipt_text(
    text: Optional[str],
    known_stores: Sequence[str] = (),
    store_categories: Optional[Mapping[str, str]] = None,
    day_first: Optional[bool] = None,
) -> ReceiptData:
    data = ReceiptData()
    stores = [s for s in known_stores if s and s.strip()]
    price_pattern = DEFAULT_PRICE_PATTERN
    previous_line = ""

    for line in (text or "").splitlines():
        if data.date is None:
            date_match = DATE_PATTERN.search(line)
            if date_match:
                data.date = format_receipt_date(date_match.group(1), day_first)

        if data.store is None:
            data.store = match_store(line, stores)
            if data.store is not None:
                price_pattern = STORE_PRICE_PATTERNS.get(data.store, price_pattern)

        if data.price is None:
            price_match = price_pattern.search(line)
            if price_match:
                data.price = float(price_match.group(0).replace("$", ""))
                if price_match.start() > 0:
                    data.name = _usable_name(line[:price_match.start()])
                if data.name is None and previous_line:
                    data.name = _usable_name(previous_line)

        if line.strip() and _HAS_ALPHA.search(line):
            previous_line = line

    if data.store and store_categories:
        data.category = store_categories.get(data.store)

    logger.debug("Parsed receipt: %s", data.model_dump(exclude_none=True))
    return data
