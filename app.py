import streamlit as st
import pandas as pd
from pathlib import Path
import sys
import time
from datetime import date

from pydantic import ValidationError

# Add current directory to path
sys.path.append(str(Path(__file__).parent))

import config
from aggregation import MONTH_LABELS, recent_records, search_records
from dashboard import (
    budget_cards,
    category_pie,
    grocery_budget_widget,
    records_table,
    store_pie,
    store_share_bars,
    subcategory_bar,
    yearly_chart,
)
from errors import TrackerError
from ocr import scan_receipt
from records import UNITS, WEIGHT_UNIT, ExpenseRecord, GroceryRecord, parse_sheet_date, rate_per_lb
from repository import get_repository

# --- Configuration ---
st.set_page_config(page_title="Expense Tracker", layout="wide", page_icon="💰")
config.configure_logging()

DURATION_UNITS = ["days", "weeks", "months", "years"]


@st.cache_resource
def get_repo():
    return get_repository()


def attempt(action, message: str):
    """Run a repository call; on failure show the error and stop this run."""
    try:
        return action()
    except TrackerError as e:
        st.error(f"{message}: {e}")
        st.stop()


def _index(options, value, default=0):
    return options.index(value) if value in options else default


def record_form(key: str, is_grocery: bool, initial=None, prefill: dict | None = None):
    """
    Entry form for one record.  ``initial`` is an existing record being edited,
    ``prefill`` the partial data a receipt scan produced.  Returns the new
    record on submit, else None.
    """
    prefill = prefill or {}
    base = initial.model_dump() if initial is not None else {}
    base.update({k: v for k, v in prefill.items() if v is not None})

    default_date = parse_sheet_date(base.get("date")) or date.today()

    with st.form(key):
        col1, col2 = st.columns(2)
        entry_date = col1.date_input("Date", value=default_date)
        name = col2.text_input("Item name", value=base.get("name") or "")
        col3, col4 = st.columns(2)
        price = col3.number_input("Price ($)", min_value=0.0, step=0.01, value=float(base.get("price") or 0.0))
        store = col4.text_input("Store", value=base.get("store") or "")

        if is_grocery:
            options = repo.grocery_subcategory_options()
            col5, col6, col7 = st.columns(3)
            sub_category = col5.selectbox("Sub category", options, index=_index(options, base.get("sub_category")))
            quantity = col6.text_input("Quantity", value=str(base.get("quantity") or ""))
            unit = col7.selectbox("Unit", UNITS, index=_index(UNITS, base.get("unit")))
            seller_rate = st.number_input("Seller rate (per kg)", min_value=0.0, step=0.01,
                                          value=float(base.get("seller_rate") or 0.0))
            if unit == WEIGHT_UNIT and seller_rate:
                st.caption(f"≈ ${rate_per_lb(seller_rate):,.2f} per lb")
        else:
            categories = repo.categories()
            category = st.selectbox("Category", categories, index=_index(categories, base.get("category")))

        details = st.text_area("Additional details", value=base.get("additional_details") or "")
        long_term = st.checkbox("Long term buy", value=bool(base.get("is_long_term_buy")))
        col8, col9 = st.columns(2)
        duration = col8.number_input("Expected duration", min_value=0, step=1,
                                     value=int(base.get("expected_duration") or 0))
        duration_unit = col9.selectbox("Duration unit", DURATION_UNITS,
                                       index=_index(DURATION_UNITS, base.get("duration_unit")))

        if not st.form_submit_button("Save"):
            return None

    fields = {
        "date": entry_date,
        "name": name.strip(),
        "price": price,
        "store": store.strip() or None,
        "additional_details": details.strip() or None,
        "is_long_term_buy": long_term,
        "expected_duration": int(duration) if long_term and duration else None,
        "duration_unit": duration_unit if long_term else None,
    }
    try:
        if is_grocery:
            # Per-lb rate is recomputed from the per-kg rate on every save
            return GroceryRecord(**fields, sub_category=sub_category, quantity=quantity or None,
                                 unit=unit, seller_rate=seller_rate or None)
        return ExpenseRecord(**fields, category=category or "", unit=base.get("unit"))
    except ValidationError as e:
        st.error(f"Invalid entry: {e}")
        return None


repo = get_repo()

# --- Sidebar ---
today = date.today()
with st.sidebar:
    st.header("Period")
    month_label = st.selectbox("Month", MONTH_LABELS, index=today.month - 1)
    year = st.selectbox("Year", [today.year - i for i in range(5)])
    month = MONTH_LABELS.index(month_label) + 1

    st.divider()
    if st.button("🔄 Reload suggestions", use_container_width=True):
        repo.refresh()
        st.rerun()

st.title("💰 Expense Tracker")

# Load Data
month_records = attempt(lambda: repo.list_records(month, year), "Failed to read from spreadsheet")
budget_lines = attempt(lambda: repo.budget_summary(month, year), "Failed to fetch budget data")

tab1, tab2, tab3, tab4, tab5, tab6, tab7 = st.tabs(
    ["📊 Overview", "💳 Expenses", "🛒 Grocery", "🏬 Stores", "➕ Add Entry", "🕘 History", "🎯 Budgets"]
)

with tab1:
    st.subheader(f"Budgets ({month_label} {year})")
    budget_cards(budget_lines)

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(category_pie(budget_lines), use_container_width=True)
    with col2:
        rollup = attempt(lambda: repo.yearly_rollup(year), "Failed to build yearly overview")
        st.plotly_chart(yearly_chart(rollup, year), use_container_width=True)

    st.subheader("Recent Expenses")
    st.dataframe(records_table(recent_records(month_records)), use_container_width=True)

with tab2:
    st.header(f"📅 {month_label} {year}")
    show_groceries = st.checkbox("Include groceries", value=True)
    visible = [r for r in month_records if show_groceries or not r.is_grocery]
    if not visible:
        st.info("No expenses recorded for this month.")
    else:
        st.dataframe(records_table(visible), use_container_width=True)
        st.metric("Total", f"${sum(r.price for r in visible):,.2f}")

        labels = {f"{'🛒' if r.is_grocery else '💳'} #{r.id} · {r.date} · {r.name} (${r.price:,.2f})": r for r in visible}
        choice = st.selectbox("Select an entry", list(labels))
        selected = labels[choice]

        with st.expander("✏️ Edit selected"):
            edited = record_form(f"edit_{selected.is_grocery}_{selected.id}", selected.is_grocery, initial=selected)
            if edited is not None:
                attempt(lambda: repo.update_record(selected.id, edited), "Failed to update expense")
                st.success("Expense updated successfully")
                time.sleep(0.5)
                st.rerun()

        if st.button("🗑️ Delete selected"):
            attempt(lambda: repo.delete_record(selected.id, selected.is_grocery), "Failed to delete expense")
            st.success("Deleted!")
            st.rerun()

with tab3:
    st.header("🛒 Groceries")
    grocery_budget_widget(budget_lines)

    whole_year = st.checkbox("Whole year", value=False, key="grocery_whole_year")
    period_month = None if whole_year else month
    groceries = [
        r for r in attempt(lambda: repo.list_records(period_month, year), "Failed to read from spreadsheet")
        if r.is_grocery
    ]
    query = st.text_input("Search groceries", placeholder="Name, store, sub category or details")
    st.dataframe(records_table(search_records(groceries, query)), use_container_width=True)

    totals = attempt(lambda: repo.grocery_subcategory_totals(period_month, year),
                     "Failed to fetch grocery sub-category data")
    if totals:
        st.plotly_chart(subcategory_bar(totals), use_container_width=True)

with tab4:
    st.header("🏬 Store Distribution")
    stores_whole_year = st.checkbox("Whole year", value=False, key="stores_whole_year")
    stores_month = None if stores_whole_year else month
    distribution = attempt(lambda: repo.store_distribution(stores_month, year), "Failed to fetch store data")
    if not distribution:
        st.info("No store data for this period.")
    else:
        col1, col2 = st.columns(2)
        with col1:
            st.plotly_chart(store_pie(distribution), use_container_width=True)
        with col2:
            store_share_bars(distribution)

with tab5:
    st.header("➕ Add Entry")
    kind = st.radio("Type", ["Expense", "Grocery"], horizontal=True)
    is_grocery = kind == "Grocery"

    with st.expander("📷 Scan a receipt"):
        photo = st.camera_input("Take a photo")
        upload = st.file_uploader("Or upload an image", type=["png", "jpg", "jpeg"])
        image = photo or upload
        if image is not None and st.button("Scan receipt"):
            with st.spinner("Processing..."):
                try:
                    data = scan_receipt(image, repo.stores(), repo.store_categories())
                except TrackerError as e:
                    st.error(str(e))
                else:
                    st.session_state["receipt_prefill"] = data.model_dump(exclude_none=True)
                    found = ", ".join(st.session_state["receipt_prefill"]) or "nothing"
                    st.success(f"Receipt scanned. Found: {found}")

    prefill = st.session_state.get("receipt_prefill", {})
    new_record = record_form(f"add_{kind}", is_grocery, prefill=prefill)
    if new_record is not None:
        new_id = attempt(lambda: repo.create_record(new_record), "Failed to append to spreadsheet")
        st.session_state.pop("receipt_prefill", None)
        st.success(f"Saved entry #{new_id}")
        time.sleep(0.5)
        st.rerun()

with tab6:
    st.header("🕘 Purchase History")
    names = attempt(repo.names, "Failed to fetch names")
    if not names:
        st.info("Nothing recorded yet.")
    else:
        item = st.selectbox("Item", sorted(names, key=str.lower))
        history = attempt(lambda: repo.history(item), "Failed to read from spreadsheet")
        if history:
            prices = pd.Series([r.price for r in history])
            col1, col2, col3 = st.columns(3)
            col1.metric("Purchases", len(history))
            col2.metric("Average price", f"${prices.mean():,.2f}")
            col3.metric("Last price", f"${history[0].price:,.2f}")
            st.dataframe(records_table(history), use_container_width=True)

with tab7:
    st.header("🎯 Category Budgets")
    budgets = attempt(repo.list_budgets, "Failed to fetch budget data")
    existing = [b.category for b in budgets]

    with st.expander("➕ Add or Update Budget"):
        with st.form("add_budget"):
            choice = st.selectbox("Use an existing category", ["Type a new one"] + existing)
            custom = st.text_input("Or type a new category")
            category_val = custom.strip() or (choice if choice != "Type a new one" else "")
            limit = st.number_input("Monthly limit ($)", min_value=0.0, step=50.0)

            if st.form_submit_button("Save Budget"):
                if not category_val:
                    st.error("Please choose or enter a category.")
                else:
                    if category_val in existing:
                        attempt(lambda: repo.update_budget(category_val, limit), "Failed to update budget")
                    else:
                        attempt(lambda: repo.add_budget(category_val, limit), "Failed to add budget")
                    st.success(f"Budget saved for {category_val}.")
                    st.rerun()

    if budgets:
        st.dataframe(
            pd.DataFrame([{"Category": b.category, "Monthly Limit": b.budget} for b in budgets]),
            use_container_width=True,
        )
    else:
        st.info("No budgets configured yet.")
