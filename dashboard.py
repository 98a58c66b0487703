# dashboard.py: plotly figures and streamlit widgets for the expense views

from typing import Dict, List, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from aggregation import budget_status
from records import GROCERY_CATEGORY, TOTAL_CATEGORY

BAND_COLOURS = {"green": "#10b981", "amber": "#f59e0b", "orange": "#f97316", "red": "#ef4444"}

TABLE_COLUMNS = {
    "id": "ID",
    "date": "Date",
    "name": "Name",
    "category": "Category",
    "price": "Price",
    "store": "Store",
    "sub_category": "Sub Category",
    "quantity": "Quantity",
    "unit": "Unit",
    "seller_rate": "Rate (per kg)",
    "seller_rate_in_lb": "Rate (per lb)",
    "additional_details": "Details",
    "is_long_term_buy": "Long Term",
}


def records_table(records: Sequence) -> pd.DataFrame:
    """
    Tabular view of records, newest first, with display column names.
    """
    if not records:
        return pd.DataFrame(columns=list(TABLE_COLUMNS.values()))
    df = pd.DataFrame([r.model_dump() for r in records])
    df = df.reindex(columns=list(TABLE_COLUMNS)).rename(columns=TABLE_COLUMNS)
    df["Date"] = pd.to_datetime(df["Date"], errors="coerce")
    return df.sort_values("Date", ascending=False, na_position="last").reset_index(drop=True)


def budget_cards(lines: List[dict], per_row: int = 3):
    """
    Spend vs budget cards, one per category, with a progress bar.
    """
    if not lines:
        st.info("No budgets configured yet.")
        return

    ordered = [l for l in lines if l["category"] != TOTAL_CATEGORY] + [l for l in lines if l["category"] == TOTAL_CATEGORY]
    for start in range(0, len(ordered), per_row):
        cols = st.columns(per_row)
        for col, line in zip(cols, ordered[start:start + per_row]):
            status = budget_status(line)
            left = (
                f"${abs(status['remaining']):,.2f} over"
                if status["pct"] >= 100 or status["is_over"]
                else f"${status['remaining']:,.2f} left"
            )
            col.metric(
                line["category"],
                f"${status['total']:,.2f} / ${status['budget']:,.2f}",
                delta=left,
                delta_color="inverse" if status["is_over"] else "normal",
            )
            col.progress(min(1.0, status["pct"] / 100))


def grocery_budget_widget(lines: List[dict]):
    line = next((l for l in lines if l["category"] == GROCERY_CATEGORY), None)
    if line is None:
        return
    status = budget_status(line)
    st.markdown(
        f"<div style='border-left: 6px solid {BAND_COLOURS[status['band']]}; padding: 8px 12px;'>"
        f"<strong>Grocery Budget</strong> · {status['pct']:.0f}%<br>"
        f"${status['total']:,.2f} / ${status['budget']:,.2f}</div>",
        unsafe_allow_html=True,
    )
    st.progress(min(1.0, status["pct"] / 100))


def yearly_chart(rollup: List[dict], year: int):
    """
    Stacked bar chart of monthly spend per category.
    """
    df = pd.DataFrame(rollup)
    categories = [c for c in df.columns if c not in ("month", "total")]
    fig = go.Figure()
    for category in categories:
        fig.add_trace(go.Bar(x=df["month"], y=df[category], name=category))
    fig.update_layout(barmode="stack", title=f"Monthly Spending {year}", height=400)
    return fig


def category_pie(lines: List[dict]):
    """
    Donut chart of this month's spend by category (the Total line excluded).
    """
    data = pd.DataFrame([l for l in lines if l["category"] != TOTAL_CATEGORY and l["total"] > 0],
                        columns=["category", "total", "budget"])
    fig = px.pie(data, values="total", names="category", hole=0.4, title="Spending by Category")
    fig.update_traces(textposition="inside", textinfo="percent+label")
    return fig


def store_pie(distribution: List[dict]):
    data = pd.DataFrame(distribution, columns=["store", "total", "percentage"])
    fig = px.pie(data, values="total", names="store", hole=0.4, title="Spending by Store")
    fig.update_traces(textposition="inside", textinfo="percent+label")
    return fig


def subcategory_bar(totals: Dict[str, float]):
    data = pd.DataFrame({"Sub Category": list(totals), "Amount": list(totals.values())})
    fig = px.bar(data, x="Sub Category", y="Amount", title="Grocery Spend by Sub Category")
    fig.update_layout(height=350)
    return fig


def store_share_bars(distribution: List[dict]):
    for entry in distribution:
        st.markdown(f"**{entry['store']}** · ${entry['total']:,.2f}")
        st.progress(min(1.0, entry["percentage"] / 100), text=f"{entry['percentage']:.1f}% of total spending")
