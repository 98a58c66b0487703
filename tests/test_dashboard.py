import plotly.graph_objects as go

from aggregation import budget_summary, store_distribution, yearly_rollup
from dashboard import category_pie, records_table, store_pie, subcategory_bar, yearly_chart


def test_records_table_newest_first(sample_records):
    table = records_table(sample_records)

    assert table["Name"].tolist()[0] == "Train"
    assert table["Name"].tolist()[-1] == "Chicken"
    assert "Rate (per lb)" in table.columns


def test_records_table_empty():
    table = records_table([])
    assert table.empty
    assert "Date" in table.columns


def test_yearly_chart_has_one_trace_per_category(sample_records):
    fig = yearly_chart(yearly_rollup(sample_records, 2024), 2024)

    assert isinstance(fig, go.Figure)
    assert sorted(trace.name for trace in fig.data) == ["Dining", "Grocery", "Transport"]
    assert fig.layout.barmode == "stack"


def test_category_pie_leaves_out_total(sample_records, budgets):
    fig = category_pie(budget_summary(sample_records, budgets, 3, 2024))
    assert "Total" not in list(fig.data[0].labels)


def test_store_pie(sample_records):
    fig = store_pie(store_distribution(sample_records))
    assert set(fig.data[0].labels) == {"Presto", "Pizza Place", "NoFrills", "Costco"}


def test_subcategory_bar():
    fig = subcategory_bar({"Dairy": 4.5, "Fruits": 6.0})
    assert list(fig.data[0].x) == ["Dairy", "Fruits"]
