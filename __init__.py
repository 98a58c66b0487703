"""Household Expense Tracker.

Expenses and groceries are kept in a Google Sheets spreadsheet (or a local
CSV workbook).  See ``app.py`` for the dashboard, ``api.py`` for the JSON
API and ``scan_receipts.py`` for bulk receipt scanning.
"""
