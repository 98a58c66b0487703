import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Spreadsheet backend
SPREADSHEET_ID = os.getenv("GOOGLE_SHEETS_SPREADSHEET_ID")
GOOGLE_SERVICE_ACCOUNT_EMAIL = os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL")
# Keys pasted into .env usually carry literal "\n" sequences
GOOGLE_PRIVATE_KEY = (os.getenv("GOOGLE_PRIVATE_KEY") or "").replace("\\n", "\n")

# Default to a local CSV workbook, but use Google Sheets once a spreadsheet is configured
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sheets" if SPREADSHEET_ID else "csv").lower()
DATA_DIR = Path(os.getenv("DATA_DIR", "data"))

# CSV workbook can live in S3 instead of DATA_DIR
S3_BUCKET = os.environ.get("S3_BUCKET")
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Sheet names
EXPENSE_SHEET = "Expenses"
GROCERY_SHEET = "Groceries"
BUDGET_SHEET = "CategoryWiseMaxBudget"


def configure_logging(level: str = LOG_LEVEL):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
