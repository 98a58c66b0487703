"""JSON API over the expense sheets, receipt parser and reports (FastAPI)."""

from datetime import date
from io import BytesIO
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Query, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

import config
from errors import ConfigurationError, DuplicateCategory, ReceiptScanError, RecordNotFound, UpstreamError
from ocr import scan_receipt
from receipt_parser import parse_receipt_text
from records import TOTAL_CATEGORY, Record
from repository import ExpenseRepository, get_repository

config.configure_logging()

app = FastAPI(title="Expense Tracker API", version="0.1.0")


def get_repo() -> ExpenseRepository:
    return get_repository()


def _dump(records) -> list:
    return [r.model_dump(mode="json", by_alias=True) for r in records]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(ConfigurationError)
async def configuration_error(request, exc: ConfigurationError):
    return _error(500, str(exc))


@app.exception_handler(UpstreamError)
async def upstream_error(request, exc: UpstreamError):
    return _error(500, str(exc))


@app.exception_handler(RecordNotFound)
async def not_found(request, exc: RecordNotFound):
    return _error(404, str(exc))


@app.exception_handler(DuplicateCategory)
async def duplicate_category(request, exc: DuplicateCategory):
    return _error(409, str(exc))


@app.exception_handler(ReceiptScanError)
async def receipt_scan_error(request, exc: ReceiptScanError):
    return _error(422, str(exc))


# --- Records ---

class RecordPayload(BaseModel):
    values: Record


@app.get("/expenses")
async def list_expenses(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = None,
    repo: ExpenseRepository = Depends(get_repo),
):
    return _dump(repo.list_records(month, year))


@app.post("/expenses")
async def create_expense(payload: RecordPayload, repo: ExpenseRepository = Depends(get_repo)):
    new_id = repo.create_record(payload.values)
    return {"message": "Data appended successfully", "id": new_id}


@app.get("/expenses/history")
async def expense_history(name: Optional[str] = None, repo: ExpenseRepository = Depends(get_repo)):
    if not name:
        return _error(400, "Name parameter is required")
    return _dump(repo.history(name))


@app.get("/expenses/{record_id}")
async def get_expense(record_id: str, grocery: bool = False, repo: ExpenseRepository = Depends(get_repo)):
    return repo.get_record(record_id, grocery).model_dump(mode="json", by_alias=True)


@app.put("/expenses/{record_id}")
async def update_expense(record_id: str, payload: RecordPayload, repo: ExpenseRepository = Depends(get_repo)):
    repo.update_record(record_id, payload.values)
    return {"message": "Expense updated successfully"}


@app.delete("/expenses/{record_id}")
async def delete_expense(record_id: str, grocery: bool = False, repo: ExpenseRepository = Depends(get_repo)):
    repo.delete_record(record_id, grocery)
    return {"message": "Expense deleted successfully"}


# --- Budgets ---

class BudgetUpdate(BaseModel):
    category: str = Field(..., min_length=1)
    budget: float = Field(..., ge=0)


@app.get("/budget")
async def budget(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = None,
    repo: ExpenseRepository = Depends(get_repo),
):
    today = date.today()
    lines = repo.budget_summary(month or today.month, year or today.year)
    total_expenses = next(line["total"] for line in lines if line["category"] == TOTAL_CATEGORY)
    return {"budgetData": lines, "totalExpenses": total_expenses}


@app.put("/budget")
async def update_budget(req: BudgetUpdate, repo: ExpenseRepository = Depends(get_repo)):
    repo.update_budget(req.category, req.budget)
    return {"message": "Budget updated successfully"}


@app.post("/budget", status_code=201)
async def add_budget(req: BudgetUpdate, repo: ExpenseRepository = Depends(get_repo)):
    repo.add_budget(req.category, req.budget)
    return {"message": "Budget added successfully"}


# --- Lookups ---

@app.get("/names")
async def names(repo: ExpenseRepository = Depends(get_repo)):
    return repo.names()


@app.get("/stores")
async def stores(repo: ExpenseRepository = Depends(get_repo)):
    return repo.stores()


@app.get("/subcategories")
async def subcategories(repo: ExpenseRepository = Depends(get_repo)):
    return repo.subcategories()


@app.get("/grocery-subcategories")
async def grocery_subcategories(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = None,
    repo: ExpenseRepository = Depends(get_repo),
):
    return repo.grocery_subcategory_totals(month, year)


# --- Reports ---

@app.get("/stores/distribution")
async def store_distribution(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = None,
    repo: ExpenseRepository = Depends(get_repo),
):
    return repo.store_distribution(month, year)


@app.get("/overview")
async def overview(year: Optional[int] = None, repo: ExpenseRepository = Depends(get_repo)):
    year = year or date.today().year
    return {"year": year, "months": repo.yearly_rollup(year)}


# --- Receipts ---

class ParseReceiptRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: str
    known_stores: Optional[List[str]] = None
    day_first: Optional[bool] = None


@app.post("/receipts/parse")
async def parse_receipt(req: ParseReceiptRequest, repo: ExpenseRepository = Depends(get_repo)):
    known_stores = req.known_stores if req.known_stores is not None else repo.stores()
    data = parse_receipt_text(req.text, known_stores, repo.store_categories(), day_first=req.day_first)
    return data.model_dump(exclude_none=True)


@app.post("/receipts/scan")
async def scan(
    file: UploadFile = File(...),
    day_first: Optional[bool] = Query(None, alias="dayFirst"),
    repo: ExpenseRepository = Depends(get_repo),
):
    image = BytesIO(await file.read())
    data = scan_receipt(image, repo.stores(), repo.store_categories(), day_first=day_first)
    return data.model_dump(exclude_none=True)


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api:app", host="0.0.0.0", port=8001, reload=True)
