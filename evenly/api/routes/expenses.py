"""
Expense management routes.
"""
from fastapi import APIRouter, Depends, Response, status
from typing import List

from evenly.models.expense import Expense
from evenly.schemas.expense import ExpenseCreate, ExpenseResponse, ExpenseUpdate
from evenly.api.dependencies import get_ledger_store
from evenly.services import expense_service
from evenly.services.ledger_store import SqlLedgerStore

router = APIRouter(prefix="/expenses", tags=["expenses"])


def build_expense_response(expense: Expense, store: SqlLedgerStore) -> ExpenseResponse:
    """Expense row plus its live ledger splits."""
    return ExpenseResponse(
        id=expense.id,
        group_id=expense.group_id,
        paid_by=expense.paid_by,
        title=expense.title,
        description=expense.description,
        total_amount=expense.total_amount,
        currency=expense.currency,
        split_type=expense.split_type,
        category=expense.category,
        date=expense.date,
        is_deleted=expense.is_deleted,
        splits=[] if expense.is_deleted else store.live_splits(expense.id),
        created_at=expense.created_at,
        updated_at=expense.updated_at
    )


@router.post("/group/{group_id}", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    group_id: int,
    expense_data: ExpenseCreate,
    store: SqlLedgerStore = Depends(get_ledger_store)
):
    """Create a new expense and split it among group members."""
    expense = expense_service.create_expense(group_id, expense_data, store)
    return build_expense_response(expense, store)


@router.get("/group/{group_id}", response_model=List[ExpenseResponse])
async def list_expenses(
    group_id: int,
    include_deleted: bool = False,
    store: SqlLedgerStore = Depends(get_ledger_store)
):
    """List expenses of a group, newest first."""
    expenses = expense_service.list_group_expenses(group_id, store.db, include_deleted=include_deleted)
    return [build_expense_response(e, store) for e in expenses]


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: int,
    store: SqlLedgerStore = Depends(get_ledger_store)
):
    """Get a single expense."""
    expense = expense_service.get_expense(expense_id, store.db, include_deleted=True)
    return build_expense_response(expense, store)


@router.put("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: int,
    expense_data: ExpenseUpdate,
    store: SqlLedgerStore = Depends(get_ledger_store)
):
    """Update an expense. A new amount, payer or split re-splits it."""
    expense = expense_service.update_expense(expense_id, expense_data, store)
    return build_expense_response(expense, store)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    expense_id: int,
    store: SqlLedgerStore = Depends(get_ledger_store)
):
    """Delete an expense; its splits are reversed in the ledger."""
    expense_service.delete_expense(expense_id, store)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
