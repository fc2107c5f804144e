"""
Settlement recording routes.
"""
from fastapi import APIRouter, Depends, status

from evenly.schemas.expense import ExpenseResponse, SettlementCreate
from evenly.api.dependencies import get_ledger_store
from evenly.api.routes.expenses import build_expense_response
from evenly.services.expense_service import record_settlement
from evenly.services.ledger_store import SqlLedgerStore

router = APIRouter(prefix="/settlements", tags=["settlements"])


@router.post("/group/{group_id}", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_settlement(
    group_id: int,
    settlement_data: SettlementCreate,
    store: SqlLedgerStore = Depends(get_ledger_store)
):
    """Record a payment between two members; it reduces both balances."""
    expense = record_settlement(group_id, settlement_data, store)
    return build_expense_response(expense, store)
