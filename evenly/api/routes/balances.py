"""
Balance and debt simplification routes.
"""
from fastapi import APIRouter, Depends
from typing import List

from evenly.schemas.ledger import ConsistencyReport, GroupBalanceSummary, NetBalance, SettlementTransfer, UserNetBalance
from evenly.api.dependencies import get_ledger_store
from evenly.services.balance_service import (
    check_group_consistency, compute_group_balances, compute_user_balances, compute_user_net_balance
)
from evenly.services.expense_service import group_total_expenses
from evenly.services.group_service import active_member_ids, get_group, get_user, get_usernames, user_group_ids
from evenly.services.ledger_store import SqlLedgerStore
from evenly.services.settlement_service import compute_settlements, summarize_group

router = APIRouter(prefix="/balances", tags=["balances"])


@router.get("/group/{group_id}", response_model=List[NetBalance])
async def get_group_balances(
    group_id: int,
    store: SqlLedgerStore = Depends(get_ledger_store)
):
    """Net balance of every member who took part in the group's expenses."""
    return compute_group_balances(group_id, store)


@router.get("/group/{group_id}/summary", response_model=GroupBalanceSummary)
async def get_group_summary(
    group_id: int,
    store: SqlLedgerStore = Depends(get_ledger_store)
):
    """Balances, simplified debts and totals for a group."""
    group = get_group(group_id, store.db)
    balances = compute_group_balances(group_id, store)
    usernames = get_usernames([b.user_id for b in balances], store.db)
    return summarize_group(
        group_id,
        store,
        currency=group.currency,
        total_expenses=group_total_expenses(group_id, store.db),
        usernames=usernames,
        total_members=len(active_member_ids(group_id, store.db))
    )


@router.get("/group/{group_id}/simplified-debts", response_model=List[SettlementTransfer])
async def get_simplified_debts(
    group_id: int,
    store: SqlLedgerStore = Depends(get_ledger_store)
):
    """Who owes whom: the transfers that settle the group."""
    return compute_settlements(group_id, store)


@router.get("/group/{group_id}/consistency", response_model=ConsistencyReport)
async def get_group_consistency(
    group_id: int,
    store: SqlLedgerStore = Depends(get_ledger_store)
):
    """Audit the group's ledger for sum-invariant violations."""
    return check_group_consistency(group_id, store)


@router.get("/user/{user_id}", response_model=List[NetBalance])
async def get_user_balances(
    user_id: int,
    store: SqlLedgerStore = Depends(get_ledger_store)
):
    """A user's balance in each of their groups."""
    get_user(user_id, store.db)
    return compute_user_balances(user_id, user_group_ids(user_id, store.db), store)


@router.get("/user/{user_id}/net", response_model=UserNetBalance)
async def get_user_net_balance(
    user_id: int,
    store: SqlLedgerStore = Depends(get_ledger_store)
):
    """Total owed to and by a user across all groups."""
    get_user(user_id, store.db)
    return compute_user_net_balance(user_id, user_group_ids(user_id, store.db), store)
