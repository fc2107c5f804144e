"""
Balance service: folds a group's ledger history into net balances.
"""
import logging
from typing import Dict, Iterable, List, Optional

from evenly.core.config import settings
from evenly.core.exceptions import IntegrityError
from evenly.schemas.ledger import ConsistencyReport, ExpenseSplit, NetBalance, UserNetBalance
from evenly.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


def aggregate_balances(group_id: int, history: Iterable[ExpenseSplit]) -> List[NetBalance]:
    """
    Net balance per user from the full ordered history of a group.

    Every user who ever appears gets an entry, zero balances included,
    sorted by user_id. Raises IntegrityError when the balances do not sum
    to zero.
    """
    totals: Dict[int, int] = {}
    for delta in history:
        totals[delta.user_id] = totals.get(delta.user_id, 0) + delta.signed_amount

    total = sum(totals.values())
    if total != 0:
        logger.error(f"Ledger for group {group_id} is unbalanced: balances sum to {total}")
        raise IntegrityError(f"Balances for group {group_id} sum to {total}, expected 0")

    return [
        NetBalance(user_id=user_id, group_id=group_id, amount=totals[user_id])
        for user_id in sorted(totals)
    ]


def compute_group_balances(
    group_id: int,
    store: LedgerStore,
    use_cache: Optional[bool] = None
) -> List[NetBalance]:
    """
    Net balances of a group, served from the store's cache when enabled.

    A cached entry is only used while the stored history version still
    matches, so writes committed elsewhere are picked up on the next read.
    """
    if use_cache is None:
        use_cache = settings.LEDGER_CACHE_ENABLED

    version = None
    if use_cache:
        version = store.history_version(group_id)
        cached = store.balance_cache.get(group_id, version)
        if cached is not None:
            logger.debug(f"Balance cache hit for group {group_id} at version {version}")
            return cached

    balances = aggregate_balances(group_id, store.read_group_history(group_id))
    if use_cache:
        store.balance_cache.put(group_id, balances, version)
    return balances


def check_group_consistency(group_id: int, store: LedgerStore) -> ConsistencyReport:
    """Audit a group's ledger without raising on imbalance."""
    history = store.read_group_history(group_id)

    total_balance = 0
    per_expense: Dict[int, int] = {}
    for delta in history:
        total_balance += delta.signed_amount
        per_expense[delta.expense_id] = per_expense.get(delta.expense_id, 0) + delta.signed_amount

    issues = []
    if total_balance != 0:
        issues.append(f"Total balance is {total_balance}, should be 0")
    for expense_id in sorted(per_expense):
        if per_expense[expense_id] != 0:
            issues.append(f"Expense {expense_id} splits sum to {per_expense[expense_id]}, should be 0")

    if issues:
        logger.error(f"Consistency check failed for group {group_id}: {issues}")
    return ConsistencyReport(
        group_id=group_id,
        is_valid=not issues,
        total_balance=total_balance,
        issues=issues
    )


def compute_user_balances(user_id: int, group_ids: Iterable[int], store: LedgerStore) -> List[NetBalance]:
    """A user's balance in each of the given groups they have taken part in."""
    result = []
    for group_id in group_ids:
        for balance in compute_group_balances(group_id, store):
            if balance.user_id == user_id:
                result.append(balance)
    return result


def compute_user_net_balance(user_id: int, group_ids: Iterable[int], store: LedgerStore) -> UserNetBalance:
    """Totals owed to and by a user across groups."""
    total_owed = 0
    total_owing = 0
    for balance in compute_user_balances(user_id, group_ids, store):
        if balance.amount > 0:
            total_owed += balance.amount
        else:
            total_owing += -balance.amount

    return UserNetBalance(
        user_id=user_id,
        total_owed=total_owed,
        total_owing=total_owing,
        net_balance=total_owed - total_owing
    )
