"""
Settlement service for debt simplification.
"""
import heapq
import logging
from typing import Dict, Iterable, List, Optional

from evenly.core.exceptions import IntegrityError, ValidationError
from evenly.core.utils import format_money
from evenly.schemas.ledger import GroupBalanceSummary, NetBalance, SettlementTransfer
from evenly.services.balance_service import compute_group_balances
from evenly.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


def simplify_debts(balances: Iterable[NetBalance]) -> List[SettlementTransfer]:
    """
    Minimize the number of transfers needed to settle debts.

    Greedy largest-first matching: the largest remaining credit is paired
    with the largest remaining debt and the smaller of the two is
    transferred. Equal magnitudes go to the lower user_id first. This is a
    heuristic; the true minimum transfer count is NP-hard in general.
    """
    balances = list(balances)

    group_ids = {b.group_id for b in balances}
    if len(group_ids) > 1:
        raise ValidationError(f"Balances span several groups: {sorted(group_ids)}", field="balances")

    seen = set()
    for balance in balances:
        if balance.user_id in seen:
            raise IntegrityError(f"Duplicate balance for user {balance.user_id}")
        seen.add(balance.user_id)

    total = sum(b.amount for b in balances)
    if total != 0:
        logger.error(f"Cannot settle balances summing to {total}: {balances}")
        raise IntegrityError(f"Balances sum to {total}, expected 0")

    # Heap keys: larger magnitude first, then lower user_id
    creditors = [(-b.amount, b.user_id) for b in balances if b.amount > 0]
    debtors = [(b.amount, b.user_id) for b in balances if b.amount < 0]
    heapq.heapify(creditors)
    heapq.heapify(debtors)

    transfers = []
    while creditors and debtors:
        neg_credit, creditor_id = heapq.heappop(creditors)
        neg_debt, debtor_id = heapq.heappop(debtors)
        credit, debt = -neg_credit, -neg_debt

        amount = min(credit, debt)
        transfers.append(SettlementTransfer(from_user_id=debtor_id, to_user_id=creditor_id, amount=amount))

        if credit > amount:
            heapq.heappush(creditors, (-(credit - amount), creditor_id))
        if debt > amount:
            heapq.heappush(debtors, (-(debt - amount), debtor_id))

    return transfers


def compute_settlements(group_id: int, store: LedgerStore) -> List[SettlementTransfer]:
    """Transfers that would settle every balance of a group."""
    return simplify_debts(compute_group_balances(group_id, store))


def summarize_group(
    group_id: int,
    store: LedgerStore,
    currency: str,
    total_expenses: int = 0,
    usernames: Optional[Dict[int, str]] = None,
    total_members: Optional[int] = None
) -> GroupBalanceSummary:
    """
    Balances, simplified debts and a plain-text summary for a group.

    total_members is the group's member count; members with no expenses yet
    have no balance, so it defaults to the number of balances only when omitted.
    """
    usernames = usernames or {}
    balances = compute_group_balances(group_id, store)
    transfers = simplify_debts(balances)
    if total_members is None:
        total_members = len(balances)

    total_owed = sum(b.amount for b in balances if b.amount > 0)
    total_owing = sum(-b.amount for b in balances if b.amount < 0)

    def name(user_id):
        return usernames.get(user_id, f"user {user_id}")

    # Create summary text
    summary_lines = []
    summary_lines.append(f"Total expenses: {format_money(total_expenses, currency)}")
    summary_lines.append(f"Members: {total_members}")
    summary_lines.append("\nNet balances:")
    for balance in balances:
        summary_lines.append(f"  {name(balance.user_id)}: {format_money(balance.amount, currency, signed=True)}")
    summary_lines.append("\nTransfers:")
    if not transfers:
        summary_lines.append("  All settled up")
    for transfer in transfers:
        summary_lines.append(
            f"  {name(transfer.from_user_id)} -> {name(transfer.to_user_id)}: "
            f"{format_money(transfer.amount, currency)}"
        )

    return GroupBalanceSummary(
        group_id=group_id,
        currency=currency,
        total_expenses=total_expenses,
        total_members=total_members,
        total_owed=total_owed,
        total_owing=total_owing,
        balances=balances,
        simplified_debts=transfers,
        summary="\n".join(summary_lines)
    )
