"""
Tests for balance aggregation.
"""
import pytest

from evenly.core.exceptions import IntegrityError, NotFoundError
from evenly.schemas.ledger import ExpenseSplit, NetBalance
from evenly.services.balance_service import (
    aggregate_balances, check_group_consistency, compute_group_balances, compute_user_net_balance
)
from evenly.services.ledger_store import InMemoryLedgerStore


def split(user_id, amount, expense_id=1):
    return ExpenseSplit(expense_id=expense_id, user_id=user_id, signed_amount=amount)


HISTORY = [
    split(1, 100), split(1, -34), split(2, -33), split(3, -33),
    split(2, 60, expense_id=2), split(3, -60, expense_id=2),
]


def test_aggregate_folds_history_per_user():
    result = aggregate_balances(4, HISTORY)

    assert result == [
        NetBalance(user_id=1, group_id=4, amount=66),
        NetBalance(user_id=2, group_id=4, amount=27),
        NetBalance(user_id=3, group_id=4, amount=-93),
    ]
    assert sum(b.amount for b in result) == 0


def test_aggregate_keeps_users_with_zero_balance():
    history = [split(1, 50), split(2, -50), split(2, 50, expense_id=2), split(1, -50, expense_id=2)]

    assert [b.amount for b in aggregate_balances(1, history)] == [0, 0]


def test_aggregate_of_empty_history():
    assert aggregate_balances(1, []) == []


def test_aggregate_is_idempotent_and_order_independent():
    first = aggregate_balances(4, HISTORY)

    assert aggregate_balances(4, HISTORY) == first
    assert aggregate_balances(4, list(reversed(HISTORY))) == first


def test_unbalanced_history_is_an_integrity_error():
    with pytest.raises(IntegrityError):
        aggregate_balances(1, [split(1, 100), split(2, -99)])


def _store():
    store = InMemoryLedgerStore()
    store.register_expense(1, group_id=4)
    store.register_expense(2, group_id=4)
    store.register_expense(3, group_id=5)
    store.append_splits(1, HISTORY[:4])
    store.append_splits(2, HISTORY[4:])
    return store


def test_compute_group_balances_caches_until_next_write():
    store = _store()
    first = compute_group_balances(4, store, use_cache=True)

    assert 4 in store.balance_cache
    assert compute_group_balances(4, store, use_cache=True) == first

    store.reverse_splits(2)
    assert 4 not in store.balance_cache
    after = compute_group_balances(4, store, use_cache=True)
    assert [b.amount for b in after] == [66, -33, -33]


def test_compute_group_balances_without_cache():
    store = _store()
    compute_group_balances(4, store, use_cache=False)

    assert 4 not in store.balance_cache


def test_unknown_group_is_not_found():
    with pytest.raises(NotFoundError):
        compute_group_balances(99, _store())


def test_consistency_report_for_valid_group():
    report = check_group_consistency(4, _store())

    assert report.is_valid
    assert report.total_balance == 0
    assert report.issues == []


def test_consistency_report_flags_corrupt_entries():
    store = _store()
    # Bypass the write checks to simulate a corrupted ledger
    store._insert(4, 2, [(2, 5, None)])

    report = check_group_consistency(4, store)
    assert not report.is_valid
    assert report.total_balance == 5
    assert "Expense 2 splits sum to 5, should be 0" in report.issues


def test_user_net_balance_across_groups():
    store = _store()
    store.append_splits(3, [split(2, 40, expense_id=3), split(3, -40, expense_id=3)])

    net = compute_user_net_balance(3, [4, 5], store)
    assert net.total_owed == 0
    assert net.total_owing == 133
    assert net.net_balance == -133

    net = compute_user_net_balance(2, [4, 5], store)
    assert net.total_owed == 67
    assert net.net_balance == 67
