"""
Ledger store: append-only history of signed split deltas per group.

The store is the only stateful piece of the ledger. Balances are derived
from its history by the balance service; the store keeps an explicit
balance cache keyed by group id that every write invalidates.
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from evenly.core.exceptions import IntegrityError, NotFoundError
from evenly.models.expense import Expense, LedgerEntry
from evenly.models.group import Group
from evenly.schemas.ledger import ExpenseSplit, NetBalance

logger = logging.getLogger(__name__)

# (entry count, highest entry id) of a group history
HistoryVersion = Tuple[int, int]


class LedgerRecord(NamedTuple):
    """A stored delta together with its position in the ledger."""
    entry_id: int
    group_id: int
    expense_id: int
    user_id: int
    signed_amount: int
    reverses_id: Optional[int]


class BalanceCache:
    """
    Derived NetBalances per group, dropped on every write to that group.

    Entries are tagged with the history version they were computed from.
    A lookup with a different version is a miss, so writes made through
    another store or process are never served stale.
    """

    def __init__(self):
        self._balances: Dict[int, Tuple[Optional[HistoryVersion], Tuple[NetBalance, ...]]] = {}

    def get(self, group_id: int, version: Optional[HistoryVersion] = None) -> Optional[List[NetBalance]]:
        cached = self._balances.get(group_id)
        if cached is None or cached[0] != version:
            return None
        return list(cached[1])

    def put(self, group_id: int, balances: Iterable[NetBalance], version: Optional[HistoryVersion] = None):
        self._balances[group_id] = (version, tuple(balances))

    def invalidate(self, group_id: int):
        self._balances.pop(group_id, None)

    def clear(self):
        self._balances.clear()

    def __contains__(self, group_id: int) -> bool:
        return group_id in self._balances


class LedgerStore(ABC):
    """
    Read/write interface the ledger core works against.

    Subclasses provide storage for records; this class enforces the
    write rules (zero-sum appends, exact reversals, one live split set per
    expense) and cache invalidation.
    """

    def __init__(self, balance_cache: Optional[BalanceCache] = None):
        self.balance_cache = balance_cache if balance_cache is not None else BalanceCache()

    @abstractmethod
    def group_of(self, expense_id: int) -> int:
        """Group id of an expense; NotFoundError when the expense is unknown."""

    @abstractmethod
    def read_group_history(self, group_id: int) -> List[ExpenseSplit]:
        """All deltas of a group in insertion order."""

    @abstractmethod
    def history_version(self, group_id: int) -> HistoryVersion:
        """Cheap token that changes whenever the group's history grows."""

    @abstractmethod
    def _expense_records(self, expense_id: int) -> List[LedgerRecord]:
        """All stored records of one expense in insertion order."""

    @abstractmethod
    def _insert(self, group_id: int, expense_id: int, rows: List[Tuple[int, int, Optional[int]]]):
        """Persist (user_id, signed_amount, reverses_id) rows in order."""

    def _lock_group(self, group_id: int):
        """Serialize writers of one group. No-op unless the backend can lock."""

    def commit(self):
        """Make pending writes durable."""

    def rollback(self):
        """Discard pending writes."""

    def live_splits(self, expense_id: int) -> List[ExpenseSplit]:
        """The current (not yet reversed) deltas of an expense."""
        return [_to_split(r) for r in self._live_records(expense_id)]

    def append_splits(self, expense_id: int, deltas: Iterable[ExpenseSplit]) -> List[ExpenseSplit]:
        """Record the split set of an expense that has no live splits."""
        deltas = list(deltas)
        _check_deltas(expense_id, deltas)
        group_id = self.group_of(expense_id)
        self._lock_group(group_id)

        if self._live_records(expense_id):
            raise IntegrityError(f"Expense {expense_id} already has live splits; reverse them first")

        self._insert(group_id, expense_id, [(d.user_id, d.signed_amount, None) for d in deltas])
        self.balance_cache.invalidate(group_id)
        logger.info(f"Appended {len(deltas)} splits for expense {expense_id} in group {group_id}")
        return [_with_expense(d, expense_id) for d in deltas]

    def reverse_splits(self, expense_id: int) -> List[ExpenseSplit]:
        """Append the exact negation of every live delta of an expense."""
        group_id = self.group_of(expense_id)
        self._lock_group(group_id)

        live = self._live_records(expense_id)
        if not live:
            raise NotFoundError(f"Live splits for expense {expense_id}")

        rows = [(r.user_id, -r.signed_amount, r.entry_id) for r in live]
        self._insert(group_id, expense_id, rows)
        self.balance_cache.invalidate(group_id)
        logger.info(f"Reversed {len(rows)} splits for expense {expense_id} in group {group_id}")
        return [
            ExpenseSplit(expense_id=expense_id, user_id=user_id, signed_amount=amount)
            for user_id, amount, _ in rows
        ]

    def replace_splits(self, expense_id: int, deltas: Iterable[ExpenseSplit]) -> List[ExpenseSplit]:
        """Swap the live split set of an expense for a new one."""
        deltas = list(deltas)
        _check_deltas(expense_id, deltas)
        if self._live_records(expense_id):
            self.reverse_splits(expense_id)
        return self.append_splits(expense_id, deltas)

    def _live_records(self, expense_id: int) -> List[LedgerRecord]:
        records = self._expense_records(expense_id)
        reversed_ids = {r.reverses_id for r in records if r.reverses_id is not None}
        return [
            r for r in records
            if r.reverses_id is None and r.entry_id not in reversed_ids
        ]


class InMemoryLedgerStore(LedgerStore):
    """Process-local store for scripts and tests."""

    def __init__(self, balance_cache: Optional[BalanceCache] = None):
        super().__init__(balance_cache)
        self._records: List[LedgerRecord] = []
        self._expense_groups: Dict[int, int] = {}
        self._groups = set()

    def register_group(self, group_id: int):
        self._groups.add(group_id)

    def register_expense(self, expense_id: int, group_id: int):
        self._groups.add(group_id)
        self._expense_groups[expense_id] = group_id

    def group_of(self, expense_id: int) -> int:
        if expense_id not in self._expense_groups:
            raise NotFoundError("Expense")
        return self._expense_groups[expense_id]

    def read_group_history(self, group_id: int) -> List[ExpenseSplit]:
        if group_id not in self._groups:
            raise NotFoundError("Group")
        return [_to_split(r) for r in self._records if r.group_id == group_id]

    def history_version(self, group_id: int) -> HistoryVersion:
        entry_ids = [r.entry_id for r in self._records if r.group_id == group_id]
        return len(entry_ids), max(entry_ids, default=0)

    def _expense_records(self, expense_id: int) -> List[LedgerRecord]:
        return [r for r in self._records if r.expense_id == expense_id]

    def _insert(self, group_id, expense_id, rows):
        for user_id, amount, reverses_id in rows:
            self._records.append(LedgerRecord(
                entry_id=len(self._records) + 1,
                group_id=group_id,
                expense_id=expense_id,
                user_id=user_id,
                signed_amount=amount,
                reverses_id=reverses_id,
            ))


class SqlLedgerStore(LedgerStore):
    """Store backed by the ledger_entries table of a SQLAlchemy session."""

    def __init__(self, db: Session, balance_cache: Optional[BalanceCache] = None):
        super().__init__(balance_cache)
        self.db = db
        self._touched_groups = set()

    def group_of(self, expense_id: int) -> int:
        expense = self.db.query(Expense).filter(Expense.id == expense_id).first()
        if not expense:
            raise NotFoundError("Expense")
        return expense.group_id

    def read_group_history(self, group_id: int) -> List[ExpenseSplit]:
        group = self.db.query(Group).filter(Group.id == group_id).first()
        if not group:
            raise NotFoundError("Group")
        entries = self.db.query(LedgerEntry).filter(
            LedgerEntry.group_id == group_id
        ).order_by(LedgerEntry.id).all()
        return [
            ExpenseSplit(expense_id=e.expense_id, user_id=e.user_id, signed_amount=e.signed_amount)
            for e in entries
        ]

    def history_version(self, group_id: int) -> HistoryVersion:
        count, last_id = self.db.query(
            func.count(LedgerEntry.id),
            func.coalesce(func.max(LedgerEntry.id), 0)
        ).filter(LedgerEntry.group_id == group_id).one()
        return count, last_id

    def _expense_records(self, expense_id: int) -> List[LedgerRecord]:
        entries = self.db.query(LedgerEntry).filter(
            LedgerEntry.expense_id == expense_id
        ).order_by(LedgerEntry.id).all()
        return [
            LedgerRecord(e.id, e.group_id, e.expense_id, e.user_id, e.signed_amount, e.reverses_id)
            for e in entries
        ]

    def _lock_group(self, group_id: int):
        # FOR UPDATE is dropped by dialects without row locks (SQLite)
        self.db.query(Group).filter(Group.id == group_id).with_for_update().first()

    def _insert(self, group_id, expense_id, rows):
        # Flush one row at a time so ids follow insertion order
        for user_id, amount, reverses_id in rows:
            self.db.add(LedgerEntry(
                group_id=group_id,
                expense_id=expense_id,
                user_id=user_id,
                signed_amount=amount,
                reverses_id=reverses_id,
            ))
            self.db.flush()
        self._touched_groups.add(group_id)

    def commit(self):
        self.db.commit()
        self._invalidate_touched()

    def rollback(self):
        self.db.rollback()
        self._invalidate_touched()

    def _invalidate_touched(self):
        # A reader may have cached pre-commit balances since the write
        for group_id in self._touched_groups:
            self.balance_cache.invalidate(group_id)
        self._touched_groups.clear()


def _check_deltas(expense_id: int, deltas: List[ExpenseSplit]):
    if not deltas:
        raise IntegrityError(f"Empty split set for expense {expense_id}")
    for delta in deltas:
        if delta.expense_id is not None and delta.expense_id != expense_id:
            raise IntegrityError(f"Split for expense {delta.expense_id} appended to expense {expense_id}")
    total = sum(d.signed_amount for d in deltas)
    if total != 0:
        raise IntegrityError(f"Splits for expense {expense_id} sum to {total}, expected 0")


def _with_expense(delta: ExpenseSplit, expense_id: int) -> ExpenseSplit:
    if delta.expense_id == expense_id:
        return delta
    return delta.model_copy(update={"expense_id": expense_id})


def _to_split(record: LedgerRecord) -> ExpenseSplit:
    return ExpenseSplit(expense_id=record.expense_id, user_id=record.user_id, signed_amount=record.signed_amount)
