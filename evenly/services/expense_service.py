"""
Expense service for expense-related business logic.

Every write goes through the ledger store: creating an expense appends its
normalized splits, editing replaces them, deleting reverses them.
"""
import logging
from datetime import date
from typing import List

from pydantic import TypeAdapter
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from evenly.core.exceptions import LedgerError, NotFoundError, ValidationError
from evenly.models.expense import Expense
from evenly.schemas.expense import ExpenseCreate, ExpenseUpdate, SettlementCreate
from evenly.schemas.split import EqualSplit, ExactEntry, ExactSplit, SplitSpec
from evenly.services.group_service import active_member_ids, get_group
from evenly.services.ledger_store import SqlLedgerStore
from evenly.services.split_service import normalize_expense_split

logger = logging.getLogger(__name__)

SETTLEMENT_CATEGORY = "settlement"

_split_spec_adapter = TypeAdapter(SplitSpec)


def split_user_ids(spec) -> List[int]:
    """Participants named by a split specification."""
    if isinstance(spec, EqualSplit):
        return list(spec.user_ids)
    return [entry.user_id for entry in spec.entries]


def load_split_spec(expense: Expense):
    """Rebuild the stored split specification of an expense."""
    return _split_spec_adapter.validate_python(expense.split_spec)


def get_expense(expense_id: int, db: Session, include_deleted: bool = False) -> Expense:
    """Expense by id or NotFoundError."""
    expense = db.query(Expense).filter(Expense.id == expense_id).first()
    if not expense or (expense.is_deleted and not include_deleted):
        raise NotFoundError("Expense")
    return expense


def list_group_expenses(group_id: int, db: Session, include_deleted: bool = False) -> List[Expense]:
    """Expenses of a group, newest first."""
    get_group(group_id, db)
    query = db.query(Expense).filter(Expense.group_id == group_id)
    if not include_deleted:
        query = query.filter(Expense.is_deleted == False)  # noqa: E712
    return query.order_by(Expense.date.desc(), Expense.id.desc()).all()


def group_total_expenses(group_id: int, db: Session) -> int:
    """Sum of live expense totals in a group, settlement payments excluded."""
    total = db.query(func.sum(Expense.total_amount)).filter(
        Expense.group_id == group_id,
        Expense.is_deleted == False,  # noqa: E712
        or_(Expense.category.is_(None), Expense.category != SETTLEMENT_CATEGORY)
    ).scalar()
    return int(total or 0)


def _validate_members(group_id: int, payer_id: int, spec, db: Session):
    members = active_member_ids(group_id, db)
    if payer_id not in members:
        raise ValidationError("The person who paid must be a group member", field="paid_by")
    for user_id in split_user_ids(spec):
        if user_id not in members:
            raise ValidationError(f"User {user_id} is not a member of this group", field="split")


def create_expense(group_id: int, expense_data: ExpenseCreate, store: SqlLedgerStore) -> Expense:
    """Create an expense and record its splits in the ledger."""
    db = store.db
    group = get_group(group_id, db)
    _validate_members(group_id, expense_data.paid_by, expense_data.split, db)

    # Validate the split before anything is written
    deltas = normalize_expense_split(expense_data.total_amount, expense_data.split, expense_data.paid_by)

    expense = Expense(
        group_id=group_id,
        paid_by=expense_data.paid_by,
        title=expense_data.title,
        description=expense_data.description,
        total_amount=expense_data.total_amount,
        currency=(expense_data.currency or group.currency).upper(),
        split_type=expense_data.split.kind,
        split_spec=expense_data.split.model_dump(mode="json"),
        category=expense_data.category.lower() if expense_data.category else None,
        date=expense_data.date
    )
    try:
        db.add(expense)
        db.flush()
        store.append_splits(expense.id, deltas)
        store.commit()
    except LedgerError:
        store.rollback()
        raise

    db.refresh(expense)
    logger.info(f"Created expense {expense.id} in group {group_id}: {expense.total_amount} {expense.currency}")
    return expense


def update_expense(expense_id: int, expense_data: ExpenseUpdate, store: SqlLedgerStore) -> Expense:
    """Update an expense; a new amount, payer or split replaces its ledger splits."""
    db = store.db
    expense = get_expense(expense_id, db)

    resplit = any(
        value is not None
        for value in (expense_data.total_amount, expense_data.paid_by, expense_data.split)
    )
    if resplit:
        total = expense_data.total_amount if expense_data.total_amount is not None else expense.total_amount
        payer_id = expense_data.paid_by if expense_data.paid_by is not None else expense.paid_by
        spec = expense_data.split if expense_data.split is not None else load_split_spec(expense)

        _validate_members(expense.group_id, payer_id, spec, db)
        deltas = normalize_expense_split(total, spec, payer_id, expense_id=expense.id)

        expense.total_amount = total
        expense.paid_by = payer_id
        expense.split_type = spec.kind
        expense.split_spec = spec.model_dump(mode="json")

    if expense_data.title is not None:
        expense.title = expense_data.title
    if expense_data.description is not None:
        expense.description = expense_data.description
    if expense_data.category is not None:
        expense.category = expense_data.category.lower()
    if expense_data.date is not None:
        expense.date = expense_data.date

    try:
        if resplit:
            store.replace_splits(expense.id, deltas)
        store.commit()
    except LedgerError:
        store.rollback()
        raise

    db.refresh(expense)
    logger.info(f"Updated expense {expense.id} (resplit={resplit})")
    return expense


def delete_expense(expense_id: int, store: SqlLedgerStore):
    """Reverse an expense's splits and mark it deleted."""
    db = store.db
    expense = get_expense(expense_id, db)

    try:
        store.reverse_splits(expense.id)
        expense.is_deleted = True
        store.commit()
    except LedgerError:
        store.rollback()
        raise

    logger.info(f"Deleted expense {expense_id} from group {expense.group_id}")


def record_settlement(group_id: int, settlement_data: SettlementCreate, store: SqlLedgerStore) -> Expense:
    """Record a payment from a debtor to a creditor as an exact-split expense."""
    if settlement_data.from_user_id == settlement_data.to_user_id:
        raise ValidationError("A settlement needs two different users", field="to_user_id")

    expense_data = ExpenseCreate(
        title="Settlement",
        description=settlement_data.note,
        total_amount=settlement_data.amount,
        paid_by=settlement_data.from_user_id,
        split=ExactSplit(entries=[
            ExactEntry(user_id=settlement_data.to_user_id, amount=settlement_data.amount)
        ]),
        category=SETTLEMENT_CATEGORY,
        date=settlement_data.date or date.today()
    )
    return create_expense(group_id, expense_data, store)
