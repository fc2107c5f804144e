"""
Split normalization: expense total + split specification -> signed deltas.

The payer is credited with the full total and every participant is debited
with their share, so the deltas of one expense always sum to exactly zero.
Fractional minor units are floored and the remainder is handed out one unit
at a time in ascending user_id order.
"""
import logging
from fractions import Fraction
from typing import Dict, List, Optional, Sequence

from evenly.core.config import settings
from evenly.core.exceptions import IntegrityError, ValidationError
from evenly.schemas.ledger import ExpenseSplit
from evenly.schemas.split import EqualSplit, ExactSplit, PercentageSplit, SharesSplit, SplitSpec

logger = logging.getLogger(__name__)

HUNDRED = Fraction(100)


def normalize_expense_split(
    total: int,
    spec: SplitSpec,
    payer_id: int,
    expense_id: Optional[int] = None
) -> List[ExpenseSplit]:
    """
    Convert a split specification into ExpenseSplit deltas.

    Returns the payer credit first, then one debit per participant in
    ascending user_id order. A payer who also participates appears twice.
    """
    if isinstance(total, bool) or not isinstance(total, int):
        raise ValidationError("Total must be an integer amount in minor units", field="total")
    if total <= 0:
        raise ValidationError("Total must be greater than zero", field="total")

    shares = participant_shares(total, spec)

    deltas = [ExpenseSplit(expense_id=expense_id, user_id=payer_id, signed_amount=total)]
    for user_id in sorted(shares):
        deltas.append(ExpenseSplit(expense_id=expense_id, user_id=user_id, signed_amount=-shares[user_id]))

    if sum(d.signed_amount for d in deltas) != 0:
        raise IntegrityError(f"Split of {total} does not balance for expense {expense_id}")
    logger.debug(f"Normalized {spec.kind} split of {total} into {len(deltas)} deltas")
    return deltas


def participant_shares(total: int, spec: SplitSpec) -> Dict[int, int]:
    """Amount owed by each participant (user_id -> minor units) for one split kind."""
    if isinstance(spec, EqualSplit):
        return _split_equal(total, spec)
    elif isinstance(spec, PercentageSplit):
        return _split_percentage(total, spec)
    elif isinstance(spec, SharesSplit):
        return _split_shares(total, spec)
    elif isinstance(spec, ExactSplit):
        return _split_exact(total, spec)
    raise TypeError(f"Unsupported split specification: {type(spec).__name__}")


def _split_equal(total: int, spec: EqualSplit) -> Dict[int, int]:
    _check_participants(spec.user_ids, "user_ids")
    return allocate(total, {user_id: Fraction(1) for user_id in spec.user_ids})


def _split_percentage(total: int, spec: PercentageSplit) -> Dict[int, int]:
    _check_participants([e.user_id for e in spec.entries], "entries")

    weights = {}
    for entry in spec.entries:
        if not entry.percent.is_finite():
            raise ValidationError(f"Percentage for user {entry.user_id} is not a number", field="entries.percent")
        if entry.percent < 0:
            raise ValidationError(f"Percentage for user {entry.user_id} is negative", field="entries.percent")
        weights[entry.user_id] = Fraction(entry.percent)

    percent_sum = sum(weights.values())
    if abs(percent_sum - HUNDRED) > Fraction(settings.PERCENT_TOLERANCE):
        raise ValidationError(
            f"Percentages must sum to 100, got {float(percent_sum):g}",
            field="entries.percent"
        )
    return allocate(total, weights)


def _split_shares(total: int, spec: SharesSplit) -> Dict[int, int]:
    _check_participants([e.user_id for e in spec.entries], "entries")
    for entry in spec.entries:
        if entry.shares <= 0:
            raise ValidationError(f"Shares for user {entry.user_id} must be greater than zero", field="entries.shares")
    return allocate(total, {e.user_id: Fraction(e.shares) for e in spec.entries})


def _split_exact(total: int, spec: ExactSplit) -> Dict[int, int]:
    _check_participants([e.user_id for e in spec.entries], "entries")
    for entry in spec.entries:
        if entry.amount < 0:
            raise ValidationError(f"Amount for user {entry.user_id} is negative", field="entries.amount")

    split_sum = sum(e.amount for e in spec.entries)
    if split_sum != total:
        raise ValidationError(
            f"Exact split amounts must sum to total amount ({split_sum} != {total})",
            field="entries.amount"
        )
    return {e.user_id: e.amount for e in spec.entries}


def _check_participants(user_ids: Sequence[int], field: str):
    if not user_ids:
        raise ValidationError("At least one participant is required", field=field)
    if len(set(user_ids)) != len(user_ids):
        raise ValidationError("Each participant may appear only once", field=field)


def allocate(total: int, weights: Dict[int, Fraction]) -> Dict[int, int]:
    """
    Divide total proportionally to weights with exact-cent rounding.

    Each user gets the floor of their proportional amount; the leftover
    units go one at a time to users with a positive weight in ascending
    user_id order. The result always sums to total.
    """
    weight_sum = sum(weights.values())
    amounts = {user_id: int(total * w / weight_sum) for user_id, w in weights.items()}

    remainder = total - sum(amounts.values())
    recipients = sorted(user_id for user_id, w in weights.items() if w > 0)
    index = 0
    while remainder > 0:
        amounts[recipients[index % len(recipients)]] += 1
        remainder -= 1
        index += 1
    return amounts
