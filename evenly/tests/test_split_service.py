"""
Tests for split normalization.
"""
import pytest

from evenly.core.exceptions import ValidationError
from evenly.schemas.split import (
    EqualSplit, ExactEntry, ExactSplit, PercentageEntry, PercentageSplit, ShareEntry, SharesSplit
)
from evenly.services.split_service import allocate, normalize_expense_split


def amounts(deltas):
    return [(d.user_id, d.signed_amount) for d in deltas]


def test_equal_split_assigns_remainder_to_lowest_user_id():
    """100 among three users: the extra cent goes to the lowest user id."""
    deltas = normalize_expense_split(100, EqualSplit(user_ids=[3, 1, 2]), payer_id=9, expense_id=5)

    assert amounts(deltas) == [(9, 100), (1, -34), (2, -33), (3, -33)]
    assert sum(d.signed_amount for d in deltas) == 0
    assert all(d.expense_id == 5 for d in deltas)


def test_payer_who_participates_gets_credit_and_debit():
    """The payer's credit and own share are separate deltas."""
    deltas = normalize_expense_split(100, EqualSplit(user_ids=[1, 2, 3]), payer_id=1)

    assert amounts(deltas) == [(1, 100), (1, -34), (2, -33), (3, -33)]


def test_percentage_split_rounds_to_exact_cents():
    """60/40 of 101 cents: floors are 60 and 40, the spare cent goes to user 1."""
    spec = PercentageSplit(entries=[
        PercentageEntry(user_id=2, percent="60"),
        PercentageEntry(user_id=1, percent="40"),
    ])
    deltas = normalize_expense_split(101, spec, payer_id=1)

    assert amounts(deltas) == [(1, 101), (1, -41), (2, -60)]
    assert sum(d.signed_amount for d in deltas) == 0


def test_percentage_within_tolerance_is_accepted():
    """Thirds written as 33.33% sum to 99.99, which is within tolerance."""
    spec = PercentageSplit(entries=[
        PercentageEntry(user_id=1, percent="33.33"),
        PercentageEntry(user_id=2, percent="33.33"),
        PercentageEntry(user_id=3, percent="33.33"),
    ])
    deltas = normalize_expense_split(1000, spec, payer_id=1)

    assert amounts(deltas)[1:] == [(1, -334), (2, -333), (3, -333)]


def test_percentage_not_summing_to_100_fails():
    spec = PercentageSplit(entries=[
        PercentageEntry(user_id=1, percent="50"),
        PercentageEntry(user_id=2, percent="40"),
    ])
    with pytest.raises(ValidationError) as exc_info:
        normalize_expense_split(100, spec, payer_id=1)
    assert exc_info.value.field == "entries.percent"


def test_negative_percentage_fails():
    spec = PercentageSplit(entries=[
        PercentageEntry(user_id=1, percent="110"),
        PercentageEntry(user_id=2, percent="-10"),
    ])
    with pytest.raises(ValidationError):
        normalize_expense_split(100, spec, payer_id=1)


def test_shares_split_is_proportional():
    """One share vs two shares of 100: 33.33 and 66.67 become 34 and 66."""
    spec = SharesSplit(entries=[ShareEntry(user_id=1, shares=1), ShareEntry(user_id=2, shares=2)])
    deltas = normalize_expense_split(100, spec, payer_id=2)

    assert amounts(deltas) == [(2, 100), (1, -34), (2, -66)]


def test_shares_must_be_positive():
    spec = SharesSplit(entries=[ShareEntry(user_id=1, shares=0), ShareEntry(user_id=2, shares=2)])
    with pytest.raises(ValidationError) as exc_info:
        normalize_expense_split(100, spec, payer_id=1)
    assert exc_info.value.field == "entries.shares"


def test_empty_shares_list_fails():
    with pytest.raises(ValidationError) as exc_info:
        normalize_expense_split(100, SharesSplit(entries=[]), payer_id=1)
    assert exc_info.value.field == "entries"


def test_exact_split_uses_given_amounts():
    spec = ExactSplit(entries=[ExactEntry(user_id=2, amount=70), ExactEntry(user_id=3, amount=30)])
    deltas = normalize_expense_split(100, spec, payer_id=1)

    assert amounts(deltas) == [(1, 100), (2, -70), (3, -30)]


def test_exact_split_must_sum_to_total():
    spec = ExactSplit(entries=[ExactEntry(user_id=2, amount=70), ExactEntry(user_id=3, amount=20)])
    with pytest.raises(ValidationError) as exc_info:
        normalize_expense_split(100, spec, payer_id=1)
    assert exc_info.value.field == "entries.amount"


def test_exact_split_rejects_negative_amount():
    spec = ExactSplit(entries=[ExactEntry(user_id=2, amount=110), ExactEntry(user_id=3, amount=-10)])
    with pytest.raises(ValidationError):
        normalize_expense_split(100, spec, payer_id=1)


def test_duplicate_participant_fails():
    with pytest.raises(ValidationError):
        normalize_expense_split(100, EqualSplit(user_ids=[1, 1]), payer_id=1)


def test_empty_equal_split_fails():
    with pytest.raises(ValidationError):
        normalize_expense_split(100, EqualSplit(user_ids=[]), payer_id=1)


@pytest.mark.parametrize("total", [0, -5, 10.5, True])
def test_invalid_total_fails(total):
    with pytest.raises(ValidationError) as exc_info:
        normalize_expense_split(total, EqualSplit(user_ids=[1, 2]), payer_id=1)
    assert exc_info.value.field == "total"


def test_unknown_split_kind_is_rejected():
    with pytest.raises(TypeError):
        normalize_expense_split(100, object(), payer_id=1)


def test_deltas_always_sum_to_zero():
    """Zero-sum holds for awkward totals and participant counts."""
    for total in (1, 2, 7, 99, 100, 101, 9999):
        for count in (1, 2, 3, 6, 7):
            user_ids = list(range(1, count + 1))
            equal = normalize_expense_split(total, EqualSplit(user_ids=user_ids), payer_id=1)
            shares = normalize_expense_split(
                total,
                SharesSplit(entries=[ShareEntry(user_id=u, shares=u) for u in user_ids]),
                payer_id=1
            )
            assert sum(d.signed_amount for d in equal) == 0
            assert sum(d.signed_amount for d in shares) == 0


def test_allocate_skips_zero_weights_for_remainder():
    """A 0% participant never receives a rounding cent."""
    from fractions import Fraction
    result = allocate(101, {1: Fraction(0), 2: Fraction(50), 3: Fraction(50)})

    assert result == {1: 0, 2: 51, 3: 50}
