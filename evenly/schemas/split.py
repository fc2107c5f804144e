"""
Pydantic schemas for split specifications.

A split specification is a closed tagged variant discriminated on ``kind``:
exactly one of EqualSplit, PercentageSplit, SharesSplit or ExactSplit.
"""
from pydantic import BaseModel, Field, StrictInt
from typing import Annotated, List, Literal, Union
from decimal import Decimal


class EqualSplit(BaseModel):
    """Total divided evenly among the listed users."""
    kind: Literal["equal"] = "equal"
    user_ids: List[int]


class PercentageEntry(BaseModel):
    user_id: int
    percent: Decimal


class PercentageSplit(BaseModel):
    """Total divided by percentages summing to 100."""
    kind: Literal["percentage"] = "percentage"
    entries: List[PercentageEntry]


class ShareEntry(BaseModel):
    user_id: int
    shares: int


class SharesSplit(BaseModel):
    """Total divided proportionally to integer share counts."""
    kind: Literal["shares"] = "shares"
    entries: List[ShareEntry]


class ExactEntry(BaseModel):
    user_id: int
    amount: StrictInt  # Minor units


class ExactSplit(BaseModel):
    """Explicit per-user amounts summing to the total."""
    kind: Literal["exact"] = "exact"
    entries: List[ExactEntry]


SplitSpec = Annotated[
    Union[EqualSplit, PercentageSplit, SharesSplit, ExactSplit],
    Field(discriminator="kind"),
]
