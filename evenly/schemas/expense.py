"""
Pydantic schemas for Expense entity.

Money fields are integer minor units (cents).
"""
from pydantic import BaseModel, StrictInt
from typing import List, Optional
from datetime import date as dt_date, datetime
from evenly.schemas.ledger import ExpenseSplit
from evenly.schemas.split import SplitSpec


class ExpenseCreate(BaseModel):
    """Schema for expense creation."""
    title: str
    description: Optional[str] = None
    total_amount: StrictInt
    currency: Optional[str] = None  # Defaults to the group's currency
    paid_by: int
    split: SplitSpec
    category: Optional[str] = None
    date: dt_date


class ExpenseUpdate(BaseModel):
    """Schema for expense update. Changing amount, payer or split re-splits the expense."""
    title: Optional[str] = None
    description: Optional[str] = None
    total_amount: Optional[StrictInt] = None
    paid_by: Optional[int] = None
    split: Optional[SplitSpec] = None
    category: Optional[str] = None
    date: Optional[dt_date] = None


class ExpenseResponse(BaseModel):
    """Schema for expense response."""
    id: int
    group_id: int
    paid_by: int
    title: str
    description: Optional[str] = None
    total_amount: int
    currency: str
    split_type: str
    category: Optional[str] = None
    date: dt_date
    is_deleted: bool
    splits: List[ExpenseSplit] = []  # Live deltas: payer credit first, then debits
    created_at: datetime
    updated_at: datetime


class SettlementCreate(BaseModel):
    """Schema for recording a settlement payment between two members."""
    from_user_id: int
    to_user_id: int
    amount: StrictInt
    date: Optional[dt_date] = None
    note: Optional[str] = None
