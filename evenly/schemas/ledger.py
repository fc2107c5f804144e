"""
Value types produced by the balance ledger.

All amounts are integer minor units.
"""
from pydantic import BaseModel, Field
from typing import List, Optional


class ExpenseSplit(BaseModel):
    """One signed delta of an expense. Positive = credit to the user."""
    expense_id: Optional[int] = None
    user_id: int
    signed_amount: int
    
    model_config = {"frozen": True}


class NetBalance(BaseModel):
    """A user's position within a group. Positive = owed to the user."""
    user_id: int
    group_id: int
    amount: int
    
    model_config = {"frozen": True}


class SettlementTransfer(BaseModel):
    """A proposed payment from a debtor to a creditor."""
    from_user_id: int
    to_user_id: int
    amount: int = Field(gt=0)
    
    model_config = {"frozen": True}


class GroupBalanceSummary(BaseModel):
    """Schema for the group balance overview."""
    group_id: int
    currency: str
    total_expenses: int  # Sum of live expense totals, settlements excluded
    total_members: int
    total_owed: int  # Sum of positive balances
    total_owing: int  # Sum of absolute negative balances
    balances: List[NetBalance]
    simplified_debts: List[SettlementTransfer]
    summary: str


class ConsistencyReport(BaseModel):
    """Schema for the group ledger audit result."""
    group_id: int
    is_valid: bool
    total_balance: int
    issues: List[str] = []


class UserNetBalance(BaseModel):
    """Schema for a user's position across all of their groups."""
    user_id: int
    total_owed: int
    total_owing: int
    net_balance: int
