"""
Expense and ledger entry models.
"""
from sqlalchemy import Column, String, BigInteger, Boolean, Date, ForeignKey, Integer, Text, JSON
from sqlalchemy.orm import relationship
from evenly.db.base import BaseModel


class Expense(BaseModel):
    """Expense model representing a single spending event."""
    __tablename__ = "expenses"
    
    group_id = Column(Integer, ForeignKey("expense_groups.id"), nullable=False, index=True)
    paid_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    total_amount = Column(BigInteger, nullable=False)  # Minor units (cents)
    currency = Column(String(3), nullable=False, default="INR")
    split_type = Column(String(20), nullable=False)  # equal | percentage | shares | exact
    split_spec = Column(JSON, nullable=False)  # The split specification as submitted
    category = Column(String(50), nullable=True)
    date = Column(Date, nullable=False, index=True)
    is_deleted = Column(Boolean, default=False, nullable=False)  # Deleted expenses keep their reversed entries
    
    # Relationships
    group = relationship("Group", back_populates="expenses")
    payer = relationship("User", foreign_keys=[paid_by], back_populates="expenses_paid")
    ledger_entries = relationship("LedgerEntry", back_populates="expense", order_by="LedgerEntry.id")


class LedgerEntry(BaseModel):
    """Append-only signed delta; insertion order is the id order."""
    __tablename__ = "ledger_entries"
    
    group_id = Column(Integer, ForeignKey("expense_groups.id"), nullable=False, index=True)
    expense_id = Column(Integer, ForeignKey("expenses.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    signed_amount = Column(BigInteger, nullable=False)  # Minor units; positive = credit
    reverses_id = Column(Integer, ForeignKey("ledger_entries.id"), nullable=True, unique=True)
    
    # Relationships
    expense = relationship("Expense", back_populates="ledger_entries")
