"""
User model for group membership and ledger participation.
"""
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from evenly.db.base import BaseModel


class User(BaseModel):
    """User model."""
    __tablename__ = "users"
    
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    
    # Relationships
    memberships = relationship("GroupMember", back_populates="user", cascade="all, delete-orphan")
    expenses_paid = relationship("Expense", foreign_keys="Expense.paid_by", back_populates="payer")
