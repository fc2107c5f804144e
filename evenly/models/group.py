"""
Group model for expense sharing circles.
"""
from sqlalchemy import Column, String, Boolean, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from evenly.db.base import BaseModel


class Group(BaseModel):
    """Group model; every balance and expense belongs to exactly one group."""
    __tablename__ = "expense_groups"
    
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    currency = Column(String(3), nullable=False, default="INR")
    
    # Relationships
    members = relationship("GroupMember", back_populates="group", cascade="all, delete-orphan")
    expenses = relationship("Expense", back_populates="group", cascade="all, delete-orphan")


class GroupMember(BaseModel):
    """Junction table for Group and User many-to-many relationship."""
    __tablename__ = "group_members"
    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_group_member"),)
    
    group_id = Column(Integer, ForeignKey("expense_groups.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    
    # Relationships
    group = relationship("Group", back_populates="members")
    user = relationship("User", back_populates="memberships")
