"""Models package - Import all models for SQLAlchemy registration."""
from evenly.models.user import User
from evenly.models.group import Group, GroupMember
from evenly.models.expense import Expense, LedgerEntry

__all__ = [
    "User",
    "Group",
    "GroupMember",
    "Expense",
    "LedgerEntry",
]
