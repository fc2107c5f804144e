"""
Group membership lookups shared by the expense and balance routes.
"""
from sqlalchemy.orm import Session
from typing import Dict, Iterable, List, Set
from evenly.core.exceptions import NotFoundError
from evenly.models.group import Group, GroupMember
from evenly.models.user import User


def get_group(group_id: int, db: Session) -> Group:
    """Group by id or NotFoundError."""
    group = db.query(Group).filter(Group.id == group_id).first()
    if not group:
        raise NotFoundError("Group")
    return group


def get_user(user_id: int, db: Session) -> User:
    """User by id or NotFoundError."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User")
    return user


def active_member_ids(group_id: int, db: Session) -> Set[int]:
    """Ids of the active members of a group."""
    rows = db.query(GroupMember.user_id).filter(
        GroupMember.group_id == group_id,
        GroupMember.is_active == True  # noqa: E712
    ).all()
    return {row.user_id for row in rows}


def user_group_ids(user_id: int, db: Session) -> List[int]:
    """Ids of every group the user has been a member of."""
    rows = db.query(GroupMember.group_id).filter(
        GroupMember.user_id == user_id
    ).order_by(GroupMember.group_id).all()
    return [row.group_id for row in rows]


def get_usernames(user_ids: Iterable[int], db: Session) -> Dict[int, str]:
    """user_id -> display name for the given users."""
    user_ids = list(user_ids)
    if not user_ids:
        return {}
    users = db.query(User).filter(User.id.in_(user_ids)).all()
    return {user.id: user.name for user in users}
