"""
Group management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from evenly.db.session import get_db
from evenly.models.user import User
from evenly.models.group import Group, GroupMember
from evenly.schemas.group import GroupCreate, GroupDetailResponse, GroupMemberAdd, GroupMemberResponse, GroupResponse
from evenly.api.dependencies import get_ledger_store
from evenly.services.balance_service import compute_group_balances
from evenly.services.ledger_store import SqlLedgerStore

router = APIRouter(prefix="/groups", tags=["groups"])


def check_group_exists(group_id: int, db: Session) -> Group:
    """Return the group or raise 404."""
    group = db.query(Group).filter(Group.id == group_id).first()
    if not group:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Group not found"
        )
    return group


def _check_users_exist(user_ids, db: Session):
    found = {u.id for u in db.query(User).filter(User.id.in_(list(user_ids))).all()}
    missing = sorted(set(user_ids) - found)
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Users not found: {missing}"
        )


def _member_responses(group: Group):
    return [
        GroupMemberResponse(
            user_id=m.user_id,
            name=m.user.name,
            is_admin=m.is_admin,
            is_active=m.is_active
        )
        for m in sorted(group.members, key=lambda m: m.user_id)
    ]


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    group_data: GroupCreate,
    db: Session = Depends(get_db)
):
    """Create a new group with its creator as admin."""
    member_ids = set(group_data.member_ids) - {group_data.created_by}
    _check_users_exist(member_ids | {group_data.created_by}, db)
    
    new_group = Group(
        name=group_data.name,
        description=group_data.description,
        currency=group_data.currency.upper()
    )
    db.add(new_group)
    db.flush()
    
    # Add creator as admin
    db.add(GroupMember(group_id=new_group.id, user_id=group_data.created_by, is_admin=True))
    for user_id in sorted(member_ids):
        db.add(GroupMember(group_id=new_group.id, user_id=user_id))
    db.commit()
    db.refresh(new_group)
    
    return new_group


@router.get("/{group_id}", response_model=GroupDetailResponse)
async def get_group(
    group_id: int,
    db: Session = Depends(get_db)
):
    """Get group details."""
    group = check_group_exists(group_id, db)
    
    return GroupDetailResponse(
        id=group.id,
        name=group.name,
        description=group.description,
        currency=group.currency,
        created_at=group.created_at,
        updated_at=group.updated_at,
        members=_member_responses(group)
    )


@router.post("/{group_id}/members", response_model=GroupDetailResponse)
async def add_member(
    group_id: int,
    member_data: GroupMemberAdd,
    db: Session = Depends(get_db)
):
    """Add a user to a group, or reactivate a former member."""
    group = check_group_exists(group_id, db)
    _check_users_exist({member_data.user_id}, db)
    
    membership = db.query(GroupMember).filter(
        GroupMember.group_id == group_id,
        GroupMember.user_id == member_data.user_id
    ).first()
    
    if membership and membership.is_active:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already a member of this group"
        )
    if membership:
        membership.is_active = True
        membership.is_admin = member_data.is_admin
    else:
        db.add(GroupMember(group_id=group_id, user_id=member_data.user_id, is_admin=member_data.is_admin))
    db.commit()
    db.refresh(group)
    
    return await get_group(group_id, db)


@router.delete("/{group_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    group_id: int,
    user_id: int,
    store: SqlLedgerStore = Depends(get_ledger_store)
):
    """Deactivate a member. Members with an open balance cannot leave."""
    db = store.db
    check_group_exists(group_id, db)
    
    membership = db.query(GroupMember).filter(
        GroupMember.group_id == group_id,
        GroupMember.user_id == user_id,
        GroupMember.is_active == True  # noqa: E712
    ).first()
    if not membership:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member not found"
        )
    
    for balance in compute_group_balances(group_id, store):
        if balance.user_id == user_id and balance.amount != 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Member has an unsettled balance"
            )
    
    membership.is_active = False
    db.commit()
