"""
Pydantic schemas for Group entity.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class GroupBase(BaseModel):
    """Base group schema."""
    name: str
    description: Optional[str] = None
    currency: str = "INR"


class GroupCreate(GroupBase):
    """Schema for group creation. The creator becomes the group admin."""
    created_by: int
    member_ids: List[int] = []


class GroupMemberAdd(BaseModel):
    """Schema for adding a member to a group."""
    user_id: int
    is_admin: bool = False


class GroupMemberResponse(BaseModel):
    """Schema for group member response."""
    user_id: int
    name: str
    is_admin: bool
    is_active: bool


class GroupResponse(GroupBase):
    """Schema for group response."""
    id: int
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class GroupDetailResponse(GroupResponse):
    """Schema for detailed group response with members."""
    members: List[GroupMemberResponse] = []
