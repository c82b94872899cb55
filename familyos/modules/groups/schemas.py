from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from familyos.core.roles import Role


class GroupCreate(BaseModel):
    name: str
    icon: Optional[str] = "🏠"


class GroupUpdate(BaseModel):
    name: Optional[str] = None
    icon: Optional[str] = None


class GroupResponse(BaseModel):
    id: str
    name: str
    owner_id: Optional[str] = None
    invite_code: str
    icon: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GroupInvitePreview(BaseModel):
    id: str
    name: str
    icon: Optional[str] = None


class GroupJoin(BaseModel):
    invite_code: str


class GroupMemberResponse(BaseModel):
    id: str
    group_id: str
    user_id: str
    role: Role
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MemberRoleUpdate(BaseModel):
    role: Role


class GroupCapabilitiesResponse(BaseModel):
    role: Optional[Role] = None
    can_read: bool
    can_create: bool
    can_manage_members: bool
    can_change_roles: bool
    can_manage_settings: bool
    can_invite_members: bool
    can_delete_group: bool
