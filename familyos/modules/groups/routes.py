from fastapi import APIRouter, Depends
from familyos.config.permissions_config import ROLE_MATRIX
from familyos.database.supabase_client import get_supabase, get_service_supabase
from familyos.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupInvitePreview, GroupJoin,
    GroupMemberResponse, MemberRoleUpdate, GroupCapabilitiesResponse
)
from familyos.modules.groups.service import GroupService
from familyos.core.dependencies import get_current_user_id, get_membership_directory
from familyos.core.membership import SupabaseMembershipDirectory
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(
    supabase: Client = Depends(get_supabase),
    service_supabase: Client = Depends(get_service_supabase),
    directory: SupabaseMembershipDirectory = Depends(get_membership_directory)
) -> GroupService:
    return GroupService(supabase, directory, service_supabase)


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    group_data: GroupCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Create a new family; the caller becomes its owner"""
    return service.create_group(group_data, current_user["id"])


@router.get("", response_model=List[GroupResponse])
async def list_groups(
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """List the families the caller belongs to"""
    return service.list_groups(current_user["id"])


@router.get("/roles")
async def get_role_matrix(
    current_user: Dict = Depends(get_current_user_id)
):
    """Describe the family roles and the governed resource kinds"""
    return ROLE_MATRIX


@router.get("/invite/{invite_code}", response_model=GroupInvitePreview)
async def get_group_by_invite_code(
    invite_code: str,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Preview the family behind an invite code"""
    return service.get_group_by_invite_code(invite_code)


@router.post("/join", response_model=GroupMemberResponse, status_code=201)
async def join_group(
    join_data: GroupJoin,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Join a family with an invite code (as member)"""
    return service.join_group(join_data.invite_code, current_user["id"])


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Get family by ID (members only)"""
    return service.get_group(group_id, current_user["id"])


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: str,
    group_data: GroupUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Rename the family or change its icon (owners only)"""
    return service.update_group(group_id, current_user["id"], group_data)


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Delete the family with all its members and resources (owners only)"""
    service.delete_group(group_id, current_user["id"])
    return None


@router.post("/{group_id}/invite-code", response_model=GroupResponse)
async def rotate_invite_code(
    group_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Replace the family's invite code (owners only)"""
    return service.rotate_invite_code(group_id, current_user["id"])


@router.get("/{group_id}/permissions", response_model=GroupCapabilitiesResponse)
async def get_group_permissions(
    group_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """What the caller may do in this family (for frontend UI)"""
    return service.get_capabilities(group_id, current_user["id"])


@router.get("/{group_id}/members", response_model=List[GroupMemberResponse])
async def list_members(
    group_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """List all members of a family (members only)"""
    return service.list_members(group_id, current_user["id"])


@router.put("/{group_id}/members/{user_id}", response_model=GroupMemberResponse)
async def update_member_role(
    group_id: str,
    user_id: str,
    role_data: MemberRoleUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Change a member's role (owners only)"""
    return service.update_member_role(group_id, current_user["id"], user_id, role_data.role)


@router.delete("/{group_id}/members/{user_id}", status_code=204)
async def remove_member(
    group_id: str,
    user_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Leave the family, or remove a member (owners only)"""
    service.remove_member(group_id, current_user["id"], user_id)
    return None
