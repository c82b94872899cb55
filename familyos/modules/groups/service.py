import secrets
import string
from supabase import Client
from fastapi import HTTPException
from typing import Any, Dict, List, Optional
import logging

from familyos.config import settings
from familyos.config.permissions_config import CREATOR_ROLE, DEFAULT_JOIN_ROLE, get_resource_tables
from familyos.core.exceptions import (
    AuthorizationError, InsufficientRole, InvariantViolation, LastOwnerError, MembershipConflict,
    NotAMember, ResourceNotFound
)
from familyos.core.membership import SupabaseMembershipDirectory
from familyos.core.policy import Action, authorize, capabilities, permitted_roles
from familyos.core.roles import Role, parse_role
from familyos.modules.groups.schemas import GroupCreate, GroupUpdate

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_invite_code(length: Optional[int] = None) -> str:
    length = length or settings.invite_code_length
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


class GroupService:
    """Family group lifecycle: creation, invites, memberships, roles and cascading deletion."""

    def __init__(
        self,
        supabase: Client,
        directory: SupabaseMembershipDirectory,
        service_supabase: Optional[Client] = None
    ):
        self.supabase = supabase
        self.directory = directory
        # Guarded membership writes and cascade verification run with the service role
        self.service_supabase = service_supabase or supabase

    def _authorize(self, action: Action, group_id: str, actor_id: str, **kwargs) -> Optional[Role]:
        role = self.directory.role_of(group_id, actor_id)
        try:
            authorize(action, role, group_id=group_id, actor_id=actor_id, **kwargs)
        except AuthorizationError as e:
            logger.info(f"Denied {action.value} for user {actor_id} in group {group_id}: {type(e).__name__}")
            raise
        return role

    def create_group(self, group_data: GroupCreate, user_id: str) -> Dict[str, Any]:
        """Create a new family group; the creator becomes its owner"""
        result = self.supabase.table("family_groups").insert({
            "name": group_data.name,
            "icon": group_data.icon,
            "owner_id": user_id,
            "invite_code": generate_invite_code()
        }).execute()

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create group")
        group = result.data[0]

        try:
            self.supabase.table("group_members").insert({
                "group_id": group["id"],
                "user_id": user_id,
                "role": CREATOR_ROLE
            }).execute()
        except Exception:
            # An ownerless group must not survive
            logger.error(f"Failed to add creator {user_id} to group {group['id']}, rolling back")
            self.supabase.table("family_groups").delete().eq("id", group["id"]).execute()
            raise

        logger.info(f"User {user_id} created group {group['id']}")
        return group

    def get_group(self, group_id: str, actor_id: str) -> Dict[str, Any]:
        """Get group by ID (members only)"""
        self._authorize(Action.READ, group_id, actor_id)
        result = self.supabase.table("family_groups")\
            .select("*")\
            .eq("id", group_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise ResourceNotFound("family_groups", group_id)
        return result.data[0]

    def list_groups(self, user_id: str) -> List[Dict[str, Any]]:
        """List the groups the user is a member of"""
        members_result = self.supabase.table("group_members")\
            .select("group_id")\
            .eq("user_id", user_id)\
            .execute()
        if not members_result.data:
            return []
        group_ids = [m["group_id"] for m in members_result.data]
        result = self.supabase.table("family_groups")\
            .select("*")\
            .in_("id", group_ids)\
            .order("created_at", desc=True)\
            .execute()
        return result.data or []

    def update_group(self, group_id: str, actor_id: str, group_data: GroupUpdate) -> Dict[str, Any]:
        """Rename the group or change its icon (owners only)"""
        self._authorize(Action.MANAGE_GROUP, group_id, actor_id)
        update_data = {}
        if group_data.name:
            update_data["name"] = group_data.name
        if group_data.icon is not None:
            update_data["icon"] = group_data.icon

        if not update_data:
            return self.get_group(group_id, actor_id)

        result = self.supabase.table("family_groups")\
            .update(update_data)\
            .eq("id", group_id)\
            .execute()
        if not result.data:
            raise ResourceNotFound("family_groups", group_id)
        return result.data[0]

    def rotate_invite_code(self, group_id: str, actor_id: str) -> Dict[str, Any]:
        """Issue a new invite code, invalidating the old one (owners only)"""
        self._authorize(Action.MANAGE_GROUP, group_id, actor_id)
        result = self.supabase.table("family_groups")\
            .update({"invite_code": generate_invite_code()})\
            .eq("id", group_id)\
            .execute()
        if not result.data:
            raise ResourceNotFound("family_groups", group_id)
        return result.data[0]

    def delete_group(self, group_id: str, actor_id: str) -> None:
        """
        Delete the group with all its memberships and resources (owners only).

        Deleting the family_groups row cascades to every dependent table in a
        single statement, so a failure leaves everything in place. Any row that
        survives the cascade is an inconsistency that cannot be retried away.
        """
        self._authorize(Action.MANAGE_GROUP, group_id, actor_id)
        result = self.supabase.table("family_groups")\
            .delete()\
            .eq("id", group_id)\
            .execute()
        if not result.data:
            raise ResourceNotFound("family_groups", group_id)

        orphans = []
        for table in ["group_members"] + get_resource_tables():
            remaining = self.service_supabase.table(table)\
                .select("id")\
                .eq("group_id", group_id)\
                .limit(1)\
                .execute()
            if remaining.data:
                orphans.append(table)
        if orphans:
            logger.critical(f"Group {group_id} deleted but rows remain in: {', '.join(orphans)}")
            raise InvariantViolation(f"Cascade delete of group {group_id} left orphaned rows in {orphans}")

        logger.info(f"User {actor_id} deleted group {group_id}")

    def get_group_by_invite_code(self, invite_code: str) -> Dict[str, Any]:
        """Resolve an invite code to the group's public preview"""
        result = self.supabase.table("family_groups")\
            .select("id, name, icon")\
            .eq("invite_code", invite_code.strip().upper())\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Invalid invite code")
        return result.data[0]

    def join_group(self, invite_code: str, user_id: str) -> Dict[str, Any]:
        """Add the caller to the group behind an invite code; only their own membership is ever created"""
        group = self.get_group_by_invite_code(invite_code)
        if self.directory.role_of(group["id"], user_id) is not None:
            raise MembershipConflict(f"User {user_id} already belongs to group {group['id']}")

        result = self.supabase.table("group_members").insert({
            "group_id": group["id"],
            "user_id": user_id,
            "role": DEFAULT_JOIN_ROLE
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to join group")
        logger.info(f"User {user_id} joined group {group['id']}")
        return result.data[0]

    def list_members(self, group_id: str, actor_id: str) -> List[Dict[str, Any]]:
        """List all members of a group (members only)"""
        self._authorize(Action.READ, group_id, actor_id)
        result = self.supabase.table("group_members")\
            .select("*")\
            .eq("group_id", group_id)\
            .order("created_at")\
            .execute()
        return result.data or []

    def get_capabilities(self, group_id: str, actor_id: str) -> Dict[str, Any]:
        role = self._authorize(Action.READ, group_id, actor_id)
        return capabilities(role)

    def update_member_role(self, group_id: str, actor_id: str, target_user_id: str, new_role: Role) -> Dict[str, Any]:
        """Change a member's role (owners only, including changes to their own role)"""
        self._authorize(Action.CHANGE_ROLE, group_id, actor_id)
        new_role = Role(new_role)
        outcome = self._change_membership(
            Action.CHANGE_ROLE, group_id, actor_id, target_user_id,
            permitted_roles([Action.CHANGE_ROLE], actor_id=actor_id),
            new_role.value
        )
        logger.info(
            f"User {actor_id} changed role of {target_user_id} in group {group_id} "
            f"from {outcome.get('previous_role')} to {new_role.value}"
        )
        return outcome["row"]

    def remove_member(self, group_id: str, actor_id: str, target_user_id: str) -> None:
        """Remove a membership: anyone may leave, owners may remove anyone"""
        self._authorize(Action.REMOVE_MEMBER, group_id, actor_id, membership_user_id=target_user_id)
        self._change_membership(
            Action.REMOVE_MEMBER, group_id, actor_id, target_user_id,
            permitted_roles([Action.REMOVE_MEMBER], actor_id=actor_id, membership_user_id=target_user_id),
            None
        )
        logger.info(f"User {actor_id} removed {target_user_id} from group {group_id}")

    def _change_membership(
        self,
        action: Action,
        group_id: str,
        actor_id: str,
        target_user_id: str,
        roles: List[str],
        new_role: Optional[str]
    ) -> Dict[str, Any]:
        """
        Apply a role change (new_role set) or a removal (new_role None) through
        guarded_member_change, which locks the group's owner rows, re-checks the
        actor's role and the last-owner rule, and writes in one transaction.
        """
        outcome = self.service_supabase.rpc("guarded_member_change", {
            "p_group_id": group_id,
            "p_actor": actor_id,
            "p_target": target_user_id,
            "p_roles": roles,
            "p_new_role": new_role
        }).execute().data or {}
        status = outcome.get("status")
        if status == "ok":
            return outcome
        if status == "forbidden":
            logger.info(f"Denied {action.value} for user {actor_id} in group {group_id}: role changed before the write")
            reason = "Membership changed before the write"
            if parse_role(outcome.get("role")) is None:
                raise NotAMember(action.value, group_id, actor_id, reason)
            raise InsufficientRole(action.value, group_id, actor_id, reason)
        if status == "missing":
            raise ResourceNotFound("group_members", target_user_id)
        if status == "last_owner":
            raise LastOwnerError(f"Group {group_id} must keep at least one owner")
        raise InvariantViolation(f"guarded_member_change returned unexpected status {status!r}")
