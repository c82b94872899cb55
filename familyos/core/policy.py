"""
Authorization decision engine.

Every function here is pure: it looks only at its arguments and never reads
storage. A role of None means the actor has no membership in the group, which
denies every action. The rules are identical for all governed resource kinds.

Delete is deliberately stricter than modify: public edit mode lets other
members edit a resource but never lets them delete it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from familyos.core.exceptions import InsufficientRole, NotAMember
from familyos.core.roles import EditMode, Role, parse_role


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CHANGE_EDIT_MODE = "change_edit_mode"
    CHANGE_ROLE = "change_role"
    REMOVE_MEMBER = "remove_member"
    MANAGE_GROUP = "manage_group"


@dataclass(frozen=True)
class PermissionCheckResult:
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = PermissionCheckResult(True)
NOT_A_MEMBER = PermissionCheckResult(False, "Not a member of this family")


def _role(role) -> Optional[Role]:
    return None if role is None else parse_role(role)


def check_read(role) -> PermissionCheckResult:
    if _role(role) is None:
        return NOT_A_MEMBER
    return ALLOWED


def check_create(role, actor_id: Optional[str], created_by: Optional[str]) -> PermissionCheckResult:
    role = _role(role)
    if role is None or not actor_id:
        return NOT_A_MEMBER
    if role == Role.VIEWER:
        return PermissionCheckResult(False, "Viewers cannot create resources")
    if created_by != actor_id:
        return PermissionCheckResult(False, "Resources can only be created on your own behalf")
    return ALLOWED


def check_modify(role, actor_id: Optional[str], created_by: Optional[str], edit_mode) -> PermissionCheckResult:
    role = _role(role)
    if role is None or not actor_id:
        return NOT_A_MEMBER
    if role == Role.OWNER:
        return ALLOWED
    if role == Role.VIEWER:
        return PermissionCheckResult(False, "Viewers cannot modify resources")
    if created_by == actor_id:
        return ALLOWED
    # A missing edit mode predates the column and counts as public
    if edit_mode is None or EditMode(edit_mode) == EditMode.PUBLIC:
        return ALLOWED
    return PermissionCheckResult(False, "This resource is private and can only be modified by its creator or an owner")


def check_delete(role, actor_id: Optional[str], created_by: Optional[str]) -> PermissionCheckResult:
    role = _role(role)
    if role is None or not actor_id:
        return NOT_A_MEMBER
    if role == Role.OWNER:
        return ALLOWED
    if role == Role.VIEWER:
        return PermissionCheckResult(False, "Viewers cannot delete resources")
    if created_by == actor_id:
        return ALLOWED
    return PermissionCheckResult(False, "You can only delete resources you created")


def check_change_edit_mode(role, actor_id: Optional[str], created_by: Optional[str]) -> PermissionCheckResult:
    role = _role(role)
    if role is None or not actor_id:
        return NOT_A_MEMBER
    if role == Role.OWNER:
        return ALLOWED
    if role == Role.MEMBER and created_by == actor_id:
        return ALLOWED
    return PermissionCheckResult(False, "Only the creator or an owner can change the edit mode")


def check_change_role(actor_role) -> PermissionCheckResult:
    actor_role = _role(actor_role)
    if actor_role is None:
        return NOT_A_MEMBER
    if actor_role == Role.OWNER:
        return ALLOWED
    return PermissionCheckResult(False, "Only owners can change roles")


def check_leave_group(actor_id: Optional[str], membership_user_id: str, actor_role=None) -> PermissionCheckResult:
    if actor_id and actor_id == membership_user_id:
        return ALLOWED
    actor_role = _role(actor_role)
    if actor_role is None:
        return NOT_A_MEMBER
    if actor_role == Role.OWNER:
        return ALLOWED
    return PermissionCheckResult(False, "Only owners can remove other members")


def check_manage_group(actor_role) -> PermissionCheckResult:
    actor_role = _role(actor_role)
    if actor_role is None:
        return NOT_A_MEMBER
    if actor_role == Role.OWNER:
        return ALLOWED
    return PermissionCheckResult(False, "Only owners can manage the family")


def can_read(role) -> bool:
    return check_read(role).allowed


def can_create(role, actor_id: Optional[str], created_by: Optional[str]) -> bool:
    return check_create(role, actor_id, created_by).allowed


def can_modify(role, actor_id: Optional[str], created_by: Optional[str], edit_mode) -> bool:
    return check_modify(role, actor_id, created_by, edit_mode).allowed


def can_delete(role, actor_id: Optional[str], created_by: Optional[str]) -> bool:
    return check_delete(role, actor_id, created_by).allowed


def can_change_edit_mode(role, actor_id: Optional[str], created_by: Optional[str]) -> bool:
    return check_change_edit_mode(role, actor_id, created_by).allowed


def can_change_role(actor_role) -> bool:
    return check_change_role(actor_role).allowed


def can_leave_group(actor_id: Optional[str], membership_user_id: str, actor_role=None) -> bool:
    return check_leave_group(actor_id, membership_user_id, actor_role).allowed


def can_manage_group(actor_role) -> bool:
    return check_manage_group(actor_role).allowed


def capabilities(role) -> dict:
    """Summary of what a role may do in a group, for clients that render controls."""
    role = _role(role)
    is_owner = can_manage_group(role)
    return {
        "role": role.value if role else None,
        "can_read": can_read(role),
        "can_create": role in (Role.OWNER, Role.MEMBER),
        "can_manage_members": is_owner,
        "can_change_roles": can_change_role(role),
        "can_manage_settings": is_owner,
        "can_invite_members": is_owner,
        "can_delete_group": is_owner,
    }


def check(
    action: Action,
    role,
    *,
    actor_id: Optional[str],
    created_by: Optional[str] = None,
    edit_mode=None,
    membership_user_id: Optional[str] = None,
) -> PermissionCheckResult:
    if action == Action.READ:
        return check_read(role)
    if action == Action.CREATE:
        return check_create(role, actor_id, created_by)
    if action == Action.UPDATE:
        return check_modify(role, actor_id, created_by, edit_mode)
    if action == Action.DELETE:
        return check_delete(role, actor_id, created_by)
    if action == Action.CHANGE_EDIT_MODE:
        return check_change_edit_mode(role, actor_id, created_by)
    if action == Action.CHANGE_ROLE:
        return check_change_role(role)
    if action == Action.REMOVE_MEMBER:
        return check_leave_group(actor_id, membership_user_id, role)
    if action == Action.MANAGE_GROUP:
        return check_manage_group(role)
    raise ValueError(f"Unknown action: {action}")


def permitted_roles(actions: Iterable[Action], **context) -> List[str]:
    """
    Roles that would be allowed every one of the actions in this context.

    Handed to the guarded write functions in the database, which re-check the
    actor's role under a row lock in the same transaction as the write.
    """
    actions = list(actions)
    return [
        role.value for role in Role
        if all(check(action, role, **context).allowed for action in actions)
    ]


def authorize(
    action: Action,
    role,
    *,
    group_id: str,
    actor_id: Optional[str],
    created_by: Optional[str] = None,
    edit_mode=None,
    membership_user_id: Optional[str] = None,
) -> None:
    """Raise NotAMember or InsufficientRole unless the action is allowed."""
    result = check(
        action, role,
        actor_id=actor_id,
        created_by=created_by,
        edit_mode=edit_mode,
        membership_user_id=membership_user_id,
    )
    if result.allowed:
        return
    if _role(role) is None and result is NOT_A_MEMBER:
        raise NotAMember(action.value, group_id, actor_id, result.reason)
    raise InsufficientRole(action.value, group_id, actor_id, result.reason)
