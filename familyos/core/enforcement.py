"""
Policy enforcement point for governed resources.

Every mutation of a card, document, event, list, subscription or note goes
through PolicyEnforcementPoint. The sequence is the same for all six kinds:

1. resolve the actor's role from the membership directory
2. load the resource envelope (update/delete)
3. ask the decision engine
4. stamp updated_by/updated_at server side and write through a guarded
   database function (scripts/guarded_writes.sql)

The guarded functions re-read the actor's role under a row lock and perform
the write in the same transaction, so a concurrent demotion or removal either
lands before the write (which is then refused) or after it. Update and delete
also compare-and-set on the updated_at value read in step 2. Payload and
envelope fields go out together, so a failed write leaves the row untouched.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from supabase import Client
import logging

from familyos.config.permissions_config import DEFAULT_EDIT_MODE
from familyos.core.envelope import (
    AUDIT_FIELDS, IMMUTABLE_FIELDS, ResourceEnvelope, ResourceKind
)
from familyos.core.exceptions import (
    AuthorizationError, InsufficientRole, InvariantViolation, NotAMember, ResourceNotFound, StaleEnvelope
)
from familyos.core.membership import MembershipDirectory
from familyos.core.policy import Action, authorize, permitted_roles
from familyos.core.roles import EditMode, Role, parse_role

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PolicyEnforcementPoint:
    def __init__(
        self,
        supabase: Client,
        directory: MembershipDirectory,
        clock: Optional[Callable[[], datetime]] = None,
        writer: Optional[Client] = None
    ):
        self.supabase = supabase
        self.directory = directory
        self.clock = clock or utc_now
        # Guarded write functions are granted to the service role only
        self.writer = writer or supabase

    def _authorize(self, action: Action, role: Optional[Role], group_id: str, actor_id: str, **kwargs) -> None:
        try:
            authorize(action, role, group_id=group_id, actor_id=actor_id, **kwargs)
        except AuthorizationError as e:
            logger.info(
                f"Denied {action.value} for user {actor_id} in group {group_id}: "
                f"{type(e).__name__} ({e.reason})"
            )
            raise

    def _member_role(self, action: Action, group_id: str, actor_id: str) -> Role:
        """Resolve the actor's role, rejecting non-members before anything about the resource is read."""
        role = self.directory.role_of(group_id, actor_id)
        if role is None:
            self._authorize(action, None, group_id, actor_id)
        return role

    def _load(self, kind: ResourceKind, group_id: str, resource_id: str) -> Dict[str, Any]:
        result = self.supabase.table(kind.table)\
            .select("*")\
            .eq("id", resource_id)\
            .limit(1)\
            .execute()
        # A row in another group is reported exactly like a missing one
        if not result.data or result.data[0].get("group_id") != group_id:
            raise ResourceNotFound(kind.table, resource_id)
        return result.data[0]

    def _guarded_write(
        self,
        function: str,
        params: Dict[str, Any],
        action: Action,
        kind: ResourceKind,
        group_id: str,
        actor_id: str,
        resource_id: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Run a guarded write function and turn its status into a row or an exception."""
        outcome = self.writer.rpc(function, params).execute().data or {}
        status = outcome.get("status")
        if status == "ok":
            return outcome.get("row")
        if status == "forbidden":
            # The role changed between the decision and the write
            logger.info(
                f"Denied {action.value} for user {actor_id} in group {group_id}: "
                f"role is now {outcome.get('role')}"
            )
            reason = "Membership changed before the write"
            if parse_role(outcome.get("role")) is None:
                raise NotAMember(action.value, group_id, actor_id, reason)
            raise InsufficientRole(action.value, group_id, actor_id, reason)
        if status == "stale":
            logger.warning(
                f"Stale envelope on {kind.table}/{resource_id}, {action.value} by {actor_id} not applied"
            )
            raise StaleEnvelope(kind.table, resource_id)
        raise InvariantViolation(f"{function} on {kind.table} returned unexpected status {status!r}")

    def _stamp(self, actor_id: str) -> Dict[str, Any]:
        return {"updated_by": actor_id, "updated_at": self.clock().isoformat()}

    def list_resources(
        self,
        kind: ResourceKind,
        actor_id: str,
        group_id: str,
        limit: int = 50,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        role = self._member_role(Action.READ, group_id, actor_id)
        self._authorize(Action.READ, role, group_id, actor_id)
        result = self.supabase.table(kind.table)\
            .select("*")\
            .eq("group_id", group_id)\
            .order("created_at", desc=True)\
            .limit(limit)\
            .offset(offset)\
            .execute()
        return result.data or []

    def get_resource(self, kind: ResourceKind, actor_id: str, group_id: str, resource_id: str) -> Dict[str, Any]:
        role = self._member_role(Action.READ, group_id, actor_id)
        self._authorize(Action.READ, role, group_id, actor_id)
        return self._load(kind, group_id, resource_id)

    def create_resource(
        self,
        kind: ResourceKind,
        actor_id: str,
        group_id: str,
        payload: Dict[str, Any]
    ) -> Dict[str, Any]:
        row = {k: v for k, v in payload.items() if k not in AUDIT_FIELDS}
        created_by = row.pop("created_by", actor_id)
        if row.pop("group_id", group_id) != group_id:
            raise InvariantViolation(f"{kind.table}: payload group_id does not match the target group")

        role = self._member_role(Action.CREATE, group_id, actor_id)
        self._authorize(Action.CREATE, role, group_id, actor_id, created_by=created_by)

        edit_mode = row.pop("edit_mode", None) or DEFAULT_EDIT_MODE
        row.update({
            "group_id": group_id,
            "created_by": actor_id,
            "edit_mode": EditMode(edit_mode).value,
        })
        row.update(self._stamp(actor_id))

        created = self._guarded_write(
            "guarded_insert",
            {
                "p_table": kind.table,
                "p_group_id": group_id,
                "p_actor": actor_id,
                "p_roles": permitted_roles([Action.CREATE], actor_id=actor_id, created_by=actor_id),
                "p_row": row,
            },
            Action.CREATE, kind, group_id, actor_id
        )
        if not created:
            raise InvariantViolation(f"{kind.table}: insert returned no row")
        logger.info(f"User {actor_id} created {kind.value} {created.get('id')} in group {group_id}")
        return created

    def update_resource(
        self,
        kind: ResourceKind,
        actor_id: str,
        group_id: str,
        resource_id: str,
        changes: Dict[str, Any]
    ) -> Dict[str, Any]:
        role = self._member_role(Action.UPDATE, group_id, actor_id)
        current = self._load(kind, group_id, resource_id)
        envelope = ResourceEnvelope.from_row(current)
        self._authorize(
            Action.UPDATE, role, group_id, actor_id,
            created_by=envelope.created_by, edit_mode=envelope.edit_mode
        )
        actions = [Action.UPDATE]

        update_data = {}
        for field, value in changes.items():
            if field in AUDIT_FIELDS:
                logger.debug(f"Discarding client-supplied {field} on {kind.table}/{resource_id}")
                continue
            if field in IMMUTABLE_FIELDS:
                if value != getattr(envelope, field):
                    raise InvariantViolation(f"{kind.table}.{field} cannot be changed after creation")
                continue
            update_data[field] = value

        if "edit_mode" in update_data:
            if update_data["edit_mode"] is None:
                # Null means "leave as is"; the stored mode is never cleared
                del update_data["edit_mode"]
            else:
                new_mode = EditMode(update_data["edit_mode"])
                if new_mode != envelope.effective_edit_mode:
                    self._authorize(
                        Action.CHANGE_EDIT_MODE, role, group_id, actor_id, created_by=envelope.created_by
                    )
                    actions.append(Action.CHANGE_EDIT_MODE)
                update_data["edit_mode"] = new_mode.value

        update_data.update(self._stamp(actor_id))

        return self._guarded_write(
            "guarded_update",
            {
                "p_table": kind.table,
                "p_group_id": group_id,
                "p_id": resource_id,
                "p_actor": actor_id,
                "p_roles": permitted_roles(
                    actions, actor_id=actor_id, created_by=envelope.created_by, edit_mode=envelope.edit_mode
                ),
                "p_updated_at": current.get("updated_at"),
                "p_changes": update_data,
            },
            Action.UPDATE, kind, group_id, actor_id, resource_id
        )

    def delete_resource(self, kind: ResourceKind, actor_id: str, group_id: str, resource_id: str) -> None:
        role = self._member_role(Action.DELETE, group_id, actor_id)
        current = self._load(kind, group_id, resource_id)
        envelope = ResourceEnvelope.from_row(current)
        self._authorize(Action.DELETE, role, group_id, actor_id, created_by=envelope.created_by)

        self._guarded_write(
            "guarded_delete",
            {
                "p_table": kind.table,
                "p_group_id": group_id,
                "p_id": resource_id,
                "p_actor": actor_id,
                "p_roles": permitted_roles([Action.DELETE], actor_id=actor_id, created_by=envelope.created_by),
                "p_updated_at": current.get("updated_at"),
            },
            Action.DELETE, kind, group_id, actor_id, resource_id
        )
        logger.info(f"User {actor_id} deleted {kind.value} {resource_id} in group {group_id}")
