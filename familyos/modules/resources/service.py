from typing import Any, Dict, List

from familyos.core.enforcement import PolicyEnforcementPoint
from familyos.core.envelope import ResourceKind


class ResourceService:
    """CRUD for one governed resource kind; every call goes through the enforcement point."""

    def __init__(self, kind: ResourceKind, enforcement: PolicyEnforcementPoint):
        self.kind = kind
        self.enforcement = enforcement

    def list(self, actor_id: str, group_id: str, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        return self.enforcement.list_resources(self.kind, actor_id, group_id, limit=limit, offset=offset)

    def get(self, actor_id: str, group_id: str, resource_id: str) -> Dict[str, Any]:
        return self.enforcement.get_resource(self.kind, actor_id, group_id, resource_id)

    def create(self, actor_id: str, group_id: str, data) -> Dict[str, Any]:
        payload = data.model_dump(mode="json", exclude_none=True)
        if self.kind == ResourceKind.DOCUMENT:
            payload["uploaded_by"] = actor_id
        return self.enforcement.create_resource(self.kind, actor_id, group_id, payload)

    def update(self, actor_id: str, group_id: str, resource_id: str, data) -> Dict[str, Any]:
        changes = data.model_dump(mode="json", exclude_unset=True)
        return self.enforcement.update_resource(self.kind, actor_id, group_id, resource_id, changes)

    def delete(self, actor_id: str, group_id: str, resource_id: str) -> None:
        self.enforcement.delete_resource(self.kind, actor_id, group_id, resource_id)
