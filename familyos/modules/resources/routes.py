from fastapi import APIRouter, Depends
from familyos.core.dependencies import get_current_user_id, get_enforcement_point
from familyos.core.enforcement import PolicyEnforcementPoint
from familyos.core.envelope import ResourceKind
from familyos.modules.resources.schemas import RESOURCE_SCHEMAS
from familyos.modules.resources.service import ResourceService
from typing import List, Dict


def build_resource_router(kind: ResourceKind) -> APIRouter:
    """Create the CRUD router for one resource kind; all kinds share the same rules"""
    create_schema, update_schema, response_schema = RESOURCE_SCHEMAS[kind]
    router = APIRouter(prefix=f"/groups/{{group_id}}/{kind.route}", tags=[kind.route])

    def get_resource_service(
        enforcement: PolicyEnforcementPoint = Depends(get_enforcement_point)
    ) -> ResourceService:
        return ResourceService(kind, enforcement)

    @router.get("", response_model=List[response_schema])
    async def list_resources(
        group_id: str,
        limit: int = 50,
        offset: int = 0,
        current_user: Dict = Depends(get_current_user_id),
        service: ResourceService = Depends(get_resource_service)
    ):
        return service.list(current_user["id"], group_id, limit=limit, offset=offset)

    @router.get("/{resource_id}", response_model=response_schema)
    async def get_resource(
        group_id: str,
        resource_id: str,
        current_user: Dict = Depends(get_current_user_id),
        service: ResourceService = Depends(get_resource_service)
    ):
        return service.get(current_user["id"], group_id, resource_id)

    @router.post("", response_model=response_schema, status_code=201)
    async def create_resource(
        group_id: str,
        data: create_schema,
        current_user: Dict = Depends(get_current_user_id),
        service: ResourceService = Depends(get_resource_service)
    ):
        return service.create(current_user["id"], group_id, data)

    @router.patch("/{resource_id}", response_model=response_schema)
    async def update_resource(
        group_id: str,
        resource_id: str,
        data: update_schema,
        current_user: Dict = Depends(get_current_user_id),
        service: ResourceService = Depends(get_resource_service)
    ):
        return service.update(current_user["id"], group_id, resource_id, data)

    @router.delete("/{resource_id}", status_code=204)
    async def delete_resource(
        group_id: str,
        resource_id: str,
        current_user: Dict = Depends(get_current_user_id),
        service: ResourceService = Depends(get_resource_service)
    ):
        service.delete(current_user["id"], group_id, resource_id)
        return None

    return router


routers = [build_resource_router(kind) for kind in ResourceKind]
