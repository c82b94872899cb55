from fastapi import APIRouter, Depends
from familyos.modules.auth.schemas import CurrentUserResponse
from familyos.modules.auth.service import AuthService
from familyos.core.dependencies import get_current_user_id, get_auth_service
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user(
    current_user: Dict = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
):
    """Get current authenticated user and the families they belong to (for frontend UI)."""
    return {**current_user, "memberships": service.list_memberships(current_user["id"])}
