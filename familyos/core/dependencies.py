"""
Core dependencies for route protection and authorization wiring
"""

from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from familyos.database.supabase_client import get_service_supabase, get_supabase
from familyos.core.enforcement import PolicyEnforcementPoint
from familyos.core.membership import SupabaseMembershipDirectory
from familyos.modules.auth.service import AuthService
from supabase import Client
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_membership_directory(supabase: Client = Depends(get_supabase)) -> SupabaseMembershipDirectory:
    """A fresh directory per request; roles are never cached between requests."""
    return SupabaseMembershipDirectory(supabase)


def get_enforcement_point(
    supabase: Client = Depends(get_supabase),
    service_supabase: Client = Depends(get_service_supabase),
    directory: SupabaseMembershipDirectory = Depends(get_membership_directory)
) -> PolicyEnforcementPoint:
    return PolicyEnforcementPoint(supabase, directory, writer=service_supabase)
