import hashlib
import time
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, List

from familyos.core.roles import parse_role, role_label

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token).
# Only the identity is cached here, never roles: those are read from group_members on every decision.
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user = user_response.user
            user_data = {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata or {},
            }
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def list_memberships(self, user_id: str) -> List[Dict[str, Any]]:
        """Return the user's memberships with their role and its label"""
        result = self.supabase.table("group_members")\
            .select("group_id, role")\
            .eq("user_id", user_id)\
            .execute()
        memberships = []
        for row in result.data or []:
            role = parse_role(row.get("role"))
            if role is None:
                continue
            memberships.append({
                "group_id": row["group_id"],
                "role": role.value,
                "role_label": role_label(role)
            })
        return memberships


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()
