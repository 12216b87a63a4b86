from collections.abc import Callable

from fastapi import Depends, HTTPException, status

from localmarket.core.security_current import BusinessAccess, get_business_access, get_current_profile
from localmarket.models.profile import Profile


def require_business_roles(*allowed_roles: str) -> Callable[[BusinessAccess], BusinessAccess]:
    normalized_allowed = {role.strip().lower() for role in allowed_roles if role.strip()}
    if not normalized_allowed:
        raise ValueError("At least one allowed role is required")

    def dependency(access: BusinessAccess = Depends(get_business_access)) -> BusinessAccess:
        current_role = (access.role or "").lower()
        if current_role not in normalized_allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role for this action",
            )
        return access

    return dependency


def require_platform_admin(profile: Profile = Depends(get_current_profile)) -> Profile:
    if (profile.role or "").lower() != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Platform admin role required",
        )
    return profile
