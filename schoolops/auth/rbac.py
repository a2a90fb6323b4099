from fastapi import Depends, HTTPException, status

from schoolops.auth.dependencies import get_current_user
from schoolops.auth.schemas import CurrentUser
from schoolops.core.enums import UserRole


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Require ADMIN role. Used for session management, promotion execution and fee writes."""
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only an administrator can perform this action",
        )
    return current_user


def require_role(*roles: UserRole):
    """
    Dependency factory to enforce that the caller has one of the given roles.

    Example:
        Depends(require_role(UserRole.ADMIN, UserRole.TEACHER))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _checker
