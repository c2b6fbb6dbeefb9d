from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.enums import UserRole

# Role sets used by the routers
READ_ROLES = (UserRole.ACCOUNTANT, UserRole.CAMPUS_ADMIN, UserRole.VIEWER)
WRITE_ROLES = (UserRole.ACCOUNTANT, UserRole.CAMPUS_ADMIN)
ADMIN_ROLES = (UserRole.CAMPUS_ADMIN,)


def require_roles(*roles: UserRole):
    """
    Dependency factory to restrict an endpoint to the given roles.
    SUPER_ADMIN always passes.

    Example:
        Depends(require_roles(*WRITE_ROLES))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role == UserRole.SUPER_ADMIN:
            return current_user
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User role {current_user.role.value} is not authorized to access this route",
            )
        return current_user

    return _checker
