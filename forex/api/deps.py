"""
Route Dependencies
Service lookup, bearer authentication and permission checks
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from forex.container import Container
from forex.exceptions import AuthenticationError, PermissionDeniedError
from forex.models.common import parse_object_id
from forex.models.user import CurrentUser

# OAuth2 scheme
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login", auto_error=False)


def get_container(request: Request) -> Container:
    return request.app.state.container


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    container: Container = Depends(get_container),
) -> CurrentUser:
    """Get current authenticated user"""
    if not token:
        raise AuthenticationError("Not authenticated")
    return await container.auth_service.authenticate_token(token)


def require_permissions(*permissions: str):
    """Dependency passing superadmins and callers holding any of the permissions"""

    async def checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.is_superadmin:
            return current_user
        if any(permission in current_user.permissions for permission in permissions):
            return current_user
        raise PermissionDeniedError("You do not have permission to perform this action")

    return checker


def object_id(value: str):
    """Parse a path identifier, echoing it back when malformed"""
    return parse_object_id(value, "ID")
