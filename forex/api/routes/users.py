"""
User, Profile and Role Routes
"""
from fastapi import APIRouter, Depends

from forex.api.deps import get_container, get_current_user, object_id, require_permissions
from forex.api.responses import envelope
from forex.container import Container
from forex.models.user import CurrentUser, ProfileUpdate, RoleCreate, RoleUpdate, UserUpdate

router = APIRouter()


@router.get("/users")
async def list_users(
    current_user: CurrentUser = Depends(require_permissions("user:view")),
    container: Container = Depends(get_container),
):
    return envelope("Users fetched successfully", await container.user_service.list_users())


@router.get("/users/{user_id}")
async def get_user(
    user_id: str,
    current_user: CurrentUser = Depends(require_permissions("user:view")),
    container: Container = Depends(get_container),
):
    return envelope("User fetched successfully", await container.user_service.get_user(object_id(user_id)))


@router.put("/users/{user_id}")
async def update_user(
    user_id: str,
    payload: UserUpdate,
    current_user: CurrentUser = Depends(require_permissions("user:update")),
    container: Container = Depends(get_container),
):
    user = await container.user_service.update_user(object_id(user_id), payload, current_user)
    return envelope("User updated successfully", user)


@router.get("/profile/{profile_id}")
async def get_profile(
    profile_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    profile = await container.user_service.get_profile(object_id(profile_id), current_user)
    return envelope("Profile fetched successfully", profile)


@router.put("/profile/{profile_id}")
async def update_profile(
    profile_id: str,
    payload: ProfileUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    profile = await container.user_service.update_profile(object_id(profile_id), payload, current_user)
    return envelope("Profile updated successfully", profile)


@router.post("/role", status_code=201)
async def create_role(
    payload: RoleCreate,
    current_user: CurrentUser = Depends(require_permissions("role:add")),
    container: Container = Depends(get_container),
):
    return envelope("Role created successfully", await container.role_service.create_role(payload, current_user))


@router.get("/roles")
async def list_roles(
    current_user: CurrentUser = Depends(require_permissions("role:view")),
    container: Container = Depends(get_container),
):
    return envelope("Roles fetched successfully", await container.role_service.list_roles())


@router.get("/roles/deleted")
async def list_deleted_roles(
    current_user: CurrentUser = Depends(require_permissions("role:view")),
    container: Container = Depends(get_container),
):
    return envelope("Deleted roles fetched successfully", await container.role_service.list_deleted_roles())


@router.put("/role/{role_id}")
async def update_role(
    role_id: str,
    payload: RoleUpdate,
    current_user: CurrentUser = Depends(require_permissions("role:update")),
    container: Container = Depends(get_container),
):
    role = await container.role_service.update_role(object_id(role_id), payload, current_user)
    return envelope("Role updated successfully", role)


@router.patch("/role/{role_id}")
async def delete_role(
    role_id: str,
    current_user: CurrentUser = Depends(require_permissions("role:delete")),
    container: Container = Depends(get_container),
):
    await container.role_service.delete_role(object_id(role_id), current_user)
    return envelope("Role deleted successfully")
