"""
User, Profile and Role Services
"""
import logging
from typing import List

from beanie import PydanticObjectId

from forex.config import Settings
from forex.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from forex.models.common import parse_object_id
from forex.models.user import (
    SUPERADMIN_ROLE, CurrentUser, Profile, ProfileSummary, ProfileUpdate, Role,
    RoleCreate, RoleUpdate, User, UserResponse, UserStatus, UserUpdate,
)
from forex.repositories.registry import Repositories
from forex.services.deadline import bounded

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, settings: Settings, repos: Repositories):
        self.settings = settings
        self.repos = repos

    async def _response(self, user: User, roles: dict) -> UserResponse:
        profile = await self.repos.profiles.find_by_id(user.profile_id)
        role = roles.get(user.role_id)
        return UserResponse(
            _id=user.id,
            username=user.username,
            role_id=user.role_id,
            role=role.name if role else None,
            permissions=user.permissions,
            status=user.status,
            profile=ProfileSummary.model_validate(profile.to_document()) if profile else None,
            created_at=user.created_at,
        )

    @bounded
    async def list_users(self) -> List[UserResponse]:
        roles = {role.id: role for role in await self.repos.roles.find_all()}
        return [await self._response(user, roles) for user in await self.repos.users.find_all()]

    @bounded
    async def get_user(self, user_id: PydanticObjectId) -> UserResponse:
        user = await self.repos.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("user not found")
        roles = {role.id: role for role in await self.repos.roles.find_all()}
        return await self._response(user, roles)

    @bounded
    async def update_user(self, user_id: PydanticObjectId, payload: UserUpdate,
                          current: CurrentUser) -> UserResponse:
        """Administrative edit; the superadmin account and role are off limits"""
        user = await self.repos.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("user not found")
        current_role = await self.repos.roles.find_by_id(user.role_id)
        if current_role is not None and current_role.name.lower() == SUPERADMIN_ROLE:
            raise PermissionDeniedError("the superadmin account cannot be modified")

        values = {}
        if payload.role_id is not None:
            role = await self.repos.roles.find_by_id(parse_object_id(payload.role_id, "role ID"))
            if role is None:
                raise NotFoundError("role not found")
            if role.name.lower() == SUPERADMIN_ROLE:
                raise PermissionDeniedError("the superadmin role cannot be assigned")
            values["role_id"] = role.id
        if payload.status is not None:
            values["status"] = UserStatus(payload.status).value
        if payload.permissions is not None:
            values["permissions"] = sorted(set(payload.permissions))

        if values:
            await self.repos.users.update(user.id, values, current.user_id)
            logger.info("User %s updated by %s: %s", user.username, current.user_id, ", ".join(sorted(values)))
        roles = {role.id: role for role in await self.repos.roles.find_all()}
        return await self._response(await self.repos.users.find_by_id(user.id), roles)

    async def _own_profile(self, profile_id: PydanticObjectId, current: CurrentUser) -> Profile:
        user = await self.repos.users.find_by_id(current.user_id)
        if user is None or user.profile_id != profile_id:
            raise PermissionDeniedError("unauthorized user")
        profile = await self.repos.profiles.find_by_id(profile_id)
        if profile is None:
            raise NotFoundError("profile not found")
        return profile

    @bounded
    async def get_profile(self, profile_id: PydanticObjectId, current: CurrentUser) -> Profile:
        """A user may only read their own profile"""
        return await self._own_profile(profile_id, current)

    @bounded
    async def update_profile(self, profile_id: PydanticObjectId, payload: ProfileUpdate,
                             current: CurrentUser) -> Profile:
        await self._own_profile(profile_id, current)
        values = payload.model_dump(exclude_unset=True)
        if values:
            await self.repos.profiles.update(profile_id, values, current.user_id)
        return await self.repos.profiles.find_by_id(profile_id)


class RoleService:
    def __init__(self, settings: Settings, repos: Repositories):
        self.settings = settings
        self.repos = repos

    async def _check_name(self, name: str, role_id=None) -> str:
        name = name.strip()
        if not name:
            raise ValidationError("role name is required")
        if name.lower() == SUPERADMIN_ROLE:
            raise PermissionDeniedError("the superadmin role is reserved")
        existing = await self.repos.roles.find_by_name(name)
        if existing is not None and existing.id != role_id:
            raise ConflictError(f"role {name} already exists")
        return name

    @bounded
    async def create_role(self, payload: RoleCreate, current: CurrentUser) -> Role:
        name = await self._check_name(payload.name)
        role = await self.repos.roles.create(Role(
            name=name,
            permissions=sorted(set(payload.permissions)),
            created_by=current.user_id,
        ))
        logger.info("Role %s created by %s", name, current.user_id)
        return role

    @bounded
    async def list_roles(self) -> List[Role]:
        return [role for role in await self.repos.roles.find_all() if role.name != SUPERADMIN_ROLE]

    @bounded
    async def list_deleted_roles(self) -> List[Role]:
        return await self.repos.roles.find_deleted()

    async def _editable(self, role_id: PydanticObjectId) -> Role:
        role = await self.repos.roles.find_by_id(role_id)
        if role is None:
            raise NotFoundError("role not found")
        if role.name.lower() == SUPERADMIN_ROLE:
            raise PermissionDeniedError("the superadmin role is reserved")
        return role

    @bounded
    async def update_role(self, role_id: PydanticObjectId, payload: RoleUpdate, current: CurrentUser) -> Role:
        role = await self._editable(role_id)
        values = {}
        if payload.name is not None:
            values["name"] = await self._check_name(payload.name, role.id)
        if payload.permissions is not None:
            values["permissions"] = sorted(set(payload.permissions))
        if values:
            await self.repos.roles.update(role.id, values, current.user_id)
        return await self.repos.roles.find_by_id(role.id)

    @bounded
    async def delete_role(self, role_id: PydanticObjectId, current: CurrentUser):
        role = await self._editable(role_id)
        if await self.repos.users.find({"role_id": role.id}):
            raise ConflictError(f"role {role.name} is still assigned to users")
        await self.repos.roles.delete(role.id, current.user_id)
