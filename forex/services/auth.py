"""
Authentication Service
Login, registration and the token lifecycle
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from beanie import PydanticObjectId
from starlette.concurrency import run_in_threadpool

from forex.config import Settings
from forex.exceptions import (
    AuthenticationError, ConflictError, NotFoundError, PermissionDeniedError, ValidationError,
)
from forex.models.common import parse_object_id, parse_optional_object_id
from forex.models.user import (
    SUPERADMIN_ROLE, CurrentUser, Profile, RegisterRequest, Role, TokenBlacklist,
    User, UserStatus,
)
from forex.repositories.registry import Repositories
from forex.services.deadline import bounded
from forex.services.ldap import LdapDirectory
from forex.services.security import TokenService, get_password_hash, merge_permissions, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, settings: Settings, repos: Repositories, tokens: TokenService,
                 directory: Optional[LdapDirectory] = None):
        self.settings = settings
        self.repos = repos
        self.tokens = tokens
        self.directory = directory

    async def _credentials_ok(self, user: User, password: str) -> bool:
        if self.directory is not None:
            return await run_in_threadpool(self.directory.authenticate, user.username, password)
        return verify_password(password, user.password)

    async def _issue_tokens(self, user: User, ip: Optional[str]) -> Dict[str, Any]:
        role = await self.repos.roles.find_by_id(user.role_id)
        if role is None:
            raise AuthenticationError("user role no longer exists")
        profile = await self.repos.profiles.find_by_id(user.profile_id)
        if profile is None:
            raise AuthenticationError("user profile not found")

        permissions = merge_permissions(role.permissions, user.permissions)
        access_token, expires_at = self.tokens.create_access_token(
            user.id, user.username, role.name, permissions,
            branch_id=profile.branch_id, department_id=profile.department_id, ip=ip,
        )
        refresh_token, _ = self.tokens.create_refresh_token(user.id)
        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": self.settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "user": {
                "_id": user.id,
                "username": user.username,
                "role": role.name,
                "permissions": permissions,
                "first_name": profile.first_name,
                "middle_name": profile.middle_name,
                "last_name": profile.last_name,
                "branch_id": profile.branch_id,
                "department_id": profile.department_id,
            },
        }

    @bounded
    async def login(self, username: str, password: str, ip: Optional[str] = None) -> Dict[str, Any]:
        """Check credentials against the local hash or the directory"""
        user = await self.repos.users.find_by_username(username.strip())
        if user is None or not await self._credentials_ok(user, password):
            logger.warning("Failed login for %s from %s", username, ip)
            raise AuthenticationError("Incorrect username or password")

        if user.status != UserStatus.ACTIVE:
            raise PermissionDeniedError("Account is inactive")

        logger.info("User %s logged in from %s", user.username, ip)
        return await self._issue_tokens(user, ip)

    @bounded
    async def register(self, payload: RegisterRequest, actor: Optional[PydanticObjectId] = None) -> User:
        """Create a profile and user; directory accounts take their names from LDAP"""
        username = payload.username.strip()
        if await self.repos.users.find_by_username(username) is not None:
            raise ConflictError("Username already registered")

        role = await self.repos.roles.find_by_id(parse_object_id(payload.role_id, "role ID"))
        if role is None:
            raise NotFoundError("role not found")
        if role.name.lower() == SUPERADMIN_ROLE:
            raise PermissionDeniedError("the superadmin role cannot be assigned")

        branch_id = parse_optional_object_id(payload.branch_id, "branch ID")
        department_id = parse_optional_object_id(payload.department_id, "department ID")
        if branch_id is None and department_id is None:
            raise ValidationError("branch_id or department_id is required")
        if branch_id is not None and not await self.repos.branches.exists(branch_id):
            raise NotFoundError("branch not found")
        if department_id is not None and not await self.repos.departments.exists(department_id):
            raise NotFoundError("department not found")

        if self.directory is not None:
            entry = await run_in_threadpool(self.directory.find_user, username)
            if entry is None:
                raise NotFoundError("user not found in the directory")
            names = {key: entry[key] for key in ("first_name", "middle_name", "last_name", "email")}
            password_hash = ""
        else:
            if not payload.password or len(payload.password) < 8:
                raise ValidationError("password must be at least 8 characters")
            if not payload.first_name or not payload.last_name or not payload.email:
                raise ValidationError("first_name, last_name and email are required")
            names = {
                "first_name": payload.first_name,
                "middle_name": payload.middle_name,
                "last_name": payload.last_name,
                "email": str(payload.email),
            }
            password_hash = get_password_hash(payload.password)

        profile = await self.repos.profiles.create(Profile(
            **names,
            phone=payload.phone,
            gender=payload.gender,
            branch_id=branch_id,
            department_id=department_id,
            created_by=actor,
        ))
        user = await self.repos.users.create(User(
            username=username,
            password=password_hash,
            role_id=role.id,
            profile_id=profile.id,
            created_by=actor,
        ))
        logger.info("Registered user %s with role %s", username, role.name)
        return user

    @bounded
    async def refresh(self, refresh_token: str, ip: Optional[str] = None) -> Dict[str, Any]:
        """Trade a refresh token for a new pair; the old one cannot be reused"""
        payload = self.tokens.decode_refresh_token(refresh_token)
        if await self.repos.token_blacklist.is_blacklisted(refresh_token):
            raise AuthenticationError("token has been revoked")

        user = await self.repos.users.find_by_id(parse_object_id(payload["sub"], "user ID"))
        if user is None or user.status != UserStatus.ACTIVE:
            raise AuthenticationError("Could not validate credentials")

        await self._revoke(refresh_token, user.id, ip, datetime.utcfromtimestamp(payload["exp"]))
        return await self._issue_tokens(user, ip)

    @bounded
    async def logout(self, user: CurrentUser, ip: Optional[str] = None):
        await self._revoke(user.token, user.user_id, ip, user.token_expires_at or datetime.utcnow())
        logger.info("User %s logged out", user.user_id)

    async def _revoke(self, token: str, user_id: PydanticObjectId, ip: Optional[str], expires_at: datetime):
        await self.repos.token_blacklist.create(TokenBlacklist(
            token=token,
            user_id=user_id,
            ip=ip,
            expires_at=expires_at,
        ))

    @bounded
    async def authenticate_token(self, token: str) -> CurrentUser:
        """Resolve a bearer token into the caller's identity"""
        payload = self.tokens.decode_access_token(token)
        if await self.repos.token_blacklist.is_blacklisted(token):
            raise AuthenticationError("token has been revoked")

        try:
            return CurrentUser(
                user_id=payload["sub"],
                username=payload.get("username"),
                role=payload.get("role") or "",
                permissions=payload.get("permissions") or [],
                branch_id=payload.get("branchID"),
                department_id=payload.get("departmentID"),
                token=token,
                token_expires_at=datetime.utcfromtimestamp(payload["exp"]),
            )
        except (KeyError, ValueError):
            raise AuthenticationError("Could not validate credentials")

    async def ensure_superadmin(self):
        """Create the bootstrap superadmin when none exists and a password is configured"""
        role = await self.repos.roles.find_by_name(SUPERADMIN_ROLE)
        if role is None:
            role = await self.repos.roles.create(Role(name=SUPERADMIN_ROLE, permissions=[]))
            logger.info("Created the %s role", SUPERADMIN_ROLE)

        if await self.repos.users.find({"role_id": role.id}):
            return
        if not self.settings.SUPERADMIN_PASSWORD:
            logger.warning("No superadmin account and SUPERADMIN_PASSWORD is empty; skipping bootstrap")
            return

        profile = await self.repos.profiles.create(Profile(
            first_name="System", last_name="Administrator", email=self.settings.EMAIL_FROM,
        ))
        await self.repos.users.create(User(
            username=self.settings.SUPERADMIN_USERNAME,
            password=get_password_hash(self.settings.SUPERADMIN_PASSWORD),
            role_id=role.id,
            profile_id=profile.id,
        ))
        logger.info("Default superadmin created (%s)", self.settings.SUPERADMIN_USERNAME)
