"""
Identity Repositories
"""
from datetime import datetime
from typing import Optional

from forex.models.user import Profile, Role, TokenBlacklist, User
from forex.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    collection = "users"
    model = User

    async def find_by_username(self, username: str) -> Optional[User]:
        return await self.find_one({"username": username})


class ProfileRepository(BaseRepository[Profile]):
    collection = "profiles"
    model = Profile


class RoleRepository(BaseRepository[Role]):
    collection = "roles"
    model = Role

    async def find_by_name(self, name: str) -> Optional[Role]:
        """Case-insensitive name lookup among non-deleted roles"""
        wanted = name.strip().lower()
        for role in await self.find_all():
            if role.name.lower() == wanted:
                return role
        return None


class TokenBlacklistRepository(BaseRepository[TokenBlacklist]):
    collection = "token_blacklist"
    model = TokenBlacklist

    async def is_blacklisted(self, token: str, now: Optional[datetime] = None) -> bool:
        now = now or datetime.utcnow()
        for entry in await self.find({"token": token}):
            if entry.expires_at > now:
                return True
        return False
