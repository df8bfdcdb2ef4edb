"""
Identity Models
Users, their profiles and roles, plus revoked tokens
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field
from beanie import PydanticObjectId

from forex.models.common import Entity, StoredModel

SUPERADMIN_ROLE = "superadmin"


class UserStatus(str, Enum):
    """User account status"""
    ACTIVE = "active"
    INACTIVE = "inactive"


class Profile(Entity):
    """Personal and contact details; places the user in a branch or department"""
    first_name: str
    middle_name: str = ""
    last_name: str
    email: str
    birthday: Optional[datetime] = None
    short_bio: Optional[str] = None
    gender: Optional[str] = None
    phone: Optional[str] = None
    department_id: Optional[PydanticObjectId] = None
    branch_id: Optional[PydanticObjectId] = None


class Role(Entity):
    """A named permission group"""
    name: str
    permissions: List[str] = []


class User(Entity):
    """Login credentials plus role and profile references"""
    username: str
    password: str = ""  # passlib hash; empty for directory-backed accounts
    role_id: PydanticObjectId
    profile_id: PydanticObjectId
    permissions: List[str] = []
    status: UserStatus = UserStatus.ACTIVE

    class Config:
        use_enum_values = True


class TokenBlacklist(StoredModel):
    """A revoked JWT, kept until the token would have expired anyway"""
    token: str
    user_id: PydanticObjectId
    ip: Optional[str] = None
    expires_at: datetime
    created_at: datetime = Field(default_factory=datetime.utcnow)


# Request / response schemas

class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3)
    password: Optional[str] = None
    role_id: str
    first_name: Optional[str] = None
    middle_name: str = ""
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    branch_id: Optional[str] = None
    department_id: Optional[str] = None


class UserUpdate(BaseModel):
    """Administrative changes to an account"""
    role_id: Optional[str] = None
    status: Optional[UserStatus] = None
    permissions: Optional[List[str]] = None


class ProfileUpdate(BaseModel):
    birthday: Optional[datetime] = None
    short_bio: Optional[str] = None
    gender: Optional[str] = None
    phone: Optional[str] = None


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1)
    permissions: List[str] = []


class RoleUpdate(BaseModel):
    name: Optional[str] = None
    permissions: Optional[List[str]] = None


class ProfileSummary(BaseModel):
    id: PydanticObjectId = Field(alias="_id")
    first_name: str
    middle_name: str = ""
    last_name: str
    email: str
    department_id: Optional[PydanticObjectId] = None
    branch_id: Optional[PydanticObjectId] = None

    class Config:
        populate_by_name = True


class UserResponse(BaseModel):
    """User as returned by the API (never carries the password hash)"""
    id: PydanticObjectId = Field(alias="_id")
    username: str
    role_id: PydanticObjectId
    role: Optional[str] = None
    permissions: List[str] = []
    status: UserStatus
    profile: Optional[ProfileSummary] = None
    created_at: datetime

    class Config:
        populate_by_name = True


class CurrentUser(BaseModel):
    """Identity resolved from a validated access token"""
    user_id: PydanticObjectId
    username: Optional[str] = None
    role: str
    permissions: List[str] = []
    branch_id: Optional[PydanticObjectId] = None
    department_id: Optional[PydanticObjectId] = None
    token: str = ""
    token_expires_at: Optional[datetime] = None

    @property
    def is_superadmin(self) -> bool:
        return self.role == SUPERADMIN_ROLE
