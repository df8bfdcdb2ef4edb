"""
Password hashing and JWT handling
"""
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from jose import JWTError, jwt
from passlib.context import CryptContext

from forex.config import Settings
from forex.exceptions import AuthenticationError

# Password hashing
# Note: Using pbkdf2_sha256 as primary for better compatibility across Python versions
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash password"""
    return pwd_context.hash(password)


def merge_permissions(*groups: Optional[Iterable[str]]) -> List[str]:
    """Union of permission lists, first occurrence order kept"""
    merged = []
    for group in groups:
        for permission in group or []:
            if permission not in merged:
                merged.append(permission)
    return merged


class TokenService:
    """Issues and checks access and refresh tokens"""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _encode(self, claims: Dict[str, Any], secret: str, expires_delta: timedelta) -> Tuple[str, datetime]:
        now = datetime.utcnow()
        expire = now + expires_delta
        to_encode = claims.copy()
        to_encode.update({"iss": self.settings.TOKEN_ISSUER, "iat": now, "exp": expire, "jti": uuid.uuid4().hex})
        return jwt.encode(to_encode, secret, algorithm=self.settings.ALGORITHM), expire

    def _decode(self, token: str, secret: str, token_type: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.settings.ALGORITHM],
                issuer=self.settings.TOKEN_ISSUER,
            )
        except JWTError:
            raise AuthenticationError("Could not validate credentials")
        if payload.get("type") != token_type or not payload.get("sub"):
            raise AuthenticationError("Could not validate credentials")
        return payload

    def create_access_token(self, user_id, username: str, role: str, permissions: List[str],
                            branch_id=None, department_id=None, ip: Optional[str] = None) -> Tuple[str, datetime]:
        """Create JWT access token"""
        claims = {
            "sub": str(user_id),
            "userID": str(user_id),
            "username": username,
            "role": role,
            "permissions": permissions,
            "branchID": str(branch_id) if branch_id else None,
            "departmentID": str(department_id) if department_id else None,
            "ip": ip,
            "type": "access",
        }
        return self._encode(
            claims,
            self.settings.SECRET_KEY,
            timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )

    def create_refresh_token(self, user_id) -> Tuple[str, datetime]:
        return self._encode(
            {"sub": str(user_id), "type": "refresh"},
            self.settings.REFRESH_SECRET_KEY,
            timedelta(days=self.settings.REFRESH_TOKEN_EXPIRE_DAYS),
        )

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, self.settings.SECRET_KEY, "access")

    def decode_refresh_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, self.settings.REFRESH_SECRET_KEY, "refresh")
