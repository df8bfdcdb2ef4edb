"""
Application Configuration
Loads and validates environment variables
"""
from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Coop Forex Request Service"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "coop_forex"

    # JWT
    SECRET_KEY: str = "change-this-access-secret-in-production"
    REFRESH_SECRET_KEY: str = "change-this-refresh-secret-in-production"
    ALGORITHM: str = "HS256"
    TOKEN_ISSUER: str = "coop-forex"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Usecase deadline
    APP_TIMEOUT_SECONDS: float = 10.0

    # Request locking
    REQUEST_LOCK_MINUTES: int = 15

    # File Upload
    MAX_UPLOAD_SIZE: int = 5242880  # 5MB
    UPLOAD_DIR: str = "./uploads"

    # Email
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_FROM: str = "forex@coopbank.local"
    DASHBOARD_URL: str = "http://localhost:3000/requests"
    MAIL_REQUEST_TO: str = ""
    MAIL_REQUEST_CC: str = ""

    # Authentication backend: "local" or "ldap"
    AUTH_BACKEND: str = "local"
    LDAP_HOST: str = "localhost"
    LDAP_PORT: int = 389
    LDAP_USE_SSL: bool = False
    LDAP_BASE_DN: str = ""
    LDAP_BIND_DN: str = ""
    LDAP_BIND_PASSWORD: str = ""
    LDAP_USER_ATTRIBUTE: str = "sAMAccountName"

    # Bootstrap account
    SUPERADMIN_USERNAME: str = "superadmin"
    SUPERADMIN_PASSWORD: str = ""

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:3001"
    CORS_ALLOW_CREDENTIALS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert CORS origins string to list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def mail_request_to_list(self) -> List[str]:
        return [address.strip() for address in self.MAIL_REQUEST_TO.split(",") if address.strip()]

    @property
    def mail_request_cc_list(self) -> List[str]:
        return [address.strip() for address in self.MAIL_REQUEST_CC.split(",") if address.strip()]

    @property
    def ldap_enabled(self) -> bool:
        return self.AUTH_BACKEND.lower() == "ldap"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
