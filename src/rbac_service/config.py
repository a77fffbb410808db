from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    # General App settings
    ENVIRONMENT: Environment = Field(
        Environment.DEVELOPMENT, alias="RBAC_SERVICE_ENVIRONMENT"
    )
    LOGGING_LEVEL: str = Field("INFO", alias="RBAC_SERVICE_LOGGING_LEVEL")
    ROOT_PATH: str = Field("/api/v1", alias="RBAC_SERVICE_ROOT_PATH")
    CORS_ORIGINS: List[str] = Field(["*"], alias="RBAC_SERVICE_CORS_ORIGINS")

    # Database Configuration
    DATABASE_URL: str = Field(..., alias="RBAC_SERVICE_DATABASE_URL")
    DB_POOL_SIZE: int = Field(10, alias="RBAC_SERVICE_DB_POOL_SIZE")
    DB_MAX_OVERFLOW: int = Field(20, alias="RBAC_SERVICE_DB_MAX_OVERFLOW")

    # Password hashing
    PASSWORD_HASH_ROUNDS: int = Field(
        12, ge=4, le=31, alias="RBAC_SERVICE_PASSWORD_HASH_ROUNDS"
    )

    # Relationship engine
    # When enabled, add/set membership operations reject ids that do not
    # reference an existing member entity instead of storing them as-is.
    VALIDATE_MEMBER_REFERENCES: bool = Field(
        False, alias="RBAC_SERVICE_VALIDATE_MEMBER_REFERENCES"
    )

    # Bootstrap: default permissions, roles and an optional initial admin
    BOOTSTRAP_ON_STARTUP: bool = Field(False, alias="RBAC_SERVICE_BOOTSTRAP_ON_STARTUP")
    INITIAL_ADMIN_USERNAME: str = Field(
        "admin_user", alias="RBAC_SERVICE_INITIAL_ADMIN_USERNAME"
    )
    INITIAL_ADMIN_EMAIL: Optional[str] = Field(
        None, alias="RBAC_SERVICE_INITIAL_ADMIN_EMAIL"
    )
    INITIAL_ADMIN_PASSWORD: Optional[str] = Field(
        None, alias="RBAC_SERVICE_INITIAL_ADMIN_PASSWORD"
    )

    # Pagination
    DEFAULT_PAGE_SIZE: int = Field(20, ge=1, le=100, alias="RBAC_SERVICE_DEFAULT_PAGE_SIZE")

    @field_validator("DATABASE_URL")
    def validate_database_url(cls, v: str) -> str:
        # Plain postgres URLs are upgraded to the async psycopg driver
        if v.startswith("postgres://"):
            v = "postgresql://" + v[len("postgres://") :]
        if v.startswith("postgresql://"):
            return "postgresql+psycopg://" + v[len("postgresql://") :]
        return v

    def is_production(self) -> bool:
        return self.ENVIRONMENT == Environment.PRODUCTION

    def is_development(self) -> bool:
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    def is_testing(self) -> bool:
        return self.ENVIRONMENT == Environment.TESTING

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )


# Instantiate the settings
settings = Settings()
