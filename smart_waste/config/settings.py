from typing import List, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    ENVIRONMENT: str = "development"
    NAME: str = "Smart Waste Management API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    """Pydantic v2 doesn't support parsing List[str] from a plain comma-separated string by default anymore."""
    ALLOWED_HOSTS: Union[str, List[str]] = "http://localhost:3000,http://127.0.0.1:3000"
    LOG_LEVEL: str = "info"
    FRONTEND_URL: str = "http://localhost:3000"

    # Database
    DATABASE_URL: str = "sqlite:///./smart_waste.db"

    # Authentication & Security
    JWT_SECRET_KEY: str = "<your-jwt-secret-key>"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30
    RESET_TOKEN_EXPIRE_MINUTES: int = 10

    # Bootstrap admin, created at startup when both are set
    ADMIN_NAME: str = "Administrator"
    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD: str = ""

    # Waste tracking
    STRICT_TRACKING_TRANSITIONS: bool = False

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    @field_validator("ALLOWED_HOSTS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if not v:
            return []
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
