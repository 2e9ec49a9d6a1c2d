# backend/app/core/settings.py
"""
ShopFloor MRP settings (pydantic-settings)

Values come from the process environment first, then the repository-root
.env file. get_settings() caches a single instance per process.
"""
import warnings
from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# backend/app/core/settings.py -> <repo>/.env
_ENV_FILE = Path(__file__).resolve().parents[3] / ".env"

_PLACEHOLDER_SECRET = "change-this-to-the-identity-provider-signing-key"


class Settings(BaseSettings):
    """Runtime configuration for the API, workers and scripts."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service
    PROJECT_NAME: str = "ShopFloor MRP"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: str = Field(default="development", description="development, staging or production")

    # Store: either a full DATABASE_URL or the DB_* parts
    DATABASE_URL: Optional[str] = Field(default=None, description="Takes precedence over DB_* parts")
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "shopfloor"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "postgres"

    # Identity provider tokens
    SECRET_KEY: str = Field(default=_PLACEHOLDER_SECRET, description="HS256 key shared with the identity provider")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30, description="Lifetime of locally minted tokens")

    # CORS; a comma-separated string is accepted
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_FILE: Optional[str] = None

    # Manufacturing workflow
    MO_INITIAL_STATUS: Literal["draft", "confirmed"] = "draft"
    CONSUME_STOCK_ON_COMPLETION: bool = Field(
        default=True, description="Book component consumption when a work order completes"
    )
    AUTO_COMPLETE_MANUFACTURING_ORDERS: bool = Field(
        default=True, description="Complete an order (and book its output) once its last work order completes"
    )

    # Dashboard
    DASHBOARD_RECENT_ORDERS_LIMIT: int = Field(default=5, ge=1, le=100)
    DASHBOARD_STOCK_ALERTS_LIMIT: int = Field(default=5, ge=1, le=100)

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def split_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("LOG_FORMAT", "MO_INITIAL_STATUS", mode="before")
    @classmethod
    def lowercase_choice(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_secret_key(self) -> "Settings":
        """The placeholder key is refused in production and warned about elsewhere."""
        if self.SECRET_KEY == _PLACEHOLDER_SECRET:
            if self.is_production:
                raise ValueError("SECRET_KEY must be set to the identity provider key in production")
            warnings.warn("Using the placeholder SECRET_KEY; tokens are not secure", UserWarning, stacklevel=2)
        return self

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
