import json
from typing import List, Union
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PRODUCTION_ENVS = {"prod", "production"}
LOCAL_ENVS = {"dev", "development", "staging", "stage"}
WEAK_SECRETS = {"", "change_me", "secret", "dev-secret-key-change-before-prod"}


def _clean_items(items) -> List[str]:
    return [str(item).strip() for item in items if str(item).strip()]


class Settings(BaseSettings):
    app_name: str = "StockDesk Backend"
    env: str = "dev"
    api_prefix: str = "/api"

    # AUTH (tokens are issued by the identity provider, verified here)
    secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = None
    access_token_expire_minutes: int = 60
    auth_cookie_name: str = "auth_token"

    # DATABASE
    database_url: str
    db_pool_size: int = Field(default=10, ge=1, le=100)
    db_max_overflow: int = Field(default=20, ge=0, le=200)
    db_pool_timeout_seconds: int = Field(default=30, ge=1, le=300)
    db_pool_recycle_seconds: int = Field(default=1800, ge=30, le=86_400)

    # LISTINGS
    default_page_size: int = Field(default=10, ge=1, le=100)
    max_page_size: int = Field(default=100, ge=1, le=1000)
    search_result_limit: int = Field(default=10, ge=1, le=100)

    # INVENTORY
    # Overrides per-item reorder levels on /stock/low-stock when set.
    low_stock_default_threshold: int | None = Field(default=None, ge=0)

    # HTTP
    api_timeout_hint_ms: int = Field(default=30000, ge=1000, le=1_800_000)
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    cors_origin_regex: str | None = None

    @property
    def is_production(self) -> bool:
        return self.env.lower().strip() in PRODUCTION_ENVS

    @property
    def is_local(self) -> bool:
        return self.env.lower().strip() in LOCAL_ENVS

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: Union[str, List[str], None]) -> List[str]:
        """Accepts a JSON list or a comma-separated string."""
        if value is None:
            return []
        if isinstance(value, list):
            return _clean_items(value)
        if not isinstance(value, str):
            raise ValueError("CORS_ORIGINS must be a list or a string")
        text = value.strip()
        if not text.startswith("["):
            return _clean_items(text.split(","))
        parsed = json.loads(text)
        if not isinstance(parsed, list):
            raise ValueError("CORS_ORIGINS JSON value must be a list")
        return _clean_items(parsed)

    @field_validator("jwt_audience", "cors_origin_regex", mode="before")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return str(value).strip() or None

    @field_validator("api_prefix")
    @classmethod
    def normalize_api_prefix(cls, value: str) -> str:
        cleaned = value.strip().rstrip("/")
        if cleaned and not cleaned.startswith("/"):
            cleaned = f"/{cleaned}"
        return cleaned

    @model_validator(mode="after")
    def check_page_sizes(self) -> "Settings":
        if self.default_page_size > self.max_page_size:
            raise ValueError("DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE")
        return self

    @model_validator(mode="after")
    def check_production_safety(self) -> "Settings":
        if not self.is_production:
            return self
        secret = self.secret_key.strip()
        if secret in WEAK_SECRETS or len(secret) < 32:
            raise ValueError("SECRET_KEY must be a strong random value in production")
        if "*" in self.cors_origins:
            raise ValueError("CORS_ORIGINS cannot contain '*' in production")
        if self.cors_origin_regex:
            raise ValueError("CORS_ORIGIN_REGEX cannot be set in production")
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        enable_decoding=False,
    )


settings = Settings()
