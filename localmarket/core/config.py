import json
from typing import Any, List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PRODUCTION_ENVS = {"prod", "production"}
PLACEHOLDER_SECRETS = {
    "",
    "change_me",
    "change_me_please_to_a_long_random_string",
    "dev-secret-key-change-before-prod",
}


def _split_list_setting(raw: Any) -> List[str]:
    """Accept a JSON array, a comma separated string or a list."""
    if raw is None:
        return []
    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith("["):
            raw = json.loads(text)
            if not isinstance(raw, list):
                raise ValueError("List settings given as JSON must be a list")
        else:
            raw = text.split(",")
    if not isinstance(raw, list):
        raise ValueError(raw)
    return [str(item).strip() for item in raw if str(item).strip()]


class Settings(BaseSettings):
    app_name: str = "LocalMarket Backend"
    env: str = "dev"
    api_timeout_hint_ms: int = Field(default=30000, ge=1000, le=1_800_000)

    # Sessions
    secret_key: str
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 14
    password_reset_expire_minutes: int = Field(default=60, ge=5, le=1440)
    auth_rate_limit_max_attempts: int = Field(default=5, ge=1)
    auth_rate_limit_window_seconds: int = Field(default=300, ge=1)
    auth_rate_limit_lock_seconds: int = Field(default=900, ge=1)
    bootstrap_admin_emails: List[str] = Field(default_factory=list)

    # Database
    database_url: str
    db_pool_size: int = Field(default=10, ge=1, le=100)
    db_max_overflow: int = Field(default=20, ge=0, le=200)
    db_pool_timeout_seconds: int = Field(default=30, ge=1, le=300)
    db_pool_recycle_seconds: int = Field(default=1800, ge=30, le=86_400)

    # Vendors, businesses and invites
    vendor_auto_approve: bool = True
    business_invite_expire_days: int = Field(default=7, ge=1, le=30)
    business_search_max_results: int = Field(default=50, ge=1, le=200)

    # Place search
    geocoding_provider: str = "stub"
    locationiq_api_key: str | None = None
    locationiq_base_url: str = "https://api.locationiq.com/v1"
    geocoding_timeout_seconds: float = Field(default=10.0, gt=0, le=60)
    geocode_rate_limit_requests: int = Field(default=30, ge=1)
    geocode_rate_limit_window_seconds: int = Field(default=60, ge=1)

    # Password reset mail
    smtp_host: str | None = None
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_sender_email: str | None = None
    smtp_reply_to_email: str | None = None
    smtp_use_starttls: bool = True
    smtp_use_ssl: bool = False
    password_reset_web_base_url: str | None = None

    # Browser clients
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])
    cors_origin_regex: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        enable_decoding=False,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: Any) -> List[str]:
        return _split_list_setting(value)

    @field_validator("bootstrap_admin_emails", mode="before")
    @classmethod
    def parse_admin_emails(cls, value: Any) -> List[str]:
        return [email.lower() for email in _split_list_setting(value)]

    @field_validator(
        "locationiq_api_key",
        "smtp_host",
        "smtp_username",
        "smtp_password",
        "smtp_sender_email",
        "smtp_reply_to_email",
        "password_reset_web_base_url",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, value: Any) -> str | None:
        if value is None:
            return None
        return str(value).strip() or None

    @property
    def is_production(self) -> bool:
        return self.env.strip().lower() in PRODUCTION_ENVS

    @model_validator(mode="after")
    def check_production_settings(self) -> "Settings":
        if not self.is_production:
            return self

        secret = self.secret_key.strip()
        if secret in PLACEHOLDER_SECRETS or len(secret) < 32:
            raise ValueError("SECRET_KEY must be a strong random value in production")
        if "*" in self.cors_origins:
            raise ValueError("CORS_ORIGINS cannot contain '*' in production")
        if self.cors_origin_regex:
            raise ValueError("CORS_ORIGIN_REGEX cannot be set in production")
        if self.smtp_use_ssl and self.smtp_use_starttls:
            raise ValueError("Set only one of SMTP_USE_SSL or SMTP_USE_STARTTLS in production")
        if self.geocoding_provider.strip().lower() == "locationiq" and not self.locationiq_api_key:
            raise ValueError("LOCATIONIQ_API_KEY is required when GEOCODING_PROVIDER=locationiq")
        return self


settings = Settings()
