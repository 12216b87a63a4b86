import pytest
from pydantic import ValidationError

from localmarket.core.config import Settings
from localmarket.schemas.common import PaginationMeta

STRONG_SECRET = "k" * 40


def test_list_settings_accept_csv_and_json():
    cfg = Settings(
        secret_key="dev",
        database_url="sqlite://",
        cors_origins="https://market.example.com, https://admin.example.com,",
        bootstrap_admin_emails='["Ops@Example.com", " "]',
    )
    assert cfg.cors_origins == ["https://market.example.com", "https://admin.example.com"]
    assert cfg.bootstrap_admin_emails == ["ops@example.com"]


def test_blank_optional_strings_become_none():
    cfg = Settings(secret_key="dev", database_url="sqlite://", smtp_host="   ", locationiq_api_key="")
    assert cfg.smtp_host is None
    assert cfg.locationiq_api_key is None


def test_production_rejects_placeholder_secret():
    with pytest.raises(ValidationError, match="SECRET_KEY"):
        Settings(env="production", secret_key="change_me", database_url="sqlite://", cors_origins="https://a.example.com")


def test_production_requires_locationiq_key():
    with pytest.raises(ValidationError, match="LOCATIONIQ_API_KEY"):
        Settings(
            env="prod",
            secret_key=STRONG_SECRET,
            database_url="sqlite://",
            cors_origins="https://a.example.com",
            geocoding_provider="locationiq",
            smtp_use_starttls=True,
            smtp_use_ssl=False,
        )


def test_production_accepts_strong_settings():
    cfg = Settings(
        env="production",
        secret_key=STRONG_SECRET,
        database_url="sqlite://",
        cors_origins="https://a.example.com",
    )
    assert cfg.is_production


def test_pagination_meta_for_page():
    assert PaginationMeta.for_page(total=5, limit=2, offset=2, count=2).has_next is True
    assert PaginationMeta.for_page(total=4, limit=2, offset=2, count=2).has_next is False
