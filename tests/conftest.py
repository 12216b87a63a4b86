import pytest
import os
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import localmarket.models  # noqa: F401
from localmarket.core.config import settings
from localmarket.core.deps import get_db
from localmarket.core.rate_limit import geocode_rate_limiter, login_rate_limiter
from localmarket.db.base import Base
from localmarket.main import app


@pytest.fixture()
def test_context():
    original_secret = settings.secret_key
    original_auto_approve = settings.vendor_auto_approve
    original_admin_emails = list(settings.bootstrap_admin_emails)
    settings.secret_key = "test-secret-key"
    settings.vendor_auto_approve = True
    settings.bootstrap_admin_emails = ["admin@example.com"]

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client, session_local

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
    settings.secret_key = original_secret
    settings.vendor_auto_approve = original_auto_approve
    settings.bootstrap_admin_emails = original_admin_emails
    login_rate_limiter.clear()
    geocode_rate_limiter.clear()
