import pytest
import os
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import stockdesk.models  # noqa: F401
from stockdesk.core.config import settings
from stockdesk.core.deps import get_db
from stockdesk.core.security import create_access_token
from stockdesk.db.base import Base
from stockdesk.main import app
from stockdesk.models.user import ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF, User, UserRole


def seed_user(session_local, *, email: str, role: str, is_active: bool = True) -> str:
    db = session_local()
    try:
        user = User(email=email, is_email_verified=True, created_by="seed")
        db.add(user)
        db.flush()
        db.add(
            UserRole(
                id=f"role-{user.id}",
                user_id=user.id,
                role=role,
                permissions=[],
                is_active=is_active,
                created_by="seed",
            )
        )
        db.commit()
        return user.id
    finally:
        db.close()


def bearer(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture()
def test_context():
    original_secret = settings.secret_key
    settings.secret_key = "test-secret-key"

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


@pytest.fixture()
def role_headers(test_context):
    """Bearer headers for one seeded user per role."""
    _, session_local = test_context
    return {
        ROLE_ADMIN: bearer(seed_user(session_local, email="admin@stockdesk.test", role=ROLE_ADMIN)),
        ROLE_MANAGER: bearer(seed_user(session_local, email="manager@stockdesk.test", role=ROLE_MANAGER)),
        ROLE_STAFF: bearer(seed_user(session_local, email="staff@stockdesk.test", role=ROLE_STAFF)),
    }
