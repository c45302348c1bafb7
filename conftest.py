import pytest
from fastapi.testclient import TestClient

import auth
import crud
import models
from database import Database, create_database
from main import create_app
from settings import Settings

TEST_SETTINGS = Settings(
    jwt_secret_key="test-secret",
    bcrypt_rounds=4,  # bcrypt minimum, keeps hashing fast
    rate_limit_enabled=False,
    seed_demo_data=True,
    demo_seed=7,
    metrics_environment="local",
)

ADMIN_CREDENTIALS = {"email": "admin@jobhunt.com", "password": "admin123"}
USER_CREDENTIALS = {"email": "user@example.com", "password": "user123"}


@pytest.fixture(scope="function")
def settings() -> Settings:
    return TEST_SETTINGS


@pytest.fixture(scope="function")
def db(settings) -> Database:
    """A freshly seeded store per test."""
    return create_database(settings)


@pytest.fixture(scope="function")
def empty_db() -> Database:
    """A store with no demo data."""
    return create_database()


@pytest.fixture(scope="function")
def company(empty_db) -> models.Company:
    return crud.create_company(empty_db, "Acme", "Startup", "50+", 2015)


@pytest.fixture(scope="function")
def app(settings, db):
    return create_app(settings=settings, db=db)


@pytest.fixture(scope="function")
def test_client(app):
    """Provides a test client bound to this test's store."""
    return TestClient(app)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def user_token(db, settings) -> str:
    user = crud.get_user_by_email(db, USER_CREDENTIALS["email"])
    return auth.create_access_token(user, settings)


@pytest.fixture(scope="function")
def admin_token(db, settings) -> str:
    admin = crud.get_user_by_email(db, ADMIN_CREDENTIALS["email"])
    return auth.create_access_token(admin, settings)
