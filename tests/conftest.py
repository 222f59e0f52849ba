import pytest
from fastapi.testclient import TestClient

from lockbox.auth_utils import CredentialService, Identity
from lockbox.config import Settings
from lockbox.database import init_db, make_engine, make_session_factory
from lockbox.main import create_app

PASSWORD = "correct horse battery staple"
CLIENT_SALT = "c2FsdC1mb3ItcGJrZGY="


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-secret-with-at-least-32-bytes!!",
        bcrypt_rounds=4,
        rate_limit_login_per_minute=5,
        rate_limit_join_per_minute=5,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def register(client):
    """Register an account over HTTP; returns (auth headers, user id)."""
    def _register(email, password=PASSWORD, salt=CLIENT_SALT):
        r = client.post("/api/auth/register", json={"email": email, "password": password, "salt": salt})
        assert r.status_code == 200, r.text
        token = r.json()["token"]
        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        return {"Authorization": f"Bearer {token}"}, me.json()["id"]
    return _register


# --- service-level fixtures (no HTTP) ---

@pytest.fixture
def credentials(settings):
    return CredentialService(settings)


@pytest.fixture
def db(settings):
    engine = make_engine(settings.database_url)
    init_db(engine)
    session = make_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def make_user(db, credentials):
    """Create a user directly in the store; returns its Identity."""
    def _make(email):
        _, user = credentials.register(db, email, PASSWORD, CLIENT_SALT)
        return Identity(user_id=user.id, email=user.email)
    return _make
