import os
import tempfile

# Config reads the environment at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUDIT_LOG_FILE"] = os.path.join(tempfile.mkdtemp(), "audit.log")
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_PUBLISHABLE_KEY"] = ""
os.environ["FIREBASE_ADMIN_KEY_JSON"] = ""
os.environ["FMCSA_API_KEY"] = ""
os.environ["FMCSA_USE_MOCK"] = "false"
os.environ["TAX_YEAR"] = "2025"

import pytest

from hvut.app import create_app
from hvut.models import Base, engine, init_database


def make_vin(n):
    return f"1HGCM82633A{n:06d}"


@pytest.fixture
def vin():
    return make_vin


@pytest.fixture
def database():
    init_database()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def app(database):
    app = create_app()
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def fake_firebase(monkeypatch):
    """Tokens are the user's uid; 'bad-token' is rejected"""
    def verify_id_token(token):
        if token == "bad-token":
            raise ValueError("Token has expired")
        return {"uid": token, "email": f"{token}@example.com"}

    monkeypatch.setattr("hvut.utils.auth_decorators.auth.verify_id_token", verify_id_token)


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer user-1"}
