"""
Shared fixtures: an app on in-memory SQLite, a pinned clock, a stub LLM
provider, and helpers for logging in as a user or as the admin.
"""
from datetime import datetime

import pytest
from sqlalchemy.pool import StaticPool

from app import create_app
from config import Config
from models import db
from models.user import User
from security.errors import AnalysisUnavailable
from security.password import hash_password
from utils import clock

T0 = datetime(2026, 3, 2, 9, 30, 0)

ADMIN_PASSWORD = "admin-secret-pw"
USER_EMAIL = "trader@example.com"
USER_PASSWORD = "correct-horse-battery"
USER_IP = "203.0.113.10"
ADMIN_IP = "10.0.0.1"


class AppTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }
    ADMIN_PASSWORD = ADMIN_PASSWORD
    BCRYPT_ROUNDS = 4
    ANALYSIS_CACHE_SECONDS = 0
    LLM_PROVIDER = "openai"
    LLM_API_KEY = "test-key"
    LOG_LEVEL = "WARNING"


class StubProvider:
    """Stands in for the LLM: records prompts, returns canned JSON or fails."""

    def __init__(self):
        self.prompts = []
        self.response = '{"trend": "bullish", "confidence": 72, "sentiment": "Strong momentum."}'
        self.fail = False

    def __call__(self, prompt):
        self.prompts.append(prompt)
        if self.fail:
            raise AnalysisUnavailable()
        return self.response


@pytest.fixture(autouse=True)
def frozen_clock():
    clock.freeze(T0)
    yield clock
    clock.unfreeze()


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
def app(provider):
    app = create_app(AppTestConfig)
    app.config["ANALYSIS_PROVIDER"] = provider
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    c = app.test_client()
    resp = admin_login(c)
    assert resp.status_code == 200
    return c


def make_user(email=USER_EMAIL, password=USER_PASSWORD, disabled=False) -> int:
    user = User(email=email, password_hash=hash_password(password), disabled=disabled)
    db.session.add(user)
    db.session.commit()
    return user.id


@pytest.fixture
def user_id(app):
    return make_user()


def reload_user(user_id: int) -> User:
    db.session.expire_all()
    return db.session.get(User, user_id)


def login(client, email=USER_EMAIL, password=USER_PASSWORD, ip=USER_IP):
    return client.post(
        "/api/auth/login",
        json={"email": email, "password": password},
        environ_base={"REMOTE_ADDR": ip},
    )


def admin_login(client, password=ADMIN_PASSWORD, ip=ADMIN_IP):
    return client.post(
        "/api/auth/admin-login",
        json={"password": password},
        environ_base={"REMOTE_ADDR": ip},
    )


def candles(n=5):
    return [
        {"time": f"2026-02-{i + 1:02d}", "open": 10 + i, "high": 11 + i, "low": 9 + i, "close": 10.5 + i, "volume": 1000 * (i + 1)}
        for i in range(n)
    ]


def request_analysis(client, symbol="AAPL", ip=USER_IP):
    return client.post(
        "/api/analysis",
        json={"symbol": symbol, "candles": candles()},
        environ_base={"REMOTE_ADDR": ip},
    )
