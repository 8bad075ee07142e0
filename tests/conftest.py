"""Shared fixtures. Configuration is set before any taskauth import."""

import os
import tempfile
from datetime import timedelta

import pytest

_DB_DIR = tempfile.mkdtemp(prefix="taskauth-tests-")

os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ["JWT_SECRET"] = "test-secret-0123456789abcdef0123456789abcdef"
os.environ["JWT_EXPIRES_IN"] = "1h"
os.environ["DEBUG"] = "false"
# Cheap argon2 parameters keep the suite fast
os.environ["PASSWORD_HASH_TIME_COST"] = "1"
os.environ["PASSWORD_HASH_MEMORY_COST"] = "1024"
os.environ["PASSWORD_HASH_PARALLELISM"] = "1"
os.environ["SESSION_SWEEP_INTERVAL_MINUTES"] = "0"

from fastapi.testclient import TestClient  # noqa: E402

from taskauth import models  # noqa: E402,F401
from taskauth.auth import AuthService  # noqa: E402
from taskauth.config import get_settings  # noqa: E402
from taskauth.database import Base, SessionLocal, engine  # noqa: E402
from taskauth.device import DeviceInfo  # noqa: E402
from taskauth.main import app  # noqa: E402
from taskauth.passwords import PasswordHasher  # noqa: E402
from taskauth.tokens import TokenCodec  # noqa: E402

TEST_PASSWORD = "Password123!"
CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def hasher():
    return PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def codec():
    return TokenCodec.from_settings(get_settings())


@pytest.fixture
def other_codec():
    return TokenCodec(secret="another-secret-0123456789abcdef0123456789", ttl=timedelta(hours=1))


@pytest.fixture
def auth_service(db, codec, hasher):
    return AuthService(db, codec, hasher)


@pytest.fixture
def device():
    return DeviceInfo(device="Chrome on Windows", browser="Chrome", os="Windows", ip_address="10.0.0.1")


def register(client, username="alice", email="alice@x.com", password=TEST_PASSWORD, user_agent=CHROME_WINDOWS):
    return client.post(
        "/auth/register",
        json={"username": username, "email": email, "password": password},
        headers={"User-Agent": user_agent},
    )


def login(client, email="alice@x.com", password=TEST_PASSWORD, user_agent=CHROME_WINDOWS):
    return client.post(
        "/auth/login",
        json={"email": email, "password": password},
        headers={"User-Agent": user_agent},
    )


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
