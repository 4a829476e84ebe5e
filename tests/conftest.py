"""Shared pytest fixtures."""

import asyncio
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml
from litestar.testing import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import fanview.db.models  # noqa: F401 - register all models on Base
from fanview.asgi import create_app
from fanview.auth.passwords import hash_password
from fanview.auth.tokens import create_access_token
from fanview.config import AuthConfig, DatabaseConfig, RateLimitConfig, Settings, UploadConfig
from fanview.db.base import Base
from fanview.db.models import Creator, User
from fanview.db.models.user import ROLE_ADMIN, ROLE_USER
from fanview.lib.storage import LocalUploadStore

SECRET = "test-secret"
PASSWORD = "secret123"
MAX_IMAGE_SIZE = 1024
MAX_CONTENT_SIZE = 4096


@pytest.fixture
def temp_app_yaml(tmp_path):
    """Create a temporary app.yaml file for testing."""
    config_path = tmp_path / "app.yaml"

    def _create_config(config: dict):
        with open(config_path, "w") as f:
            yaml.safe_dump(config, f)
        return config_path

    return _create_config


@pytest.fixture
def mock_config_path(temp_app_yaml):
    """Fixture that patches get_config_path to return a custom path."""
    def _mock(config: dict):
        config_path = temp_app_yaml(config)
        patcher = patch("fanview.config.get_config_path", return_value=config_path)
        return patcher.start(), patcher

    return _mock


@pytest.fixture
def fake_request():
    """Minimal mock request carrying app settings."""
    def _make(expose_error_details=False):
        request = MagicMock()
        request.method = "GET"
        request.url.path = "/test"
        request.app.state.settings = Settings(secret_key=SECRET, expose_error_details=expose_error_details)
        return request
    return _make


# ---------------------------------------------------------------------------
# Database (unit tests)
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'unit.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_creator(db_session):
    async def _make(display_name="Jane Doe", **fields):
        creator = Creator(display_name=display_name, **fields)
        db_session.add(creator)
        await db_session.commit()
        return creator
    return _make


@pytest.fixture
def store(tmp_path):
    return LocalUploadStore(tmp_path / "uploads")


# ---------------------------------------------------------------------------
# Application (integration tests)
# ---------------------------------------------------------------------------

@pytest.fixture
def upload_root(tmp_path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def app_settings(tmp_path, upload_root):
    return Settings(
        secret_key=SECRET,
        expose_error_details=True,
        db=DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}", create_all=True),
        uploads=UploadConfig(
            root=str(upload_root),
            max_image_size=MAX_IMAGE_SIZE,
            max_content_size=MAX_CONTENT_SIZE,
        ),
        auth=AuthConfig(bcrypt_rounds=4),
        rate_limit=RateLimitConfig(enabled=False),
    )


@pytest.fixture
def client(app_settings):
    with TestClient(app=create_app(app_settings)) as client:
        yield client


@pytest.fixture
def seed(app_settings, client):
    """Run ``fn(session)`` against the application database and return its result."""
    def _seed(fn):
        async def _main():
            engine = create_async_engine(app_settings.db.url)
            try:
                async with async_sessionmaker(engine, expire_on_commit=False)() as session:
                    return await fn(session)
            finally:
                await engine.dispose()

        return asyncio.run(_main())
    return _seed


def _bearer(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.email, user.role, SECRET, 3600)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a seeded user."""
    return _bearer


@pytest.fixture
def create_user(seed):
    def _create(email="fan@example.com", role=ROLE_USER, full_name="Fan Person", email_verified=True):
        async def _add(session):
            user = User(
                email=email,
                password_hash=hash_password(PASSWORD, rounds=4),
                full_name=full_name,
                role=role,
                email_verified=email_verified,
            )
            session.add(user)
            await session.commit()
            return user
        return seed(_add)
    return _create


@pytest.fixture
def admin_headers(create_user):
    return _bearer(create_user(email="admin@example.com", role=ROLE_ADMIN, full_name="Site Admin"))


@pytest.fixture
def seed_creator(seed):
    def _create(display_name="Jane Doe", **fields):
        fields.setdefault("avatar_url", "https://cdn.example.com/jane.png")

        async def _add(session):
            creator = Creator(display_name=display_name, **fields)
            session.add(creator)
            await session.commit()
            return creator
        return seed(_add)
    return _create
