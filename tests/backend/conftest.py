import os
import tempfile
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

TEST_DB_URL = "sqlite://:memory:"
TEST_JWT_SECRET = "test-secret-key-for-the-suite-0123456789abcdef"

# Must be in place before app.main is imported: the module builds its app from the environment
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["JWT_SECRET"] = TEST_JWT_SECRET
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="uploads-")
os.environ.pop("ADMIN_PASSWORD", None)

from app.config import Settings  # noqa: E402
from app.core.db import build_tortoise_config  # noqa: E402
from app.core.security import TokenService  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models.user import Role, User  # noqa: E402
from app.services import AuthService, CredentialStore, UserService  # noqa: E402

DEFAULT_PASSWORD = "UserPass@123"


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=build_tortoise_config(TEST_DB_URL))
    await Tortoise.generate_schemas()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=TEST_DB_URL,
        jwt_secret=TEST_JWT_SECRET,
        upload_dir=str(tmp_path / "uploads"),
        max_upload_size=1024,
        max_upload_files=3,
    )


@pytest.fixture
def app(settings):
    return create_app(settings, init_database=False)


@pytest_asyncio.fixture
async def db():
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def client(app, db):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client


@pytest.fixture
def store() -> CredentialStore:
    return CredentialStore()


@pytest.fixture
def token_service(settings) -> TokenService:
    return TokenService(settings.jwt_secret, settings.jwt_expire_minutes)


@pytest.fixture
def user_service(store) -> UserService:
    return UserService(store)


@pytest.fixture
def auth_service(store, token_service, user_service) -> AuthService:
    return AuthService(store, token_service, user_service)


@pytest_asyncio.fixture
async def create_user(db, store):
    """
    Factory fixture creating users directly through the credential store.
    """

    async def _create_user(
        role: Role = Role.USER,
        password: str = DEFAULT_PASSWORD,
        email: str | None = None,
        is_active: bool = True,
        first_name: str = "Test",
        last_name: str = "User",
    ) -> tuple[User, str]:
        user = await store.create({
            "first_name": first_name,
            "last_name": last_name,
            "email": email or f"{uuid.uuid4().hex[:8]}@example.com",
            "password": password,
            "role": role,
            "is_active": is_active,
        })
        return user, password

    return _create_user


@pytest_asyncio.fixture
async def create_admin(create_user):
    async def _create_admin(password: str = "AdminPass@123") -> tuple[User, str]:
        return await create_user(role=Role.ADMIN, password=password, first_name="Admin")

    return _create_admin


@pytest_asyncio.fixture
async def auth_header_factory(client):
    """
    Helper fixture to obtain Authorization headers via the login endpoint.
    """

    async def _get_headers(email: str, password: str) -> dict[str, str]:
        resp = await client.post(
            "/api/v1/auth/login",
            json={"email": email, "password": password},
        )
        assert resp.status_code == 200, resp.text
        token = resp.json()["data"]["token"]
        return {"Authorization": f"Bearer {token}"}

    return _get_headers
