import os
import tempfile

# Settings are read at import time; configure them before importing the app
_TMP_ROOT = tempfile.mkdtemp(prefix="ateleslie-tests-")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-signing-key-0123456789abcdef0123456789abcdef"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_ROOT, "uploads")
os.environ["LOG_DIR"] = os.path.join(_TMP_ROOT, "logs")
os.environ["EMAIL_HOST"] = ""

from io import BytesIO

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ateleslie.database import Base, get_db
from ateleslie.main import app
from ateleslie.models.user import User, UserRole
from ateleslie.permissions import get_permission_table
from ateleslie.services import auth_service
from ateleslie.services.images import ImageService, get_image_service
from ateleslie.services.newsletter_service import get_newsletter_scheduler

STRONG_PASSWORD = "Str0ng!Passw0rd"


class RecordingScheduler:
    """Collects schedule requests instead of queueing Celery tasks."""

    def __init__(self):
        self.scheduled = []

    def schedule(self, newsletter_id, eta):
        self.scheduled.append((newsletter_id, eta))


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def image_service(tmp_path):
    service = ImageService(
        root_dir=str(tmp_path / "uploads"),
        thumbnail_sizes={"small": 100, "medium": 300, "large": 600},
        max_bytes=10 * 1024 * 1024,
        allowed_formats=["jpeg", "png", "webp"],
        max_dimension=5000,
    )
    service.ensure_directories()
    return service


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
async def client(session_factory, image_service, scheduler):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_service] = lambda: image_service
    app.dependency_overrides[get_newsletter_scheduler] = lambda: scheduler

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_user(db, username, email, password=STRONG_PASSWORD, role=UserRole.USER, **fields):
    user = User(
        username=username,
        email=email,
        hashed_password=auth_service.get_password_hash(password),
        **fields,
    )
    auth_service.assign_role(user, role, get_permission_table())
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def fetch_fresh(db, statement):
    """Load one row, overwriting instances the session already holds."""
    result = await db.execute(statement.execution_options(populate_existing=True))
    return result.scalar_one()


def auth_headers(user):
    return {"Authorization": f"Bearer {auth_service.create_session_token(user)}"}


@pytest.fixture
async def admin(db):
    return await create_user(db, "admin", "admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
async def member(db):
    return await create_user(db, "member", "member@example.com")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def member_headers(member):
    return auth_headers(member)


def image_bytes(width=800, height=600, fmt="PNG", color="red"):
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, fmt)
    return buffer.getvalue()
