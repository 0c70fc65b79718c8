"""Shared fixtures: file-backed SQLite databases and seeded tenants."""

import os
import uuid
from contextlib import asynccontextmanager

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./facetstudio-test.db")
os.environ.setdefault("FUNCTIONS_ANON_KEY", "test-anon-key")

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from facetstudio.core.config import settings
from facetstudio.models import (
    Base,
    Category,
    Client,
    PromptTemplate,
    UserProfile,
    UserRole,
)

CLIENT_ID = uuid.UUID("00000000-0000-0000-0000-00000000c001")
OTHER_CLIENT_ID = uuid.UUID("00000000-0000-0000-0000-00000000c002")
SUPER_ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-00000000a001")
CLIENT_ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-00000000a002")
CLIENT_USER_ID = uuid.UUID("00000000-0000-0000-0000-00000000a003")
ORPHAN_USER_ID = uuid.UUID("00000000-0000-0000-0000-00000000a004")

CATEGORY_PATHS = [
    "Marine > Safety > Life Jackets",
    "Marine > Safety > Flares",
    "Marine > Electronics > GPS",
    "Marine > Electronics > Radios > Handheld",
    "Outdoor > Camping > Tents",
]

PROMPTS = [
    ("Industry Analysis", "Analyze the {{Category_Name}} industry."),
    ("Industry Keywords", "List keywords for {{Category_Path}}."),
    ("Master Prompt", "OUTPUT FORMAT: table\nRecommend filters for {{Category_Name}}."),
    ("Geography", "Regional notes for {{Category_Name}}."),
]


def category_id(path: str) -> uuid.UUID:
    return uuid.uuid5(CLIENT_ID, path)


def prompt_id(name: str) -> uuid.UUID:
    return uuid.uuid5(uuid.NAMESPACE_DNS, name)


def make_engine(tmp_path):
    return create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)


async def seed(session_factory) -> None:
    async with session_factory() as db:
        db.add_all([
            Client(id=CLIENT_ID, name="Acme Marine"),
            Client(id=OTHER_CLIENT_ID, name="Other Co"),
        ])
        await db.flush()
        db.add_all([
            UserProfile(id=SUPER_ADMIN_ID, email="root@example.com", role=UserRole.SUPER_ADMIN),
            UserProfile(id=CLIENT_ADMIN_ID, email="admin@acme.com", role=UserRole.CLIENT_ADMIN, client_id=CLIENT_ID),
            UserProfile(id=CLIENT_USER_ID, email="user@acme.com", role=UserRole.CLIENT_USER, client_id=CLIENT_ID),
            UserProfile(id=ORPHAN_USER_ID, email="nobody@example.com", role=UserRole.CLIENT_USER),
        ])
        for path in CATEGORY_PATHS:
            segments = [s.strip() for s in path.split(">")]
            db.add(Category(
                id=category_id(path),
                client_id=CLIENT_ID,
                category_path=path,
                level=len(segments),
                name=segments[-1],
            ))
        for order, (name, template) in enumerate(PROMPTS):
            db.add(PromptTemplate(
                id=prompt_id(name),
                name=name,
                template=template,
                level=1,
                type="facet",
                execution_order=order,
            ))
        await db.commit()


@pytest.fixture
async def engine(tmp_path):
    engine = make_engine(tmp_path)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await seed(factory)
    return factory


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


def build_app(tmp_path) -> FastAPI:
    """Full API plus the functions router on a private database.

    Tables are created and seeded inside the TestClient's own event loop.
    """
    from facetstudio.api import router as api_router, functions_router
    from facetstudio.api.generation import get_functions_client
    from facetstudio.api.workspace import get_registry
    from facetstudio.core.database import get_db
    from facetstudio.services.functions_client import FunctionsClient
    from facetstudio.services.workspace import WorkspaceRegistry

    state = {}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = make_engine(tmp_path)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        await seed(factory)
        state["factory"] = factory
        state["registry"] = WorkspaceRegistry(factory)
        yield
        state["registry"].close_all()
        await engine.dispose()

    app = FastAPI(lifespan=lifespan)
    app.include_router(api_router, prefix=settings.API_PREFIX)
    app.include_router(functions_router, prefix="/functions")

    async def override_get_db():
        async with state["factory"]() as session:
            yield session

    def override_functions_client():
        return FunctionsClient(
            base_url="http://testserver",
            anon_key=settings.FUNCTIONS_ANON_KEY,
            transport=httpx.ASGITransport(app=app),
        )

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = lambda: state["registry"]
    app.dependency_overrides[get_functions_client] = override_functions_client
    app.state.test_state = state
    return app


@pytest.fixture
def client(tmp_path):
    app = build_app(tmp_path)
    with TestClient(app) as c:
        yield c


def as_user(user_id, client_id=None):
    headers = {"X-User-Id": str(user_id)}
    if client_id is not None:
        headers["X-Client-Id"] = str(client_id)
    return headers
