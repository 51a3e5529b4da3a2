import os

# Settings are read once at import time
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["LOG_FILE"] = os.devnull

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from core.storage import storage
from db import models
from db.session import Base, build_engine, get_db


@pytest_asyncio.fixture
async def engine():
    engine = build_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def clear_storage():
    storage.files.clear()
    yield
    storage.files.clear()


@pytest_asyncio.fixture
async def seed(db):
    """Reference rows every test can point at. Returns their ids by name."""
    admin = models.Role(role_name="admin")
    db.add(admin)
    await db.flush()

    officer = models.User(role_id=admin.role_id, username="officer", email="officer@example.org")
    reviewer = models.User(role_id=admin.role_id, username="reviewer", email="reviewer@example.org")
    male = models.Gender(gender_name="Male")
    female = models.Gender(gender_name="Female")
    ablekuma = models.Community(community_name="Ablekuma")
    osu = models.Community(community_name="Osu")
    physical = models.DisabilityCategory(category_name="Physical")
    sensory = models.DisabilityCategory(category_name="Sensory")
    wheelchair = models.AssistanceType(assistance_type_name="Wheelchair")
    grant = models.AssistanceType(assistance_type_name="Education grant")
    db.add_all([officer, reviewer, male, female, ablekuma, osu, physical, sensory, wheelchair, grant])
    await db.flush()

    amputation = models.DisabilityType(category_id=physical.category_id, type_name="Amputation")
    visual = models.DisabilityType(category_id=sensory.category_id, type_name="Visual impairment")
    db.add_all([amputation, visual])
    await db.commit()

    return {
        "role": admin.role_id,
        "officer": officer.user_id,
        "reviewer": reviewer.user_id,
        "male": male.gender_id,
        "female": female.gender_id,
        "ablekuma": ablekuma.community_id,
        "osu": osu.community_id,
        "physical": physical.category_id,
        "sensory": sensory.category_id,
        "amputation": amputation.type_id,
        "visual": visual.type_id,
        "wheelchair": wheelchair.assistance_type_id,
        "grant": grant.assistance_type_id,
    }


@pytest.fixture
def beneficiary_fields(seed):
    """Minimal valid PWD record fields; keyword overrides win."""
    def _make(**overrides):
        fields = {
            "user_id": seed["officer"],
            "quarter": "Q2",
            "year": 2024,
            "gender_id": seed["female"],
            "full_name": "Ama Mensah",
            "disability_category_id": seed["physical"],
            "disability_type_id": seed["amputation"],
            "community_id": seed["ablekuma"],
        }
        fields.update(overrides)
        return fields
    return _make


@pytest_asyncio.fixture
async def client(session_factory):
    from main import app

    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http
    app.dependency_overrides.clear()
