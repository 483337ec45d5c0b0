import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_API_TOKEN"] = "test-admin-token"
os.environ["LOYALTY_TIMEZONE"] = "Africa/Cairo"
os.environ.pop("LOYALTY_REFUND_ON_CANCEL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sevenblue_loyalty.config import get_settings

get_settings.cache_clear()

from sevenblue_loyalty.db import Base, get_db
from sevenblue_loyalty.main import app
from sevenblue_loyalty.models.reward import Reward
from sevenblue_loyalty.services import loyalty_service


ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file database, each with its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'loyalty.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    finally:
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Token": ADMIN_TOKEN}


def user_headers(user_id: str, name: str | None = None, email: str | None = None) -> dict:
    headers = {"X-User-Id": user_id}
    if name:
        headers["X-User-Name"] = name
    if email:
        headers["X-User-Email"] = email
    return headers


def make_profile(db, user_id: str, points: int = 0, name: str | None = None):
    """Committed profile holding ``points`` (credited as admin_add)."""
    profile = loyalty_service.ensure_profile(db, user_id, name or user_id.title(), f"{user_id}@example.com")
    if points:
        loyalty_service.award_points(db, user_id, points, "admin_add", "رصيد اختبار", "Test balance")
    db.commit()
    return profile


def make_reward(db, points_required: int = 100, quantity: int = 5, is_active: bool = True, **extra):
    values = {
        "name_ar": "خصم 10%",
        "name_en": "10% Off",
        "points_required": points_required,
        "quantity": quantity,
        "category": "discount",
        "is_active": is_active,
    }
    values.update(extra)
    reward = Reward(**values)
    db.add(reward)
    db.commit()
    return reward
