"""
Pytest fixtures for the AddonHub API tests
"""
import itertools
import os
from datetime import timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from addonhub.core.security import create_access_token, hash_password
from addonhub.db import Base, get_db
from addonhub.main import app
from addonhub.models import Addon, User, utcnow

TEST_PASSWORD = "secret123"


@pytest.fixture(scope="session")
def password_hash():
    """bcrypt is slow on purpose, so hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


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
def make_user(db, password_hash):
    counter = itertools.count(1)

    def _make_user(username=None, email=None, role="user", avatar_url=None, bio=None):
        index = next(counter)
        user = User(
            username=username or f"creator{index}",
            email=email or f"creator{index}@example.com",
            password_hash=password_hash,
            role=role,
            avatar_url=avatar_url,
            bio=bio,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_addon(db):
    counter = itertools.count(1)
    base_time = utcnow() - timedelta(days=1)

    def _make_addon(owner, **fields):
        index = next(counter)
        images = fields.pop("images", [f"https://cdn.example.com/{index}.png"])
        values = {
            "title": f"Addon {index}",
            "description": "",
            "category": "other",
            "images": images,
            "cover_image": images[0],
            "download_links": [{"name": "Mirror", "url": f"https://files.example.com/{index}"}],
            "created_at": base_time + timedelta(minutes=index),
        }
        values.update(fields)
        addon = Addon(user_id=owner.id, **values)
        db.add(addon)
        db.commit()
        db.refresh(addon)
        return addon

    return _make_addon


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _auth_headers


@pytest.fixture
def addon_payload():
    def _addon_payload(**overrides):
        payload = {
            "title": "Modern Weapons Pack",
            "description": "Twenty new rifles and pistols",
            "category": "weapons",
            "images": ["https://x/a.png"],
            "downloadLinks": [{"name": "MediaFire", "url": "https://mediafire.com/x"}],
        }
        payload.update(overrides)
        return payload

    return _addon_payload
