"""Shared fixtures: an in-memory SQLite store per test."""

import os

# keep the app module's engine off the local disk
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import models
from database import Base
from services.store import RecordStore


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine) -> Session:
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def store(db: Session) -> RecordStore:
    return RecordStore(db)


@pytest.fixture
def make_profile(db: Session):
    def _make(username: str, display_name: str | None = None, avatar_url: str | None = None):
        profile = models.Profile(
            username=username, display_name=display_name, avatar_url=avatar_url
        )
        db.add(profile)
        db.commit()
        return profile

    return _make
