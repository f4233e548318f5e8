import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import powcap.main as main_module
from powcap.database import Base
from powcap.main import app
from powcap.middleware.rate_limit import limiter
from powcap.services.cap import Cap, get_cap
from powcap.services.sql_storage_service import SqlChallengeStorage, SqlTokenStorage
from powcap.services.storage_service import StorageHooks, memory_storage


@pytest.fixture
def db_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
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
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def storage():
    """In-process challenge and token stores."""
    return memory_storage()


@pytest.fixture
def sql_storage(session_factory):
    """Challenge and token stores backed by the test database."""
    return StorageHooks(
        challenges=SqlChallengeStorage(session_factory),
        tokens=SqlTokenStorage(session_factory),
    )


@pytest.fixture
def client(db_engine, sql_storage):
    """Create a test client with the test database and disabled rate limiting."""
    cap = Cap(sql_storage)
    app.dependency_overrides[get_cap] = lambda: cap

    limiter.enabled = False

    # check_database_tables() inspects main_module.engine at startup
    original_engine = main_module.engine
    main_module.engine = db_engine

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True
    main_module.engine = original_engine
