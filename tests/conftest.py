import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.base import Base
from database.connection import get_db
from models import user, category, product, audit_log  # noqa: F401
from services.audit import AuditLogger, get_audit_logger
from services.auth import create_access_token
from main import app


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


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
    app.dependency_overrides[get_audit_logger] = lambda: AuditLogger(session_factory, enabled=True)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build bearer headers for an admin holding ``role``"""
    def make(role="SUPER_ADMIN", user_id="admin-1"):
        token = create_access_token({
            "sub": user_id,
            "email": f"{user_id}@marketplace.com",
            "admin_role": role
        })
        return {"Authorization": f"Bearer {token}"}
    return make
