import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_REDIS"] = "false"
os.environ["DEBUG"] = "false"
os.environ["LOG_FILE"] = ""
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from workorbit.main import app
from workorbit.core.database import Base, get_db
from workorbit.core.security import create_access_token, create_refresh_token
from workorbit.auth.schemas import AdminRegistration, StaffRegistration
from workorbit.auth.service import AuthService
from workorbit.core.enums import RequestedRole
from workorbit.hierarchy.service import HierarchyService

PASSWORD = "Secret123"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite needs to leave transaction control to SQLAlchemy for SAVEPOINT to work
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeRedis:
    """In-memory stand-in for the handful of list commands the queue uses."""

    def __init__(self):
        self.lists = {}

    def ping(self):
        return True

    def rpush(self, key, value):
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])

    def lpop(self, key):
        items = self.lists.get(key)
        if not items:
            return None
        return items.pop(0)

    def llen(self, key):
        return len(self.lists.get(key, []))


class Factory:
    """Builds organizations and users through the real services."""

    def __init__(self, db):
        self.db = db
        self._counter = 0

    def _email(self, prefix):
        self._counter += 1
        return f"{prefix}{self._counter}@example.com"

    def admin(self, organization_name="Acme Corp", email=None, name="Alice Admin"):
        return AuthService(self.db).register_admin(AdminRegistration(
            email=email or self._email("admin"),
            password=PASSWORD,
            name=name,
            organization_name=organization_name
        ))

    def staff_request(self, role, org_code=None, hr_code=None, email=None, name=None):
        user, join_request, _ = AuthService(self.db).register_staff(StaffRegistration(
            email=email or self._email(RequestedRole(role).value),
            password=PASSWORD,
            name=name or f"{RequestedRole(role).value.title()} User",
            role=role,
            requested_org_code=org_code,
            requested_hr_code=hr_code
        ))
        return user, join_request

    def hr(self, admin, organization, name="Harriet HR"):
        """Register an HR manager and have ``admin`` approve them."""
        user, join_request = self.staff_request(RequestedRole.HR, org_code=organization.org_code, name=name)
        HierarchyService(self.db).approve(join_request.id, admin)
        return user

    def staff(self, hr_user, role=RequestedRole.EMPLOYEE, name=None):
        """Register a manager/employee under ``hr_user`` and approve them."""
        user, join_request = self.staff_request(role, hr_code=hr_user.hr_code, name=name)
        HierarchyService(self.db).approve(join_request.id, hr_user)
        return user


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def auth_headers():
    def build(user):
        token = create_access_token(data={"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture
def refresh_token_for():
    def build(user):
        return create_refresh_token(data={"sub": str(user.id)})

    return build
