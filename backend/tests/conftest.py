"""Shared pytest fixtures.

Provides:
- A SQLite file database per test (tables created from the models)
- A session factory and TransactionCoordinator bound to it
- A moto-backed S3 bucket, storage adapter and BlobRelocator
- Users for every role
- FastAPI TestClients authenticated as a given user

Usage:
    def test_admin_endpoint(client_for, admin_user):
        client = client_for(admin_user)
        response = client.get("/v1/customer-leads")
        assert response.status_code == 200
"""

import os

# Settings are read once and cached, so the environment must be in place
# before anything from buildtrack is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("S3_ENDPOINT_URL", "")
os.environ.setdefault("S3_ACCESS_KEY_ID", "testing")
os.environ.setdefault("S3_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("S3_BUCKET_NAME", "test-buildtrack-bucket")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

from typing import Callable, Generator
from uuid import uuid4

import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from buildtrack.auth.jwt import create_access_token
from buildtrack.database import get_db, get_session_factory
from buildtrack.domain.workflow.relocation import BlobRelocator
from buildtrack.domain.workflow.transaction import TransactionCoordinator
from buildtrack.infrastructure.storage.s3_storage_adapter import S3StorageAdapter
from buildtrack.models import Base, CustomerLead, Project, Requirement, User
from buildtrack.realtime.registry import ConnectionRegistry

TEST_BUCKET = "test-buildtrack-bucket"
TEST_REGION = "us-east-1"


@pytest.fixture(scope="function")
def engine(tmp_path):
    """Fresh SQLite file database with all tables created."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'buildtrack-test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Session for arranging data and asserting results.

    Writes made by the code under test go through other sessions; call
    ``db_session.expire_all()`` before reading them back.
    """
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def coordinator(session_factory) -> TransactionCoordinator:
    return TransactionCoordinator(session_factory)


@pytest.fixture(scope="function")
def s3_client():
    """Mocked S3 with the test bucket created."""
    with mock_aws():
        client = boto3.client("s3", region_name=TEST_REGION)
        client.create_bucket(Bucket=TEST_BUCKET)
        yield client


@pytest.fixture(scope="function")
def storage(s3_client) -> S3StorageAdapter:
    return S3StorageAdapter(
        endpoint_url=None,
        access_key="testing",
        secret_key="testing",
        bucket_name=TEST_BUCKET,
        region=TEST_REGION,
    )


@pytest.fixture(scope="function")
def relocator(storage) -> BlobRelocator:
    return BlobRelocator(storage)


@pytest.fixture(scope="function")
def put_object(s3_client) -> Callable[[str, bytes], str]:
    """Upload bytes to the mocked bucket and return the key."""

    def put(key: str, body: bytes = b"test content") -> str:
        s3_client.put_object(Bucket=TEST_BUCKET, Key=key, Body=body)
        return key

    return put


@pytest.fixture(scope="function")
def object_keys(s3_client) -> Callable[[str], set]:
    """Set of keys currently stored under a prefix."""

    def keys(prefix: str = "") -> set:
        response = s3_client.list_objects_v2(Bucket=TEST_BUCKET, Prefix=prefix)
        return {obj["Key"] for obj in response.get("Contents", [])}

    return keys


@pytest.fixture(scope="function")
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


def create_user(db: Session, role: str, name: str = None, email: str = None) -> User:
    user = User(
        email=email or f"{role}-{uuid4().hex[:8]}@test.com",
        name=name or f"{role.title()} User",
        role=role,
        status="ACTIVE",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def admin_user(db_session) -> User:
    return create_user(db_session, "admin", name="Admin User", email="admin@test.com")


@pytest.fixture(scope="function")
def sales_admin_user(db_session) -> User:
    return create_user(db_session, "sales-admin", name="Sales Admin", email="sales@test.com")


@pytest.fixture(scope="function")
def site_engineer(db_session) -> User:
    return create_user(db_session, "site-engineer", name="Site Engineer", email="engineer@test.com")


@pytest.fixture(scope="function")
def architect_user(db_session) -> User:
    return create_user(db_session, "architect", name="Architect", email="architect@test.com")


@pytest.fixture(scope="function")
def procurement_user(db_session) -> User:
    return create_user(db_session, "procurement", name="Procurement", email="procurement@test.com")


@pytest.fixture(scope="function")
def customer_user(db_session) -> User:
    return create_user(db_session, "customer", name="Customer", email="customer@test.com")


def auth_headers(user: User) -> dict:
    token = create_access_token(user_id=user.id, role=user.role, email=user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def app(session_factory, storage, registry):
    """The FastAPI app wired to the test database, mocked S3 and an isolated registry.

    The lifespan is not run; app.state is populated here instead.
    """
    from buildtrack.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.state.storage = storage
    app.state.registry = registry

    yield app

    app.dependency_overrides.clear()
    del app.state.storage
    del app.state.registry


@pytest.fixture(scope="function")
def client(app) -> TestClient:
    """Unauthenticated test client."""
    return TestClient(app)


@pytest.fixture(scope="function")
def client_for(app) -> Callable[[User], TestClient]:
    """Build a test client authenticated as `user`."""

    def make(user: User) -> TestClient:
        client = TestClient(app)
        client.headers.update(auth_headers(user))
        return client

    return make


@pytest.fixture(scope="function")
def lead(db_session, sales_admin_user, customer_user):
    """A lead for `customer_user` with one requirement holding some site data."""
    lead = CustomerLead(
        lead_source="website",
        customer_name="Asha Rao",
        mobile_number="9876543210",
        email=customer_user.email,
        city="Pune",
        customer_id=customer_user.id,
        created_by_id=sales_admin_user.id,
    )
    lead.requirements.append(Requirement(
        requirement_type="residential",
        description="Two storey house",
        scp_data={"plotArea": 1200, "roomCount": 3},
    ))
    db_session.add(lead)
    db_session.commit()
    db_session.refresh(lead)
    return lead


@pytest.fixture(scope="function")
def requirement(lead):
    return lead.requirements[0]


@pytest.fixture(scope="function")
def project(db_session, lead, requirement, architect_user, admin_user):
    """A project for the lead's requirement with `architect_user` assigned."""
    project = Project(
        project_name="Rao Residence",
        project_code=f"PROJ-{uuid4().hex[:10]}",
        lead_id=lead.id,
        requirement_id=requirement.id,
        architect_id=architect_user.id,
        created_by_id=admin_user.id,
    )
    db_session.add(project)
    db_session.flush()
    requirement.project_id = project.id
    db_session.commit()
    db_session.refresh(project)
    return project


class RecordingConnection:
    """Stands in for a WebSocket registered with the connection registry."""

    def __init__(self):
        self.sent = []
        self.closed = False

    async def send_json(self, data):
        self.sent.append(data)

    async def close(self):
        self.closed = True

    def events(self):
        return [frame["event"] for frame in self.sent]


@pytest.fixture(scope="function")
def connect_user(registry) -> Callable[..., RecordingConnection]:
    """Register a recording connection for a user, optionally joined to a project room."""

    def connect(user: User, project_id=None) -> RecordingConnection:
        connection = RecordingConnection()
        registry.connect(user.id, connection)
        if project_id is not None:
            registry.join(connection, project_id)
        return connection

    return connect


@pytest.fixture(scope="function")
def make_user(db_session) -> Callable[..., User]:
    """Create an extra user with the given role."""

    def make(role: str, **kwargs) -> User:
        return create_user(db_session, role, **kwargs)

    return make
