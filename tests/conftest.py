import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from thatsgoodtoo.core.config import settings
from thatsgoodtoo.db.session import get_session
from thatsgoodtoo.main import app
from thatsgoodtoo.models import UserRole
from tests.factories import make_user, make_vendor


@pytest.fixture(autouse=True)
def mail_disabled(monkeypatch):
    """Tests never talk to an SMTP server."""
    monkeypatch.setattr(settings, "MAIL_ENABLED", False)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    """Test client whose requests use the in-memory database."""
    def get_test_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_test_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def vendor(session):
    return make_vendor(session, "bakery@example.com")


@pytest.fixture
def other_vendor(session):
    return make_vendor(session, "florist@example.com")


@pytest.fixture
def shopper(session):
    return make_user(session, "sam@example.com")


@pytest.fixture
def admin(session):
    return make_user(session, "admin@example.com", roles=[UserRole.ADMIN.value])
