# backend/tests/conftest.py
"""
Shared fixtures.

Every test runs against a temporary SQLite file database; tables are
emptied after each test. The payment gateway is always faked.
"""

import os
from pathlib import Path
import tempfile

_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="lessonbook-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DB_DIR / 'app.db'}")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.pop("STRIPE_DISABLED", None)

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from lessonbook.api.dependencies.auth import get_settings  # noqa: E402
from lessonbook.api.dependencies.database import get_db  # noqa: E402
from lessonbook.api.dependencies.services import get_payment_gateway  # noqa: E402
from lessonbook.core.config import Settings  # noqa: E402
from lessonbook.core.enums import RoleName  # noqa: E402
from lessonbook.database import Base, build_engine  # noqa: E402
from lessonbook.main import app  # noqa: E402
import lessonbook.models  # noqa: E402,F401
from lessonbook.models.user import User  # noqa: E402
from lessonbook.principal import CurrentUser, RequestContext  # noqa: E402
from lessonbook.services.availability_query_service import AvailabilityQueryService  # noqa: E402
from lessonbook.services.availability_service import AvailabilityService  # noqa: E402
from lessonbook.services.booking_service import BookingService  # noqa: E402
from lessonbook.services.offer_service import OfferService  # noqa: E402

from tests.utils.builders import auth_headers_for, make_user  # noqa: E402
from tests.utils.fakes import FakePaymentGateway  # noqa: E402


@pytest.fixture(scope="session")
def test_engine(tmp_path_factory):
    db_path = tmp_path_factory.mktemp("db") / "lessonbook_test.db"
    engine = build_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Independent sessions for tests that need two concurrent actors."""
    return sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine, expire_on_commit=False
    )


@pytest.fixture
def db(session_factory, test_engine):
    """
    Create a new database session for each test.

    All rows are deleted afterwards, in reverse dependency order.
    """
    session = session_factory()
    yield session
    session.rollback()
    session.close()

    with test_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        payment_disabled=False,
        public_base_url="http://frontend.test",
        availability_horizon_days=92,
    )


@pytest.fixture
def payment_disabled_settings(test_settings: Settings) -> Settings:
    return test_settings.model_copy(update={"payment_disabled": True})


@pytest.fixture
def fake_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def teacher(db: Session) -> User:
    return make_user(db, email="teacher@example.com", role=RoleName.TEACHER, name="Test Teacher")


@pytest.fixture
def other_teacher(db: Session) -> User:
    return make_user(db, email="teacher.two@example.com", role=RoleName.TEACHER)


@pytest.fixture
def student(db: Session) -> User:
    return make_user(db, email="student@example.com", role=RoleName.STUDENT, name="Test Student")


@pytest.fixture
def other_student(db: Session) -> User:
    return make_user(db, email="student.two@example.com", role=RoleName.STUDENT)


@pytest.fixture
def student_ctx(student: User, test_settings: Settings) -> RequestContext:
    return RequestContext(user=CurrentUser(id=student.id, email=student.email), settings=test_settings)


@pytest.fixture
def other_student_ctx(other_student: User, test_settings: Settings) -> RequestContext:
    return RequestContext(
        user=CurrentUser(id=other_student.id, email=other_student.email), settings=test_settings
    )


@pytest.fixture
def booking_service(db: Session, fake_gateway: FakePaymentGateway) -> BookingService:
    return BookingService(db, payment_gateway=fake_gateway)


@pytest.fixture
def availability_service(db: Session) -> AvailabilityService:
    return AvailabilityService(db, horizon_days=14)


@pytest.fixture
def query_service(db: Session) -> AvailabilityQueryService:
    return AvailabilityQueryService(db, default_timezone="Europe/Berlin")


@pytest.fixture
def offer_service(db: Session) -> OfferService:
    return OfferService(db)


@pytest.fixture
def client(db: Session, test_settings: Settings, fake_gateway: FakePaymentGateway):
    """Create a test client bound to the test session, settings and fake gateway."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_payment_gateway] = lambda: fake_gateway

    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture
def auth_headers_teacher(teacher: User) -> dict:
    return auth_headers_for(teacher)


@pytest.fixture
def auth_headers_student(student: User) -> dict:
    return auth_headers_for(student)


@pytest.fixture
def auth_headers_other_student(other_student: User) -> dict:
    return auth_headers_for(other_student)
