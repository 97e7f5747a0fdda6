'''
Pytest configuration for the FastAPI application.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE before any code is imported.
2. A fresh SQLite database file per test, seeded through the factories.
3. Providing a FastAPI TestClient for endpoint testing.
4. Providing instances of all service classes, bound to a test db session.
'''
import os

# --- Test settings must be in place before the app is imported ---
os.environ["TEST_MODE"] = "True"
os.environ["AUTO_CREATE_TABLES"] = "True"
os.environ.setdefault("SECRET_KEY", "etuition-test-secret-key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")

import pytest
from pathlib import Path
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

# --- FastAPI & Testing Imports ---
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session

# --- Constant Imports ----
from tests.constants import (
    TEST_STUDENT_EMAIL,
    TEST_OTHER_STUDENT_EMAIL,
    TEST_TUTOR_EMAIL,
    TEST_OTHER_TUTOR_EMAIL,
    TEST_ADMIN_EMAIL,
    TEST_TUITION_ID,
    TEST_APPLICATION_ID,
    TEST_RIVAL_APPLICATION_ID,
)
from tests.database import factories

# --- Application Imports ---
from etuition_backend.main import app
from etuition_backend.common.config import settings
from etuition_backend.database import models as db_models
from etuition_backend.database.db_enums import TuitionStatus
from etuition_backend.models.payment import CheckoutSessionCreated, CheckoutSessionInfo
from etuition_backend.services.user_service import UserService
from etuition_backend.services.auth_service import LoginService
from etuition_backend.services.tutor_service import TutorService
from etuition_backend.services.tuition_service import TuitionService
from etuition_backend.services.application_service import ApplicationService
from etuition_backend.services.payment_gateway import PaymentGateway, get_payment_gateway
from etuition_backend.services.payment_service import PaymentService
from etuition_backend.services.review_service import ReviewService


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio' (aiosqlite has no trio support).
    2. Promotes the scope to 'session' (solves 'ScopeMismatch').
    """
    return "asyncio"


# --- 1. Database Fixtures ---

@pytest.fixture(scope="function")
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "etuition_test.db"


@pytest.fixture(scope="function")
def seed_session(db_path: Path):
    """
    A synchronous session on the test database file, used by the factories.
    Creates the schema first.
    """
    engine = create_engine(f"sqlite:///{db_path}")
    db_models.Base.metadata.create_all(engine)
    session = Session(engine, expire_on_commit=False)
    factories.test_db_session = session
    yield session
    factories.test_db_session = None
    session.close()
    engine.dispose()


@pytest.fixture(scope="function")
async def async_session_factory(db_path: Path, seed_session: Session) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory on the same database file, for service-level tests."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(async_session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """
    Provides a single database session for service-level tests.
    Nothing is committed unless the test does so itself.
    """
    session = async_session_factory()
    try:
        yield session
    finally:
        await session.rollback()
        await session.close()


# --- 2. Payment Gateway Mock ---

@pytest.fixture(scope="function")
def mock_payment_gateway() -> PaymentGateway:
    """Provides a mock PaymentGateway; tests set `retrieve_session.return_value`."""
    mock_gateway = MagicMock(spec=PaymentGateway)
    mock_gateway.create_session = AsyncMock(return_value=CheckoutSessionCreated(
        url="https://checkout.stripe.com/c/pay/cs_test_a1B2c3D4",
        session_id="cs_test_a1B2c3D4"
    ))
    mock_gateway.retrieve_session = AsyncMock(return_value=CheckoutSessionInfo(
        session_id="cs_test_a1B2c3D4",
        payment_status="unpaid"
    ))
    return mock_gateway


# --- 3. API Client ---

@pytest.fixture(scope="function")
def client(db_path: Path, seed_session: Session, mock_payment_gateway: PaymentGateway) -> TestClient:
    """
    Runs the app's lifespan against this test's database file,
    with the payment gateway replaced by the mock.
    """
    assert settings.TEST_MODE is True, \
        "TEST_MODE was not set to True! Check your .env file or environment."
    settings.DATABASE_URL_TEST = f"sqlite+aiosqlite:///{db_path}"

    app.dependency_overrides[get_payment_gateway] = lambda: mock_payment_gateway

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# --- 4. SERVICE FIXTURES ---

@pytest.fixture(scope="function")
def user_service(db_session: AsyncSession) -> UserService:
    return UserService(db=db_session)

@pytest.fixture(scope="function")
def login_service(user_service: UserService) -> LoginService:
    return LoginService(user_service=user_service)

@pytest.fixture(scope="function")
def tutor_service(db_session: AsyncSession) -> TutorService:
    return TutorService(db=db_session)

@pytest.fixture(scope="function")
def tuition_service(db_session: AsyncSession) -> TuitionService:
    return TuitionService(db=db_session)

@pytest.fixture(scope="function")
def application_service(db_session: AsyncSession, tuition_service: TuitionService) -> ApplicationService:
    return ApplicationService(db=db_session, tuition_service=tuition_service)

@pytest.fixture(scope="function")
def payment_service(
    db_session: AsyncSession,
    application_service: ApplicationService,
    tuition_service: TuitionService,
    mock_payment_gateway: PaymentGateway
) -> PaymentService:
    return PaymentService(
        db=db_session,
        application_service=application_service,
        tuition_service=tuition_service,
        gateway=mock_payment_gateway
    )

@pytest.fixture(scope="function")
def review_service(db_session: AsyncSession, tutor_service: TutorService) -> ReviewService:
    return ReviewService(db=db_session, tutor_service=tutor_service)


# --- 5. DATA FIXTURES ---
# Seeded through the factories and committed, so both the service sessions
# and the app see them.

@pytest.fixture(scope="function")
def test_student(seed_session: Session) -> db_models.Users:
    return factories.StudentUserFactory(email=TEST_STUDENT_EMAIL, name="Test Student")

@pytest.fixture(scope="function")
def test_other_student(seed_session: Session) -> db_models.Users:
    return factories.StudentUserFactory(email=TEST_OTHER_STUDENT_EMAIL, name="Other Student")

@pytest.fixture(scope="function")
def test_tutor_user(seed_session: Session) -> db_models.Users:
    return factories.TutorUserFactory(email=TEST_TUTOR_EMAIL, name="Test Tutor")

@pytest.fixture(scope="function")
def test_other_tutor_user(seed_session: Session) -> db_models.Users:
    return factories.TutorUserFactory(email=TEST_OTHER_TUTOR_EMAIL, name="Rival Tutor")

@pytest.fixture(scope="function")
def test_admin(seed_session: Session) -> db_models.Users:
    return factories.AdminUserFactory(email=TEST_ADMIN_EMAIL, name="Test Admin")

@pytest.fixture(scope="function")
def test_tutor_profile(test_tutor_user: db_models.Users) -> db_models.Tutors:
    return factories.TutorFactory(email=test_tutor_user.email, name=test_tutor_user.name)

@pytest.fixture(scope="function")
def test_tuition(test_student: db_models.Users) -> db_models.Tuitions:
    """An active tuition owned by the test student."""
    return factories.TuitionFactory(
        id=TEST_TUITION_ID,
        student_email=test_student.email,
        status=TuitionStatus.ACTIVE.value,
    )

@pytest.fixture(scope="function")
def test_application(test_tuition: db_models.Tuitions, test_tutor_user: db_models.Users) -> db_models.Applications:
    """A pending application of the test tutor on the test tuition."""
    return factories.ApplicationFactory(
        id=TEST_APPLICATION_ID,
        tuition_id=test_tuition.id,
        tutor_email=test_tutor_user.email,
        tutor_name=test_tutor_user.name,
    )

@pytest.fixture(scope="function")
def test_rival_application(test_tuition: db_models.Tuitions, test_other_tutor_user: db_models.Users) -> db_models.Applications:
    """A second pending application on the same tuition, from another tutor."""
    return factories.ApplicationFactory(
        id=TEST_RIVAL_APPLICATION_ID,
        tuition_id=test_tuition.id,
        tutor_email=test_other_tutor_user.email,
        tutor_name=test_other_tutor_user.name,
    )

