"""Pytest fixtures for testing"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from realty_gateway.api.main import create_app
from realty_gateway.api.dependencies import get_notification_emitter, get_proof_storage
from realty_gateway.domain.installments import generate_installment_schedule
from realty_gateway.domain.models import NotificationEvent
from realty_gateway.infrastructure.database.models import Base, Client
from realty_gateway.infrastructure.database.repositories import InstallmentRepository
from realty_gateway.infrastructure.database.session import get_db
from realty_gateway.infrastructure.storage import ProofStorage
from realty_gateway.services.notifications import NotificationEmitter


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

CLIENT_USER_ID = 100
SELLER_ID = 200


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage(tmp_path) -> ProofStorage:
    """Proof storage rooted in a per-test temp directory"""
    return ProofStorage(upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
def emitter() -> NotificationEmitter:
    """Emitter writing to the test database without backoff delays"""
    return NotificationEmitter(session_factory=TestingSessionLocal, backoff_base=0, sleep=lambda _: None)


@pytest.fixture
def sent_events() -> List[NotificationEvent]:
    """Collects notifications dispatched by the workflow"""
    return []


@pytest.fixture
def client(db: Session, storage: ProofStorage, emitter: NotificationEmitter) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_proof_storage] = lambda: storage
    app.dependency_overrides[get_notification_emitter] = lambda: emitter
    return TestClient(app)


@pytest.fixture
def make_client(db: Session) -> Callable[..., Client]:
    """
    Seed a financed client with a pending schedule.

    Defaults: 3 installments of 100.00, remaining balance 300.00,
    assigned seller 200, first due date in 10 days.
    """

    def _make(
        user_id: int = CLIENT_USER_ID,
        assigned_seller_id: int | None = SELLER_ID,
        real_estate_id: int = 1,
        installments: int = 3,
        amount: Decimal = Decimal("100.00"),
        start_date: date | None = None,
    ) -> Client:
        client = Client(
            user_id=user_id,
            assigned_seller_id=assigned_seller_id,
            real_estate_id=real_estate_id,
            total_down_payment=Decimal("0"),
            remaining_balance=amount * installments,
            contract_signed=False,
        )
        db.add(client)
        db.flush()

        scheduled = generate_installment_schedule(
            installments,
            amount,
            start_date=start_date or date.today() + timedelta(days=10),
        )
        InstallmentRepository(db).create_schedule(client.id, scheduled)
        db.commit()
        return client

    return _make


@pytest.fixture
def auth_headers() -> Callable[[int, str], Dict[str, str]]:
    """Headers the upstream auth gateway forwards for a user"""

    def _headers(user_id: int, role: str) -> Dict[str, str]:
        return {"X-User-ID": str(user_id), "X-User-Role": role}

    return _headers
