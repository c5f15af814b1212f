"""Pytest fixtures for testing"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from datetime import date
from typing import Callable, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from repayment_gateway.api.main import create_app
from repayment_gateway.domain.models import InstallmentState, InstallmentStatus
from repayment_gateway.infrastructure.database.models import Base
from repayment_gateway.infrastructure.database.session import get_db
from repayment_gateway.infrastructure.database.unit_of_work import UnitOfWork
from repayment_gateway.utils.date_utils import add_months


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


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
def uow(db: Session) -> UnitOfWork:
    """Unit of work bound to the test session"""
    return UnitOfWork(db)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def make_installments() -> Callable[..., List[InstallmentState]]:
    """Build monthly installment snapshots from a list of amounts"""

    def _make(amounts: List[int], first_due: date = date(2024, 1, 1)) -> List[InstallmentState]:
        return [
            InstallmentState(
                id=f"inst-{i + 1}",
                sequence=i + 1,
                due_date=add_months(first_due, i),
                amount=amount,
                outstanding_amount=amount,
                status=InstallmentStatus.DUE,
            )
            for i, amount in enumerate(amounts)
        ]

    return _make
