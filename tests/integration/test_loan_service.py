"""Integration tests for loan creation and repayment allocation against the database"""

import uuid
import pytest
from datetime import date
from unittest.mock import patch
from prometheus_client import REGISTRY
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from repayment_gateway.domain.exceptions import (
    InvalidAmountError,
    InvalidTermsError,
    LoanNotFoundError,
    TransactionFailure,
)
from repayment_gateway.infrastructure.database.models import Loan, ReceivedRepayment, ScheduledInstallment
from repayment_gateway.infrastructure.database.repositories import LoanRepository, RepaymentRepository
from repayment_gateway.infrastructure.database.unit_of_work import UnitOfWork
from repayment_gateway.services.loans import allocate_repayment, create_loan, record_repayment


def _loan(uow: UnitOfWork, principal: int, terms: int, start: date = date(2023, 12, 1)) -> Loan:
    return create_loan(uow, owner_id="user_1", principal=principal, currency="SGD", term_count=terms, start_date=start)


def test_create_loan_persists_schedule(uow: UnitOfWork, db: Session):
    """Test loan and installments are stored together"""
    loan = _loan(uow, 1000, 3, start=date(2024, 1, 1))

    stored = db.query(Loan).one()
    assert stored.id == loan.id
    assert stored.principal == 1000
    assert stored.outstanding_amount == 1000
    assert stored.status == "due"
    assert stored.term_count == 3
    assert stored.processed_at == date(2024, 1, 1)

    installments = db.query(ScheduledInstallment).order_by(ScheduledInstallment.sequence).all()
    assert [inst.amount for inst in installments] == [333, 333, 334]
    assert [inst.due_date for inst in installments] == [date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1)]
    assert all(inst.status == "due" for inst in installments)
    assert all(inst.outstanding_amount == inst.amount for inst in installments)
    assert all(inst.currency_code == "SGD" for inst in installments)


def test_create_loan_invalid_terms_writes_nothing(uow: UnitOfWork, db: Session):
    with pytest.raises(InvalidTermsError):
        _loan(uow, 1000, 0)

    with pytest.raises(InvalidAmountError):
        _loan(uow, 0, 3)

    assert db.query(Loan).count() == 0
    assert db.query(ScheduledInstallment).count() == 0


def test_create_loan_storage_failure_rolls_back(uow: UnitOfWork, db: Session):
    """Test a failing flush leaves neither loan nor installments behind"""
    error = OperationalError("INSERT INTO loan", {}, Exception("disk I/O error"))

    with patch.object(Session, "flush", side_effect=error):
        with pytest.raises(TransactionFailure):
            _loan(uow, 1000, 3)

    assert db.query(Loan).count() == 0
    assert db.query(ScheduledInstallment).count() == 0


def test_full_settlement(uow: UnitOfWork, db: Session):
    """Test 9000 over 3 terms settled by three payments of 3000"""
    loan = _loan(uow, 9000, 3, start=date(2024, 1, 1))

    first = allocate_repayment(uow, loan, 3000, "SGD", date(2024, 2, 1))
    assert first.loan.outstanding_amount == 6000
    assert first.loan.status == "due"

    allocate_repayment(uow, loan, 3000, "SGD", date(2024, 3, 1))
    result = allocate_repayment(uow, loan, 3000, "SGD", date(2024, 4, 1))

    assert result.loan.status == "repaid"
    assert result.loan.outstanding_amount == 0
    assert all(inst.status == "repaid" for inst in result.installments)
    assert all(inst.outstanding_amount == 0 for inst in result.installments)
    assert db.query(ReceivedRepayment).count() == 3


def test_fifo_allocation(uow: UnitOfWork):
    """Test 150 against installments of 100 due 2024-01-01 and 2024-02-01"""
    loan = _loan(uow, 200, 2)

    result = allocate_repayment(uow, loan, 150, "SGD", date(2024, 1, 15))
    first, second = result.installments

    assert first.due_date == date(2024, 1, 1)
    assert first.status == "repaid"
    assert first.outstanding_amount == 0
    assert second.due_date == date(2024, 2, 1)
    assert second.status == "partial"
    assert second.outstanding_amount == 50
    assert result.loan.outstanding_amount == 50
    assert result.loan.status == "due"


def test_residual_snap_repays_loan(uow: UnitOfWork):
    """Test a leftover balance of 1 is snapped to 0 and the loan becomes repaid"""
    loan = _loan(uow, 201, 2)  # 100 due 2024-01-01, 101 due 2024-02-01

    result = allocate_repayment(uow, loan, 200, "SGD", date(2024, 1, 1))

    # 201 - (100 due by cutoff + 100 partial) = 1, snapped to 0
    assert result.loan.outstanding_amount == 0
    assert result.loan.status == "repaid"
    assert result.installments[1].status == "partial"


def test_surplus_absorbed_without_error(uow: UnitOfWork, db: Session):
    loan = _loan(uow, 200, 2)

    result = allocate_repayment(uow, loan, 1000, "SGD", date(2024, 3, 1))

    assert result.unallocated == 800
    assert result.loan.outstanding_amount == 0
    assert result.loan.status == "repaid"
    assert db.query(ReceivedRepayment).one().amount == 1000


def test_outstanding_never_negative(uow: UnitOfWork):
    """Test repeated and oversized payments keep the loan balance non-negative"""
    loan = _loan(uow, 1000, 4, start=date(2024, 1, 1))

    for payment, received in [
        (100, date(2024, 1, 20)),
        (400, date(2024, 2, 1)),
        (5000, date(2024, 3, 1)),
        (70, date(2024, 6, 1)),
    ]:
        result = allocate_repayment(uow, loan, payment, "SGD", received)
        assert result.loan.outstanding_amount >= 0
        for inst in result.installments:
            assert 0 <= inst.outstanding_amount <= inst.amount

    assert result.loan.outstanding_amount == 0
    assert result.loan.status == "repaid"


def test_every_call_records_one_audit_row(uow: UnitOfWork, db: Session):
    """Test one ReceivedRepayment per call, including after the loan is repaid"""
    loan = _loan(uow, 300, 3)

    for expected, amount in enumerate([50, 500, 25], start=1):
        repayment = record_repayment(uow, loan, amount, "SGD", date(2024, 4, 1))
        assert repayment.amount == amount
        assert repayment.loan_id == loan.id
        assert db.query(ReceivedRepayment).count() == expected


def test_invalid_payment_amount_records_nothing(uow: UnitOfWork, db: Session):
    loan = _loan(uow, 300, 3)

    with pytest.raises(InvalidAmountError):
        allocate_repayment(uow, loan, 0, "SGD", date(2024, 1, 1))

    assert db.query(ReceivedRepayment).count() == 0


def test_storage_failure_rolls_back_allocation(uow: UnitOfWork, db: Session):
    """Test a failure after installments are updated undoes every write"""
    loan = _loan(uow, 200, 2)
    loan_id = loan.id
    error = OperationalError("UPDATE loan", {}, Exception("database is locked"))

    with patch.object(LoanRepository, "update_balance", side_effect=error):
        with pytest.raises(TransactionFailure) as exc_info:
            allocate_repayment(uow, loan, 150, "SGD", date(2024, 1, 15))

    assert exc_info.value.__cause__ is error
    assert db.query(ReceivedRepayment).count() == 0

    stored = db.query(Loan).filter(Loan.id == loan_id).one()
    assert stored.outstanding_amount == 200
    assert stored.status == "due"
    for inst in db.query(ScheduledInstallment).all():
        assert inst.status == "due"
        assert inst.outstanding_amount == inst.amount


def test_non_storage_error_propagates_unchanged(uow: UnitOfWork, db: Session):
    """Test errors that are not storage failures roll back and surface as-is"""
    loan = _loan(uow, 200, 2)

    with patch.object(RepaymentRepository, "create_repayment", side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError):
            allocate_repayment(uow, loan, 150, "SGD", date(2024, 1, 15))

    assert db.query(ReceivedRepayment).count() == 0
    assert db.query(Loan).one().outstanding_amount == 200


def _sample(name: str, labels: dict) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_allocation_returns_after_commit_and_records_metrics(uow: UnitOfWork, db: Session):
    """Test a committed allocation returns its result and counts the repayment once"""
    loan = _loan(uow, 200, 2)
    before = _sample("repayment_gateway_repayments_total", {"currency": "SGD"})

    result = allocate_repayment(uow, loan, 150, "SGD", date(2024, 1, 15))

    assert result.repayment.amount == 150
    assert [(inst.status, inst.outstanding_amount) for inst in result.installments] == [
        ("repaid", 0),
        ("partial", 50),
    ]
    assert db.query(ReceivedRepayment).count() == 1
    assert _sample("repayment_gateway_repayments_total", {"currency": "SGD"}) == before + 1


def test_loan_lookup_failure_not_counted_as_storage_failure(uow: UnitOfWork):
    """Test only storage errors feed the transaction failure metric"""
    missing = Loan(id=uuid.uuid4())
    failure_metric = "repayment_gateway_transaction_failures_total"
    before_lookup = _sample(failure_metric, {"reason": "LoanNotFoundError"})

    with pytest.raises(LoanNotFoundError):
        allocate_repayment(uow, missing, 150, "SGD", date(2024, 1, 15))

    assert _sample(failure_metric, {"reason": "LoanNotFoundError"}) == before_lookup

    loan = _loan(uow, 200, 2)
    before_storage = _sample(failure_metric, {"reason": "OperationalError"})
    error = OperationalError("UPDATE loan", {}, Exception("database is locked"))

    with patch.object(LoanRepository, "update_balance", side_effect=error):
        with pytest.raises(TransactionFailure):
            allocate_repayment(uow, loan, 150, "SGD", date(2024, 1, 15))

    assert _sample(failure_metric, {"reason": "OperationalError"}) == before_storage + 1
