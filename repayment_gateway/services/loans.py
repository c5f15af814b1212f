"""Loan origination and repayment recording - the engine's boundary operations"""

import time
import uuid
from dataclasses import dataclass
from datetime import date
from typing import List

from repayment_gateway.domain.allocation import (
    allocate_payment,
    apply_updates,
    loan_status_for,
    recompute_loan_outstanding,
    validate_payment_amount,
)
from repayment_gateway.domain.exceptions import LoanNotFoundError
from repayment_gateway.domain.models import InstallmentState, InstallmentStatus, LoanStatus
from repayment_gateway.domain.schedule import build_schedule
from repayment_gateway.infrastructure.database.models import Loan, ReceivedRepayment, ScheduledInstallment
from repayment_gateway.infrastructure.database.unit_of_work import UnitOfWork
from repayment_gateway.infrastructure.observability.logging import log_loan_created, log_repayment_allocated
from repayment_gateway.infrastructure.observability.metrics import record_loan_created, record_repayment_metrics


@dataclass
class RepaymentAllocation:
    """Outcome of allocating one received payment"""

    repayment: ReceivedRepayment
    loan: Loan
    installments: List[ScheduledInstallment]
    unallocated: int


def to_installment_state(installment: ScheduledInstallment) -> InstallmentState:
    return InstallmentState(
        id=installment.id,
        sequence=installment.sequence,
        due_date=installment.due_date,
        amount=installment.amount,
        outstanding_amount=installment.outstanding_amount,
        status=InstallmentStatus(installment.status),
    )


def create_loan(
    uow: UnitOfWork,
    owner_id: str,
    principal: int,
    currency: str,
    term_count: int,
    start_date: date,
) -> Loan:
    """
    Create a loan and its full repayment schedule atomically.

    Raises:
        InvalidTermsError: term_count <= 0
        InvalidAmountError: principal <= 0
        TransactionFailure: storage rejected the writes, nothing was created
    """
    start_time = time.time()

    drafts = build_schedule(principal, term_count, currency, start_date)

    with uow:
        loan = uow.loans.create_loan(
            owner_id=owner_id,
            principal=principal,
            currency=currency,
            term_count=term_count,
            processed_at=start_date,
            installments=drafts,
        )

    duration_ms = (time.time() - start_time) * 1000
    record_loan_created(currency, principal)
    log_loan_created(str(loan.id), owner_id, principal, term_count, currency, duration_ms)

    return loan


def allocate_repayment(
    uow: UnitOfWork,
    loan: Loan,
    amount: int,
    currency: str,
    received_at: date,
) -> RepaymentAllocation:
    """
    Record a received payment and spread it over the loan's open installments.

    Flow (single transaction):
    1. Lock the loan row so concurrent payments on it serialize
    2. Record the ReceivedRepayment audit row, unconditionally
    3. Walk open installments oldest-first and apply the update batch
    4. Recompute the loan's outstanding amount and status

    Currency and ownership are trusted; the caller checks them.

    Raises:
        InvalidAmountError: amount <= 0
        LoanNotFoundError: loan row disappeared before it could be locked
        TransactionFailure: storage error, every mutation rolled back
    """
    validate_payment_amount(amount)
    start_time = time.time()

    with uow:
        locked_loan = uow.loans.lock_loan(loan.id)
        if locked_loan is None:
            raise LoanNotFoundError(f"Loan {loan.id} not found")

        repayment = uow.repayments.create_repayment(
            loan_id=locked_loan.id,
            amount=amount,
            currency=currency,
            received_at=received_at,
        )

        installments = uow.loans.get_installments(locked_loan.id)
        states = [to_installment_state(inst) for inst in installments]

        plan = allocate_payment(states, amount)
        uow.loans.apply_installment_updates(installments, plan.updates)

        new_outstanding = recompute_loan_outstanding(
            locked_loan.outstanding_amount,
            apply_updates(states, plan.updates),
            received_at,
        )
        new_status = loan_status_for(new_outstanding)
        uow.loans.update_balance(locked_loan, new_outstanding, new_status)

    duration_ms = (time.time() - start_time) * 1000
    record_repayment_metrics(currency, plan.unallocated, new_status == LoanStatus.REPAID)
    log_repayment_allocated(
        loan_id=str(locked_loan.id),
        repayment_id=str(repayment.id),
        amount=amount,
        installments_touched=len(plan.updates),
        unallocated=plan.unallocated,
        outstanding_amount=new_outstanding,
        loan_status=new_status.value,
        duration_ms=duration_ms,
    )

    return RepaymentAllocation(
        repayment=repayment,
        loan=locked_loan,
        installments=installments,
        unallocated=plan.unallocated,
    )


def record_repayment(
    uow: UnitOfWork,
    loan: Loan,
    amount: int,
    currency: str,
    received_at: date,
) -> ReceivedRepayment:
    """Allocate a payment and return only its audit record"""
    return allocate_repayment(uow, loan, amount, currency, received_at).repayment


def get_loan(uow: UnitOfWork, loan_id: uuid.UUID) -> Loan:
    loan = uow.loans.get_loan_by_id(loan_id)
    if loan is None:
        raise LoanNotFoundError(f"Loan {loan_id} not found")
    return loan


def list_loans_for_owner(uow: UnitOfWork, owner_id: str, limit: int = 50) -> List[Loan]:
    return uow.loans.get_loans_by_owner(owner_id, limit=limit)


def list_repayments(uow: UnitOfWork, loan_id: uuid.UUID, limit: int = 50) -> List[ReceivedRepayment]:
    return uow.repayments.get_repayments_by_loan(loan_id, limit=limit)
