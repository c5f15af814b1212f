"""Data access layer for loans, installments and repayments"""

import uuid
from datetime import date
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session
from repayment_gateway.infrastructure.database.models import Loan, ScheduledInstallment, ReceivedRepayment
from repayment_gateway.domain.models import InstallmentDraft, InstallmentUpdate, LoanStatus


class LoanRepository:
    """Repository for loans and their scheduled installments"""

    def __init__(self, db: Session):
        self.db = db

    def create_loan(
        self,
        owner_id: str,
        principal: int,
        currency: str,
        term_count: int,
        processed_at: date,
        installments: List[InstallmentDraft],
    ) -> Loan:
        """Persist loan with its full schedule in one flush"""
        db_loan = Loan(
            owner_id=owner_id,
            principal=principal,
            currency_code=currency,
            term_count=term_count,
            processed_at=processed_at,
            outstanding_amount=principal,
            status=LoanStatus.DUE.value,
        )
        self.db.add(db_loan)

        for draft in installments:
            db_loan.installments.append(
                ScheduledInstallment(
                    sequence=draft.sequence,
                    amount=draft.amount,
                    outstanding_amount=draft.outstanding_amount,
                    currency_code=draft.currency,
                    due_date=draft.due_date,
                    status=draft.status.value,
                )
            )

        self.db.flush()  # Get IDs without committing
        return db_loan

    def get_loan_by_id(self, loan_id: uuid.UUID) -> Optional[Loan]:
        """Fetch loan with installments"""
        return self.db.query(Loan).filter(Loan.id == loan_id).first()

    def lock_loan(self, loan_id: uuid.UUID) -> Optional[Loan]:
        """Fetch loan row with a write lock held until the transaction ends"""
        return (
            self.db.query(Loan)
            .filter(Loan.id == loan_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_loans_by_owner(self, owner_id: str, limit: int = 50) -> List[Loan]:
        """Fetch most recent loans of an account holder"""
        return (
            self.db.query(Loan)
            .filter(Loan.owner_id == owner_id)
            .order_by(Loan.processed_at.desc(), Loan.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_installments(self, loan_id: uuid.UUID) -> List[ScheduledInstallment]:
        """Fetch every installment of a loan, oldest due date first"""
        return (
            self.db.query(ScheduledInstallment)
            .filter(ScheduledInstallment.loan_id == loan_id)
            .order_by(ScheduledInstallment.due_date.asc(), ScheduledInstallment.sequence.asc())
            .populate_existing()
            .all()
        )

    def apply_installment_updates(
        self,
        installments: Iterable[ScheduledInstallment],
        updates: Iterable[InstallmentUpdate],
    ) -> None:
        """Write a batch of installment updates, flushed together"""
        by_id = {inst.id: inst for inst in installments}
        for update in updates:
            db_installment = by_id[update.id]
            db_installment.outstanding_amount = update.outstanding_amount
            db_installment.status = update.status.value

        self.db.flush()

    def update_balance(self, loan: Loan, outstanding_amount: int, status: LoanStatus) -> Loan:
        """Store recomputed aggregate outstanding amount and status"""
        loan.outstanding_amount = outstanding_amount
        loan.status = status.value
        self.db.flush()
        return loan


class RepaymentRepository:
    """Repository for received repayment audit records"""

    def __init__(self, db: Session):
        self.db = db

    def create_repayment(
        self,
        loan_id: uuid.UUID,
        amount: int,
        currency: str,
        received_at: date,
    ) -> ReceivedRepayment:
        """Persist audit record of a received payment"""
        db_repayment = ReceivedRepayment(
            loan_id=loan_id,
            amount=amount,
            currency_code=currency,
            received_at=received_at,
        )
        self.db.add(db_repayment)
        self.db.flush()
        return db_repayment

    def get_repayments_by_loan(self, loan_id: uuid.UUID, limit: int = 50) -> List[ReceivedRepayment]:
        """Fetch repayments of a loan in the order they were received"""
        return (
            self.db.query(ReceivedRepayment)
            .filter(ReceivedRepayment.loan_id == loan_id)
            .order_by(ReceivedRepayment.received_at.asc(), ReceivedRepayment.created_at.asc())
            .limit(limit)
            .all()
        )
