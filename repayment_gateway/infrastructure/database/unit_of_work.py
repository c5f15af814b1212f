"""Scoped unit of work: commit on success, roll back everything on failure"""

import logging
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from repayment_gateway.domain.exceptions import TransactionFailure
from repayment_gateway.infrastructure.database.repositories import LoanRepository, RepaymentRepository
from repayment_gateway.infrastructure.observability.metrics import transaction_failure_counter


class UnitOfWork:
    """
    Wrap one business operation in a single database transaction.

    Usage:
        with UnitOfWork(db) as uow:
            loan = uow.loans.lock_loan(loan_id)
            ...

    Leaving the block normally commits. Any exception rolls back the loan,
    installment and repayment mutations made inside it. Storage errors are
    re-raised as TransactionFailure; nothing is retried.
    """

    def __init__(self, db: Session):
        self.db = db
        self.loans = LoanRepository(db)
        self.repayments = RepaymentRepository(db)

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            try:
                self.db.commit()
            except SQLAlchemyError as e:
                self._rollback(e)
                transaction_failure_counter.labels(reason=type(e).__name__).inc()
                raise TransactionFailure(f"Commit failed: {e}") from e
            return False

        self._rollback(exc)
        if isinstance(exc, SQLAlchemyError):
            transaction_failure_counter.labels(reason=type(exc).__name__).inc()
            raise TransactionFailure(f"Transaction aborted: {exc}") from exc
        return False

    def _rollback(self, cause: BaseException) -> None:
        self.db.rollback()
        logging.error(f"Unit of work rolled back: {cause}", extra={"step": "rollback"})
