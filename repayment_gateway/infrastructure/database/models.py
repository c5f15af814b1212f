"""SQLAlchemy ORM models for loans, scheduled installments and received repayments"""

import uuid
from sqlalchemy import Column, String, BigInteger, DateTime, Date, Integer, ForeignKey, Text, CheckConstraint, Uuid
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class Loan(Base):
    """Loan granted to an account holder, amounts in minor currency units"""

    __tablename__ = "loan"
    __table_args__ = (
        CheckConstraint("principal > 0", name="ck_loan_principal_positive"),
        CheckConstraint("term_count >= 1", name="ck_loan_term_count_positive"),
        CheckConstraint("outstanding_amount >= 0", name="ck_loan_outstanding_non_negative"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    principal = Column(BigInteger, nullable=False)
    currency_code = Column(String(3), nullable=False)
    term_count = Column(Integer, nullable=False)
    processed_at = Column(Date, nullable=False)
    outstanding_amount = Column(BigInteger, nullable=False)
    status = Column(Text, nullable=False, default="due")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    installments = relationship(
        "ScheduledInstallment",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="[ScheduledInstallment.due_date, ScheduledInstallment.sequence]",
    )
    repayments = relationship(
        "ReceivedRepayment",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="[ReceivedRepayment.received_at, ReceivedRepayment.created_at]",
    )


class ScheduledInstallment(Base):
    """Single scheduled repayment of a loan's principal"""

    __tablename__ = "scheduled_installment"
    __table_args__ = (
        CheckConstraint("outstanding_amount >= 0", name="ck_installment_outstanding_non_negative"),
        CheckConstraint("outstanding_amount <= amount", name="ck_installment_outstanding_within_amount"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid(as_uuid=True), ForeignKey("loan.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    amount = Column(BigInteger, nullable=False)
    outstanding_amount = Column(BigInteger, nullable=False)
    currency_code = Column(String(3), nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="due")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    loan = relationship("Loan", back_populates="installments")


class ReceivedRepayment(Base):
    """Audit record of money received against a loan"""

    __tablename__ = "received_repayment"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid(as_uuid=True), ForeignKey("loan.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)
    currency_code = Column(String(3), nullable=False)
    received_at = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loan = relationship("Loan", back_populates="repayments")
