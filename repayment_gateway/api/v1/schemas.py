"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from typing import List


class LoanCreateRequest(BaseModel):
    """Request body for POST /v1/loans"""

    user_id: str = Field(..., min_length=1, description="Account holder identifier")
    amount: int = Field(..., gt=0, description="Principal in minor currency units")
    currency_code: str = Field(..., min_length=3, max_length=3, description="ISO-4217 currency code")
    terms: int = Field(..., gt=0, description="Number of monthly installments")
    processed_at: date = Field(..., description="Date the loan originates")


class RepaymentCreateRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/repayments"""

    user_id: str = Field(..., min_length=1, description="Account holder identifier")
    amount: int = Field(..., gt=0, description="Payment in minor currency units")
    currency_code: str = Field(..., min_length=3, max_length=3, description="ISO-4217 currency code")
    received_at: date = Field(..., description="Date the payment was received")


class InstallmentSchema(BaseModel):
    """Single scheduled installment of a loan"""

    id: str
    sequence: int
    due_date: date
    amount: int
    outstanding_amount: int
    currency_code: str
    status: str


class LoanResponse(BaseModel):
    """Loan with its repayment schedule"""

    loan_id: str
    user_id: str
    amount: int
    currency_code: str
    terms: int
    processed_at: date
    outstanding_amount: int
    status: str
    installments: List[InstallmentSchema]


class LoanListResponse(BaseModel):
    """Response for GET /v1/loans"""

    user_id: str
    loans: List[LoanResponse]


class RepaymentSchema(BaseModel):
    """Received repayment audit record"""

    repayment_id: str
    loan_id: str
    amount: int
    currency_code: str
    received_at: date


class RepaymentResponse(BaseModel):
    """Response for POST /v1/loans/{loan_id}/repayments"""

    repayment: RepaymentSchema
    loan: LoanResponse
    unallocated: int


class RepaymentHistoryResponse(BaseModel):
    """Response for GET /v1/loans/{loan_id}/repayments"""

    loan_id: str
    repayments: List[RepaymentSchema]
