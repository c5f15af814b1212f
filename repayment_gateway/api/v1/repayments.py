"""POST/GET /v1/loans/{loan_id}/repayments - repayment recording endpoints"""

import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, Request, status

from repayment_gateway.api.v1.loans import loan_to_response, normalize_currency
from repayment_gateway.api.v1.schemas import (
    RepaymentCreateRequest,
    RepaymentResponse,
    RepaymentHistoryResponse,
    RepaymentSchema,
)
from repayment_gateway.api.dependencies import get_request_id, get_unit_of_work, parse_loan_id
from repayment_gateway.config import settings
from repayment_gateway.domain.exceptions import InvalidAmountError, LoanNotFoundError, TransactionFailure
from repayment_gateway.infrastructure.database.models import ReceivedRepayment
from repayment_gateway.infrastructure.database.unit_of_work import UnitOfWork
from repayment_gateway.services import loans as loan_service

router = APIRouter()


def repayment_to_schema(repayment: ReceivedRepayment) -> RepaymentSchema:
    return RepaymentSchema(
        repayment_id=str(repayment.id),
        loan_id=str(repayment.loan_id),
        amount=repayment.amount,
        currency_code=repayment.currency_code,
        received_at=repayment.received_at,
    )


@router.post("/loans/{loan_id}/repayments", response_model=RepaymentResponse, status_code=status.HTTP_201_CREATED)
def create_repayment(
    request_body: RepaymentCreateRequest,
    request: Request,
    loan_id: uuid.UUID = Depends(parse_loan_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Record a payment against a loan.

    Flow:
    1. Check the loan exists and belongs to the caller
    2. Check the payment currency matches the loan
    3. Allocate the payment to installments oldest-first
    4. Return the audit record with the updated loan
    """
    request_id = get_request_id(request)
    currency = normalize_currency(request_body.currency_code)

    try:
        loan = loan_service.get_loan(uow, loan_id)
    except LoanNotFoundError:
        raise HTTPException(status_code=404, detail="Loan not found")

    if loan.owner_id != request_body.user_id:
        raise HTTPException(status_code=403, detail="Loan belongs to another user")

    if loan.currency_code != currency:
        raise HTTPException(status_code=422, detail=f"Loan is denominated in {loan.currency_code}")

    try:
        allocation = loan_service.allocate_repayment(
            uow,
            loan,
            amount=request_body.amount,
            currency=currency,
            received_at=request_body.received_at,
        )
    except InvalidAmountError as e:
        logging.warning(f"Rejected repayment: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))
    except LoanNotFoundError:
        raise HTTPException(status_code=404, detail="Loan not found")
    except TransactionFailure as e:
        logging.error(f"Repayment failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")

    return RepaymentResponse(
        repayment=repayment_to_schema(allocation.repayment),
        loan=loan_to_response(allocation.loan),
        unallocated=allocation.unallocated,
    )


@router.get("/loans/{loan_id}/repayments", response_model=RepaymentHistoryResponse)
def list_repayments(
    loan_id: uuid.UUID = Depends(parse_loan_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Retrieve the repayments received for a loan"""
    try:
        loan_service.get_loan(uow, loan_id)
    except LoanNotFoundError:
        raise HTTPException(status_code=404, detail="Loan not found")

    repayments = loan_service.list_repayments(uow, loan_id, limit=settings.history_limit)
    return RepaymentHistoryResponse(
        loan_id=str(loan_id),
        repayments=[repayment_to_schema(r) for r in repayments],
    )
