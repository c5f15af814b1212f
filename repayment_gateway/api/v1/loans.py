"""POST/GET /v1/loans - loan origination and lookup endpoints"""

import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from repayment_gateway.api.v1.schemas import LoanCreateRequest, LoanResponse, LoanListResponse, InstallmentSchema
from repayment_gateway.api.dependencies import get_request_id, get_unit_of_work, parse_loan_id
from repayment_gateway.config import settings
from repayment_gateway.domain.exceptions import (
    InvalidAmountError,
    InvalidTermsError,
    LoanNotFoundError,
    TransactionFailure,
)
from repayment_gateway.infrastructure.database.models import Loan
from repayment_gateway.infrastructure.database.unit_of_work import UnitOfWork
from repayment_gateway.services import loans as loan_service

router = APIRouter()


def loan_to_response(loan: Loan) -> LoanResponse:
    return LoanResponse(
        loan_id=str(loan.id),
        user_id=loan.owner_id,
        amount=loan.principal,
        currency_code=loan.currency_code,
        terms=loan.term_count,
        processed_at=loan.processed_at,
        outstanding_amount=loan.outstanding_amount,
        status=loan.status,
        installments=[
            InstallmentSchema(
                id=str(inst.id),
                sequence=inst.sequence,
                due_date=inst.due_date,
                amount=inst.amount,
                outstanding_amount=inst.outstanding_amount,
                currency_code=inst.currency_code,
                status=inst.status,
            )
            for inst in loan.installments
        ],
    )


def normalize_currency(currency_code: str) -> str:
    """Upper-case the code and reject currencies the service does not lend in"""
    code = currency_code.upper()
    if code not in settings.supported_currencies:
        raise HTTPException(status_code=422, detail=f"Unsupported currency: {currency_code}")
    return code


@router.post("/loans", response_model=LoanResponse, status_code=status.HTTP_201_CREATED)
def create_loan(
    request_body: LoanCreateRequest,
    request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Create a loan and its monthly repayment schedule.

    The principal is split evenly across the terms; the last installment
    absorbs the rounding remainder.
    """
    request_id = get_request_id(request)
    currency = normalize_currency(request_body.currency_code)

    try:
        loan = loan_service.create_loan(
            uow,
            owner_id=request_body.user_id,
            principal=request_body.amount,
            currency=currency,
            term_count=request_body.terms,
            start_date=request_body.processed_at,
        )
    except (InvalidAmountError, InvalidTermsError) as e:
        logging.warning(f"Rejected loan terms: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))
    except TransactionFailure as e:
        logging.error(f"Loan creation failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")

    return loan_to_response(loan)


@router.get("/loans", response_model=LoanListResponse)
def list_loans(
    user_id: str = Query(..., min_length=1, description="Account holder identifier"),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Retrieve the most recent loans of an account holder"""
    loans = loan_service.list_loans_for_owner(uow, user_id, limit=settings.history_limit)
    return LoanListResponse(user_id=user_id, loans=[loan_to_response(loan) for loan in loans])


@router.get("/loans/{loan_id}", response_model=LoanResponse)
def get_loan(
    loan_id: uuid.UUID = Depends(parse_loan_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Retrieve a loan with its installment schedule"""
    try:
        loan = loan_service.get_loan(uow, loan_id)
    except LoanNotFoundError:
        raise HTTPException(status_code=404, detail="Loan not found")

    return loan_to_response(loan)
