"""Dependency injection for FastAPI endpoints"""

import uuid
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session
from repayment_gateway.infrastructure.database.session import get_db
from repayment_gateway.infrastructure.database.unit_of_work import UnitOfWork


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_unit_of_work(db: Session = Depends(get_db)) -> UnitOfWork:
    """Provide a unit of work bound to the request's session"""
    return UnitOfWork(db)


def parse_loan_id(loan_id: str) -> uuid.UUID:
    """Validate the loan ID path parameter"""
    try:
        return uuid.UUID(loan_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid loan ID format")
