"""Repayment schedule generation at loan creation"""

from datetime import date
from typing import List
from repayment_gateway.domain.models import InstallmentDraft, InstallmentStatus
from repayment_gateway.domain.exceptions import InvalidAmountError, InvalidTermsError
from repayment_gateway.utils.date_utils import add_months


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_terms(principal: int, term_count: int) -> None:
    """Reject non-positive principal or term count before anything is written"""
    if not _is_positive_int(term_count):
        raise InvalidTermsError(f"Term count must be a positive integer, got {term_count!r}")
    if not _is_positive_int(principal):
        raise InvalidAmountError(f"Principal must be a positive integer, got {principal!r}")


def build_schedule(
    principal: int,
    term_count: int,
    currency: str,
    start_date: date,
) -> List[InstallmentDraft]:
    """
    Split a loan principal into monthly scheduled installments.

    Requirements:
    - Truncating division for every installment except the last
    - Last installment absorbs the rounding remainder, so amounts sum to principal exactly
    - Installment i (1-indexed) is due start_date + i months, never on the start date

    Args:
        principal: Loan amount in minor currency units
        term_count: Number of monthly installments
        currency: Currency code copied onto every installment
        start_date: Date the loan is processed

    Returns:
        List of InstallmentDraft ordered by due date

    Raises:
        InvalidTermsError: term_count is not a positive integer
        InvalidAmountError: principal is not a positive integer

    Example:
        1000 over 3 terms -> [333, 333, 334]
        10 over 3 terms is base 3, last gets 10 - 3 * 2 = 4
    """
    validate_terms(principal, term_count)

    base_amount = principal // term_count
    last_amount = principal - base_amount * (term_count - 1)

    drafts = []
    for sequence in range(1, term_count + 1):
        amount = last_amount if sequence == term_count else base_amount
        drafts.append(
            InstallmentDraft(
                sequence=sequence,
                due_date=add_months(start_date, sequence),
                amount=amount,
                outstanding_amount=amount,
                currency=currency,
                status=InstallmentStatus.DUE,
            )
        )

    return drafts
