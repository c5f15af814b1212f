"""Repayment allocation engine - waterfall walk and loan balance recompute"""

from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Sequence
from repayment_gateway.domain.models import (
    AllocationPlan,
    InstallmentState,
    InstallmentStatus,
    InstallmentUpdate,
    LoanStatus,
)
from repayment_gateway.domain.exceptions import InvalidAmountError

# Unit-level drift left by truncating division in the schedule
RESIDUAL_SNAP_THRESHOLD = 1

OPEN_STATUSES = (InstallmentStatus.DUE, InstallmentStatus.PARTIAL)


def validate_payment_amount(amount: int) -> None:
    """Reject payments that are not positive integers"""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(f"Payment amount must be a positive integer, got {amount!r}")


def _allocation_key(installment: InstallmentState) -> tuple:
    # Total order: due date, then term number, then id for rows sharing both
    return (installment.due_date, installment.sequence, str(installment.id or ""))


def order_open_installments(installments: Iterable[InstallmentState]) -> List[InstallmentState]:
    """Installments still owing money, oldest obligation first"""
    return sorted(
        (inst for inst in installments if inst.status in OPEN_STATUSES),
        key=_allocation_key,
    )


def allocate_payment(installments: Sequence[InstallmentState], payment_amount: int) -> AllocationPlan:
    """
    Distribute a payment across open installments in due-date order.

    Walk rules:
    - Stop as soon as nothing remains of the payment
    - Remaining covers the installment: outstanding 0, status repaid
    - Otherwise: outstanding becomes the remaining payment, status partial

    Surplus beyond every open installment is reported as ``unallocated``
    and is not applied anywhere.
    """
    validate_payment_amount(payment_amount)

    remaining = payment_amount
    plan = AllocationPlan()

    for installment in order_open_installments(installments):
        if remaining <= 0:
            break

        outstanding = installment.outstanding_amount

        if remaining >= outstanding:
            plan.updates.append(
                InstallmentUpdate(
                    id=installment.id,
                    outstanding_amount=0,
                    status=InstallmentStatus.REPAID,
                )
            )
            remaining -= outstanding
        else:
            plan.updates.append(
                InstallmentUpdate(
                    id=installment.id,
                    outstanding_amount=remaining,
                    status=InstallmentStatus.PARTIAL,
                )
            )
            remaining = 0

    plan.unallocated = remaining
    return plan


def apply_updates(
    installments: Sequence[InstallmentState],
    updates: Iterable[InstallmentUpdate],
) -> List[InstallmentState]:
    """Return installment snapshots with the batch applied, input left untouched"""
    by_id: Dict = {update.id: update for update in updates}
    result = []
    for installment in installments:
        update = by_id.get(installment.id)
        if update is None:
            result.append(installment)
        else:
            result.append(
                replace(
                    installment,
                    outstanding_amount=update.outstanding_amount,
                    status=update.status,
                )
            )
    return result


def recompute_loan_outstanding(
    current_outstanding: int,
    installments: Iterable[InstallmentState],
    received_at: date,
) -> int:
    """
    Recompute the loan's aggregate outstanding amount after a payment.

    Two terms are subtracted from the current balance:
    - scheduled ``amount`` of every installment due on or before received_at,
      whatever its status
    - ``outstanding_amount`` of every installment currently partial

    This is not the same as summing outstanding amounts: a partially
    pre-paid future installment is counted differently. The result is
    clamped at zero and a residual of one unit is snapped to zero.
    """
    installments = list(installments)

    amount_due_by_cutoff = sum(inst.amount for inst in installments if inst.due_date <= received_at)
    partial_outstanding = sum(
        inst.outstanding_amount for inst in installments if inst.status == InstallmentStatus.PARTIAL
    )

    new_outstanding = max(current_outstanding - (amount_due_by_cutoff + partial_outstanding), 0)

    if abs(new_outstanding) <= RESIDUAL_SNAP_THRESHOLD:
        new_outstanding = 0

    return new_outstanding


def loan_status_for(outstanding_amount: int) -> LoanStatus:
    """Loan is repaid exactly when nothing is outstanding"""
    return LoanStatus.REPAID if outstanding_amount == 0 else LoanStatus.DUE
