"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional


class LoanStatus(str, Enum):
    """Aggregate loan state, driven by outstanding_amount == 0"""

    DUE = "due"
    REPAID = "repaid"


class InstallmentStatus(str, Enum):
    """Installment state: due -> partial -> repaid, repaid is terminal"""

    DUE = "due"
    PARTIAL = "partial"
    REPAID = "repaid"


@dataclass
class InstallmentDraft:
    """Scheduled installment produced at loan creation, not yet persisted"""

    sequence: int  # 1-indexed term number
    due_date: date
    amount: int
    outstanding_amount: int
    currency: str
    status: InstallmentStatus = InstallmentStatus.DUE


@dataclass
class InstallmentState:
    """Snapshot of a persisted installment used by the allocator"""

    id: Optional[uuid.UUID]
    sequence: int
    due_date: date
    amount: int
    outstanding_amount: int
    status: InstallmentStatus


@dataclass
class InstallmentUpdate:
    """New state for one installment after a payment walk"""

    id: Optional[uuid.UUID]
    outstanding_amount: int
    status: InstallmentStatus


@dataclass
class AllocationPlan:
    """Batch of installment updates plus the surplus nothing could absorb"""

    updates: List[InstallmentUpdate] = field(default_factory=list)
    unallocated: int = 0
