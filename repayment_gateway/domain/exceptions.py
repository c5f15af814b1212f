"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidAmountError(DomainException):
    """Principal or payment amount is not a positive integer"""

    pass


class InvalidTermsError(DomainException):
    """Loan term count is not a positive integer"""

    pass


class TransactionFailure(DomainException):
    """Atomic commit failed; every mutation of the operation was rolled back"""

    pass


class LoanNotFoundError(DomainException):
    """Requested loan does not exist"""

    pass
