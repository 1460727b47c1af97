"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    code = "DOMAIN_ERROR"


class InvalidAmount(DomainException):
    """Amount is zero, negative, or not a number"""

    code = "INVALID_AMOUNT"


class InvalidLoanTerms(DomainException):
    """Loan terms cannot produce a defined result (zero rate or tenure, wrong repayment type)"""

    code = "INVALID_LOAN_TERMS"


class CollateralNotConfirmed(DomainException):
    """Loan closure attempted without confirming collateral was returned"""

    code = "COLLATERAL_NOT_CONFIRMED"


class InvalidStateTransition(DomainException):
    """Operation attempted against a loan not in the required state"""

    code = "INVALID_STATE_TRANSITION"


class PartyDeleted(DomainException):
    """Entry attempted against a soft-deleted party"""

    code = "PARTY_DELETED"


class EntryAlreadyDeleted(DomainException):
    """Ledger entry is already soft-deleted"""

    code = "ENTRY_ALREADY_DELETED"


class DuplicateLoanNumber(DomainException):
    """Loan number already used within the shop"""

    code = "DUPLICATE_LOAN_NUMBER"


class NotFoundError(DomainException):
    """Referenced party, entry or loan does not exist"""

    code = "NOT_FOUND"


class ConcurrentModificationError(DomainException):
    """Loan row changed between load and write"""

    code = "CONCURRENT_MODIFICATION"


class DocumentStoreError(DomainException):
    """Document store rejected the upload or is unavailable"""

    code = "DOCUMENT_STORE_ERROR"


class MessagingError(DomainException):
    """Reminder could not be delivered"""

    code = "MESSAGING_ERROR"
