"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Tuple


class EntityType(str, Enum):
    CUSTOMER = "CUSTOMER"
    SUPPLIER = "SUPPLIER"
    WORKER = "WORKER"  # karigar
    PARTNER = "PARTNER"
    OTHER = "OTHER"


class EntryType(str, Enum):
    DEBIT = "DEBIT"  # party owes more
    CREDIT = "CREDIT"  # party paid / shop owes more


class TransactionType(str, Enum):
    SALE = "SALE"
    SALE_RETURN = "SALE_RETURN"
    PAYMENT = "PAYMENT"
    PURCHASE = "PURCHASE"
    PURCHASE_RETURN = "PURCHASE_RETURN"
    WORK_ORDER = "WORK_ORDER"
    MAKING_CHARGES = "MAKING_CHARGES"
    JAMA = "JAMA"
    ODHARA = "ODHARA"
    LOAN_GIVEN = "LOAN_GIVEN"
    LOAN_RECEIVED = "LOAN_RECEIVED"
    SETTLEMENT = "SETTLEMENT"
    ADJUSTMENT = "ADJUSTMENT"


class RepaymentType(str, Enum):
    INTEREST_ONLY = "interest_only"
    EMI = "emi"
    BULLET = "bullet"


class LoanStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    OVERDUE = "overdue"
    REJECTED = "rejected"


class PaymentType(str, Enum):
    PRINCIPAL = "principal"
    INTEREST = "interest"
    FULL_SETTLEMENT = "full_settlement"


class PaymentMethod(str, Enum):
    CASH = "cash"
    UPI = "upi"
    BANK_TRANSFER = "bank_transfer"


class CollateralType(str, Enum):
    GOLD = "gold"
    SILVER = "silver"
    DIAMOND = "diamond"
    OTHER = "other"


@dataclass
class Party:
    """Counterparty with a running monetary relationship to the shop"""

    id: str
    shop_id: str
    name: str
    entity_type: EntityType
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    notes: str | None = None
    is_deleted: bool = False
    created_at: datetime | None = None


@dataclass(frozen=True)
class Attachment:
    """Opaque document reference owned by the document store"""

    storage_path: str
    file_name: str
    file_type: str
    description: str | None = None


@dataclass(frozen=True)
class LedgerEntry:
    """Immutable monetary movement against exactly one party"""

    id: str | None
    party_id: str
    amount: Decimal
    entry_type: EntryType
    transaction_type: TransactionType
    transaction_date: date
    description: str | None = None
    created_at: datetime | None = None
    sequence: int = 0  # insertion order, tiebreak for same-day entries
    attachments: Tuple[Attachment, ...] = ()
    is_deleted: bool = False


@dataclass(frozen=True)
class BalanceRow:
    entry: LedgerEntry
    balance_after: Decimal


@dataclass(frozen=True)
class BalanceTimeline:
    """Result of replaying a party's entries in chronological order"""

    rows: Tuple[BalanceRow, ...]
    total_debit: Decimal
    total_credit: Decimal

    @property
    def current_balance(self) -> Decimal:
        return self.total_debit - self.total_credit


@dataclass(frozen=True)
class EntityLabels:
    """What DEBIT / CREDIT mean colloquially for an entity type"""

    given: str
    received: str


@dataclass(frozen=True)
class PartySummary:
    party: Party
    total_debit: Decimal
    total_credit: Decimal
    current_balance: Decimal
    transaction_count: int
    last_transaction_date: date | None


@dataclass(frozen=True)
class ShopLedgerStats:
    total_parties: int
    total_receivable: Decimal
    total_payable: Decimal
    net_balance: Decimal


@dataclass(frozen=True)
class CollateralItem:
    """Physical item pledged against a loan"""

    item_type: CollateralType
    item_name: str
    gross_weight: Decimal
    net_weight: Decimal
    purity: str | None = None
    estimated_value: Decimal = Decimal("0.00")
    description: str | None = None


@dataclass(frozen=True)
class LoanPayment:
    """Immutable payment record owned by one loan"""

    id: str | None
    loan_id: str
    amount: Decimal
    payment_type: PaymentType
    payment_method: PaymentMethod
    payment_date: date
    notes: str | None = None


@dataclass
class Loan:
    """Collateral-backed credit extended to a customer"""

    id: str | None
    shop_id: str
    loan_number: str
    customer_id: str
    principal_amount: Decimal
    interest_rate: Decimal  # annual percent
    repayment_type: RepaymentType
    start_date: date
    tenure_months: int | None = None
    emi_amount: Decimal | None = None
    end_date: date | None = None
    status: LoanStatus = LoanStatus.ACTIVE
    total_amount_paid: Decimal = Decimal("0.00")
    settlement_amount: Decimal | None = None
    settlement_notes: str | None = None
    closed_on: date | None = None
    collateral: List[CollateralItem] = field(default_factory=list)
    payments: List[LoanPayment] = field(default_factory=list)
    version: int = 1


@dataclass(frozen=True)
class PaymentResult:
    """New payment together with the loan state it produces; persisted as one unit"""

    payment: LoanPayment
    loan: Loan
    previous_total: Decimal


@dataclass(frozen=True)
class InstallmentRow:
    """Single row of an EMI amortization schedule"""

    installment_number: int
    due_date: date
    emi: Decimal
    interest: Decimal
    principal: Decimal
    balance: Decimal


@dataclass(frozen=True)
class Reminder:
    """Pre-formatted payment reminder handed to the messaging service"""

    loan_number: str
    phone: str | None
    amount_due: Decimal
    due_date: date
    message: str
