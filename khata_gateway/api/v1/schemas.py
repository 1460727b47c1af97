"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from khata_gateway.domain.models import (
    CollateralType,
    EntityType,
    EntryType,
    LoanStatus,
    PaymentMethod,
    PaymentType,
    RepaymentType,
    TransactionType,
)


# Parties / khata

class PartyCreate(BaseModel):
    """Request body for POST /v1/parties"""

    shop_id: str = Field(..., min_length=1, description="Shop (tenant) identifier")
    name: str = Field(..., min_length=1, max_length=100)
    entity_type: EntityType = EntityType.CUSTOMER
    phone: Optional[str] = Field(None, max_length=15)
    email: Optional[str] = None
    address: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None


class LabelsSchema(BaseModel):
    given: str
    received: str


class PartySummaryResponse(BaseModel):
    """Party with derived balance figures"""

    id: str
    shop_id: str
    name: str
    entity_type: EntityType
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    is_deleted: bool
    total_debit: Decimal
    total_credit: Decimal
    current_balance: Decimal
    transaction_count: int
    last_transaction_date: Optional[date] = None
    labels: LabelsSchema


class ShopStatsResponse(BaseModel):
    """Response for GET /v1/shops/{shop_id}/ledger-stats"""

    shop_id: str
    total_parties: int
    total_receivable: Decimal
    total_payable: Decimal
    net_balance: Decimal


class AttachmentSchema(BaseModel):
    """Reference previously returned by the document store"""

    storage_path: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1)
    file_type: str = Field(..., min_length=1)
    description: Optional[str] = None


class EntryCreate(BaseModel):
    """Request body for POST /v1/parties/{party_id}/entries"""

    amount: Decimal = Field(..., description="Positive amount; direction comes from entry_type")
    entry_type: EntryType
    transaction_type: Optional[TransactionType] = None
    description: Optional[str] = Field(None, max_length=500)
    transaction_date: Optional[date] = Field(None, description="Defaults to today; may be backdated")
    attachments: List[AttachmentSchema] = []


class EntrySchema(BaseModel):
    id: str
    party_id: str
    amount: Decimal
    entry_type: EntryType
    transaction_type: TransactionType
    description: Optional[str] = None
    transaction_date: date
    is_deleted: bool = False
    attachments: List[AttachmentSchema] = []


class EntryResponse(BaseModel):
    """Entry plus party balance recomputed after the write"""

    entry: EntrySchema
    current_balance: Decimal


class LedgerRowSchema(EntrySchema):
    balance_after: Decimal


class LedgerResponse(BaseModel):
    """Response for GET /v1/parties/{party_id}/ledger"""

    party_id: str
    entity_type: EntityType
    labels: LabelsSchema
    rows: List[LedgerRowSchema]
    total_debit: Decimal
    total_credit: Decimal
    current_balance: Decimal


# Loans

class CollateralSchema(BaseModel):
    item_type: CollateralType
    item_name: str = Field(..., min_length=1)
    gross_weight: Decimal = Field(..., ge=0)
    net_weight: Decimal = Field(..., ge=0)
    purity: Optional[str] = None
    estimated_value: Decimal = Field(Decimal("0"), ge=0)
    description: Optional[str] = None


class LoanCreate(BaseModel):
    """Request body for POST /v1/loans"""

    shop_id: str = Field(..., min_length=1)
    customer_id: str = Field(..., min_length=1)
    loan_number: str = Field(..., min_length=1, max_length=50)
    principal_amount: Decimal
    interest_rate: Decimal = Field(..., description="Annual interest rate in percent")
    repayment_type: RepaymentType = RepaymentType.INTEREST_ONLY
    tenure_months: Optional[int] = None
    start_date: date
    collateral: List[CollateralSchema] = Field(..., min_length=1)
    record_in_khata: bool = Field(False, description="Post a LOAN_GIVEN debit to the borrower's khata")


class PaymentSchema(BaseModel):
    id: str
    amount: Decimal
    payment_type: PaymentType
    payment_method: PaymentMethod
    payment_date: date
    notes: Optional[str] = None


class LoanResponse(BaseModel):
    """Loan with read-time figures"""

    id: str
    shop_id: str
    loan_number: str
    customer_id: str
    principal_amount: Decimal
    interest_rate: Decimal
    repayment_type: RepaymentType
    tenure_months: Optional[int] = None
    emi_amount: Optional[Decimal] = None
    start_date: date
    end_date: Optional[date] = None
    status: LoanStatus
    effective_status: LoanStatus
    total_amount_paid: Decimal
    outstanding_principal: Decimal
    monthly_interest: Decimal
    next_due_date: Optional[date] = None
    loan_to_value: Decimal
    bullet_payoff_amount: Optional[Decimal] = None
    settlement_amount: Optional[Decimal] = None
    settlement_notes: Optional[str] = None
    closed_on: Optional[date] = None
    collateral: List[CollateralSchema]
    payments: List[PaymentSchema]
    version: int


class InstallmentSchema(BaseModel):
    """Single row in an EMI schedule"""

    installment_number: int
    due_date: date
    emi: Decimal
    interest: Decimal
    principal: Decimal
    balance: Decimal


class ScheduleResponse(BaseModel):
    """Response for GET /v1/loans/{loan_id}/schedule"""

    loan_id: str
    emi_amount: Decimal
    total_interest: Decimal
    installments: List[InstallmentSchema]


class PaymentCreate(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/payments"""

    amount: Decimal
    payment_type: PaymentType
    payment_method: PaymentMethod
    notes: Optional[str] = Field(None, max_length=500)
    payment_date: Optional[date] = None


class PaymentResponse(BaseModel):
    payment_id: str
    loan_id: str
    amount: Decimal
    previous_total: Decimal
    new_total: Decimal
    outstanding_principal: Decimal
    message: str


class CloseLoanRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/close"""

    collateral_confirmed: bool = False
    settlement_amount: Optional[Decimal] = None
    settlement_notes: Optional[str] = Field(None, max_length=1000)
    closed_on: Optional[date] = None


class CloseLoanResponse(BaseModel):
    loan_id: str
    loan_number: str
    status: LoanStatus
    settlement_amount: Decimal
    outstanding: Decimal
    closed_on: date
    message: str


class ReminderResponse(BaseModel):
    """Reminder queued for the messaging service"""

    loan_number: str
    phone: Optional[str] = None
    amount_due: Decimal
    due_date: date
    message: str
