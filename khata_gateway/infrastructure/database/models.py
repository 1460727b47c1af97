"""SQLAlchemy ORM models for parties, ledger entries and loans"""

import uuid
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class PartyRecord(Base):
    """Khata counterparty; soft-deleted only"""

    __tablename__ = "parties"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    phone = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    entity_type = Column(Text, nullable=False, default="CUSTOMER")
    notes = Column(Text, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    entries = relationship("LedgerEntryRecord", back_populates="party")


class LedgerEntryRecord(Base):
    """Signed movement against one party; direction lives in entry_type"""

    __tablename__ = "ledger_entries"

    # Integer autoincrement id doubles as the insertion sequence for same-day ordering
    id = Column(Integer, primary_key=True, autoincrement=True)
    party_id = Column(UUID(as_uuid=True), ForeignKey("parties.id", ondelete="RESTRICT"), nullable=False, index=True)
    shop_id = Column(Text, nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    entry_type = Column(Text, nullable=False)
    transaction_type = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    transaction_date = Column(Date, nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    party = relationship("PartyRecord", back_populates="entries")
    documents = relationship("EntryDocumentRecord", back_populates="entry", cascade="all, delete-orphan")


class EntryDocumentRecord(Base):
    """Reference to a file held by the document store"""

    __tablename__ = "ledger_entry_documents"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    entry_id = Column(Integer, ForeignKey("ledger_entries.id", ondelete="CASCADE"), nullable=False, index=True)
    storage_path = Column(Text, nullable=False)
    file_name = Column(Text, nullable=False)
    file_type = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    entry = relationship("LedgerEntryRecord", back_populates="documents")


class LoanRecord(Base):
    """Collateral-backed loan; version guards concurrent writers"""

    __tablename__ = "loans"
    __table_args__ = (UniqueConstraint("shop_id", "loan_number", name="uq_loans_shop_loan_number"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(Text, nullable=False, index=True)
    loan_number = Column(Text, nullable=False)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("parties.id", ondelete="RESTRICT"), nullable=False, index=True)
    principal_amount = Column(Numeric(14, 2), nullable=False)
    interest_rate = Column(Numeric(7, 4), nullable=False)
    repayment_type = Column(Text, nullable=False, default="interest_only")
    tenure_months = Column(Integer, nullable=True)
    emi_amount = Column(Numeric(14, 2), nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    status = Column(Text, nullable=False, default="active", index=True)
    total_amount_paid = Column(Numeric(14, 2), nullable=False, default=0)
    settlement_amount = Column(Numeric(14, 2), nullable=True)
    settlement_notes = Column(Text, nullable=True)
    closed_on = Column(Date, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    customer = relationship("PartyRecord")
    collateral = relationship("CollateralRecord", back_populates="loan", cascade="all, delete-orphan")
    payments = relationship(
        "LoanPaymentRecord",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by=lambda: [LoanPaymentRecord.payment_date, LoanPaymentRecord.created_at],
    )


class CollateralRecord(Base):
    """Item pledged against a loan"""

    __tablename__ = "loan_collateral"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(UUID(as_uuid=True), ForeignKey("loans.id", ondelete="CASCADE"), nullable=False, index=True)
    item_type = Column(Text, nullable=False)
    item_name = Column(Text, nullable=False)
    purity = Column(Text, nullable=True)
    gross_weight = Column(Numeric(10, 3), nullable=False)
    net_weight = Column(Numeric(10, 3), nullable=False)
    estimated_value = Column(Numeric(14, 2), nullable=False, default=0)
    description = Column(Text, nullable=True)

    loan = relationship("LoanRecord", back_populates="collateral")


class LoanPaymentRecord(Base):
    """Immutable payment against a loan"""

    __tablename__ = "loan_payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(UUID(as_uuid=True), ForeignKey("loans.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_type = Column(Text, nullable=False)
    payment_method = Column(Text, nullable=False)
    payment_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loan = relationship("LoanRecord", back_populates="payments")
