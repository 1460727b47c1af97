"""Data access layer - the storage collaborator for the ledger and loan engines"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from khata_gateway.domain.exceptions import ConcurrentModificationError, DuplicateLoanNumber, NotFoundError
from khata_gateway.domain.models import (
    Attachment,
    CollateralItem,
    CollateralType,
    EntityType,
    EntryType,
    LedgerEntry,
    Loan,
    LoanPayment,
    LoanStatus,
    Party,
    PaymentMethod,
    PaymentType,
    RepaymentType,
    TransactionType,
)
from khata_gateway.infrastructure.database.models import (
    CollateralRecord,
    EntryDocumentRecord,
    LedgerEntryRecord,
    LoanPaymentRecord,
    LoanRecord,
    PartyRecord,
)
from khata_gateway.utils.money import money


def _parse_uuid(value: str, what: str) -> uuid.UUID:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        raise NotFoundError(f"{what} {value} not found")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_party(record: PartyRecord) -> Party:
    return Party(
        id=str(record.id),
        shop_id=record.shop_id,
        name=record.name,
        entity_type=EntityType(record.entity_type),
        phone=record.phone,
        email=record.email,
        address=record.address,
        notes=record.notes,
        is_deleted=record.is_deleted,
        created_at=record.created_at,
    )


def to_entry(record: LedgerEntryRecord) -> LedgerEntry:
    return LedgerEntry(
        id=str(record.id),
        party_id=str(record.party_id),
        amount=money(record.amount),
        entry_type=EntryType(record.entry_type),
        transaction_type=TransactionType(record.transaction_type),
        transaction_date=record.transaction_date,
        description=record.description,
        created_at=record.created_at,
        sequence=record.id,
        attachments=tuple(
            Attachment(
                storage_path=doc.storage_path,
                file_name=doc.file_name,
                file_type=doc.file_type,
                description=doc.description,
            )
            for doc in record.documents
        ),
        is_deleted=record.is_deleted,
    )


def to_loan(record: LoanRecord) -> Loan:
    return Loan(
        id=str(record.id),
        shop_id=record.shop_id,
        loan_number=record.loan_number,
        customer_id=str(record.customer_id),
        principal_amount=money(record.principal_amount),
        interest_rate=record.interest_rate,
        repayment_type=RepaymentType(record.repayment_type),
        tenure_months=record.tenure_months,
        emi_amount=money(record.emi_amount) if record.emi_amount is not None else None,
        start_date=record.start_date,
        end_date=record.end_date,
        status=LoanStatus(record.status),
        total_amount_paid=money(record.total_amount_paid),
        settlement_amount=money(record.settlement_amount) if record.settlement_amount is not None else None,
        settlement_notes=record.settlement_notes,
        closed_on=record.closed_on,
        collateral=[
            CollateralItem(
                item_type=CollateralType(item.item_type),
                item_name=item.item_name,
                gross_weight=item.gross_weight,
                net_weight=item.net_weight,
                purity=item.purity,
                estimated_value=money(item.estimated_value),
                description=item.description,
            )
            for item in record.collateral
        ],
        payments=[
            LoanPayment(
                id=str(p.id),
                loan_id=str(p.loan_id),
                amount=money(p.amount),
                payment_type=PaymentType(p.payment_type),
                payment_method=PaymentMethod(p.payment_method),
                payment_date=p.payment_date,
                notes=p.notes,
            )
            for p in record.payments
        ],
        version=record.version,
    )


class PartyRepository:
    """Repository for khata parties"""

    def __init__(self, db: Session):
        self.db = db

    def create_party(self, party: Party) -> Party:
        record = PartyRecord(
            shop_id=party.shop_id,
            name=party.name,
            phone=party.phone,
            email=party.email,
            address=party.address,
            entity_type=EntityType(party.entity_type).value,
            notes=party.notes,
        )
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        return to_party(record)

    def get_party(self, party_id: str) -> Party:
        """Fetch party including tombstoned ones; ledger history stays addressable"""
        record = self.db.get(PartyRecord, _parse_uuid(party_id, "Party"))
        if record is None:
            raise NotFoundError(f"Party {party_id} not found")
        return to_party(record)

    def list_parties(self, shop_id: str, include_deleted: bool = False) -> List[Party]:
        query = self.db.query(PartyRecord).filter(PartyRecord.shop_id == shop_id)
        if not include_deleted:
            query = query.filter(PartyRecord.is_deleted.is_(False))
        return [to_party(r) for r in query.order_by(PartyRecord.name).all()]

    def soft_delete_party(self, party_id: str) -> Party:
        record = self.db.get(PartyRecord, _parse_uuid(party_id, "Party"))
        if record is None:
            raise NotFoundError(f"Party {party_id} not found")
        record.is_deleted = True
        record.deleted_at = _utcnow()
        self.db.flush()
        return to_party(record)


class LedgerRepository:
    """Repository for ledger entries"""

    def __init__(self, db: Session):
        self.db = db

    def load_entries_for_party(self, party_id: str, include_deleted: bool = False) -> List[LedgerEntry]:
        """Entries in (transaction_date, insertion) order"""
        query = (
            self.db.query(LedgerEntryRecord)
            .options(selectinload(LedgerEntryRecord.documents))
            .filter(LedgerEntryRecord.party_id == _parse_uuid(party_id, "Party"))
        )
        if not include_deleted:
            query = query.filter(LedgerEntryRecord.is_deleted.is_(False))
        records = query.order_by(LedgerEntryRecord.transaction_date, LedgerEntryRecord.id).all()
        return [to_entry(r) for r in records]

    def get_entry(self, entry_id: str) -> LedgerEntry:
        return to_entry(self._get_record(entry_id))

    def append_entry(self, shop_id: str, entry: LedgerEntry) -> LedgerEntry:
        record = LedgerEntryRecord(
            party_id=_parse_uuid(entry.party_id, "Party"),
            shop_id=shop_id,
            amount=entry.amount,
            entry_type=entry.entry_type.value,
            transaction_type=entry.transaction_type.value,
            description=entry.description,
            transaction_date=entry.transaction_date,
        )
        for attachment in entry.attachments:
            record.documents.append(self._document(attachment))
        self.db.add(record)
        self.db.flush()
        return to_entry(record)

    def attach_document(self, entry_id: str, attachment: Attachment) -> LedgerEntry:
        record = self._get_record(entry_id)
        record.documents.append(self._document(attachment))
        self.db.flush()
        return to_entry(record)

    def soft_delete_entry(self, entry: LedgerEntry) -> LedgerEntry:
        """Persist a tombstone produced by the ledger engine"""
        record = self._get_record(entry.id)
        record.is_deleted = entry.is_deleted
        record.deleted_at = _utcnow()
        self.db.flush()
        return to_entry(record)

    def _get_record(self, entry_id: str) -> LedgerEntryRecord:
        try:
            key = int(entry_id)
        except (TypeError, ValueError):
            raise NotFoundError(f"Entry {entry_id} not found")
        record = self.db.get(LedgerEntryRecord, key)
        if record is None:
            raise NotFoundError(f"Entry {entry_id} not found")
        return record

    @staticmethod
    def _document(attachment: Attachment) -> EntryDocumentRecord:
        return EntryDocumentRecord(
            storage_path=attachment.storage_path,
            file_name=attachment.file_name,
            file_type=attachment.file_type,
            description=attachment.description,
        )


class LoanRepository:
    """Repository for loans, collateral and payments"""

    def __init__(self, db: Session):
        self.db = db

    def load_loan(self, loan_id: str) -> Loan:
        """Fresh read of loan with collateral and payments"""
        record = (
            self.db.query(LoanRecord)
            .options(selectinload(LoanRecord.collateral), selectinload(LoanRecord.payments))
            .filter(LoanRecord.id == _parse_uuid(loan_id, "Loan"))
            .populate_existing()
            .first()
        )
        if record is None:
            raise NotFoundError(f"Loan {loan_id} not found")
        return to_loan(record)

    def list_loans(self, shop_id: str, status: Optional[LoanStatus] = None) -> List[Loan]:
        query = (
            self.db.query(LoanRecord)
            .options(selectinload(LoanRecord.collateral), selectinload(LoanRecord.payments))
            .filter(LoanRecord.shop_id == shop_id)
        )
        if status is not None:
            query = query.filter(LoanRecord.status == LoanStatus(status).value)
        return [to_loan(r) for r in query.order_by(LoanRecord.start_date.desc()).all()]

    def create_loan(self, loan: Loan) -> Loan:
        """
        Insert loan with its collateral.

        Raises:
            DuplicateLoanNumber: loan number already used in this shop
        """
        existing = (
            self.db.query(LoanRecord.id)
            .filter(LoanRecord.shop_id == loan.shop_id, LoanRecord.loan_number == loan.loan_number)
            .first()
        )
        if existing is not None:
            raise DuplicateLoanNumber(f"Loan number {loan.loan_number} already exists")

        record = LoanRecord(
            shop_id=loan.shop_id,
            loan_number=loan.loan_number,
            customer_id=_parse_uuid(loan.customer_id, "Party"),
            principal_amount=loan.principal_amount,
            interest_rate=loan.interest_rate,
            repayment_type=loan.repayment_type.value,
            tenure_months=loan.tenure_months,
            emi_amount=loan.emi_amount,
            start_date=loan.start_date,
            end_date=loan.end_date,
            status=loan.status.value,
            total_amount_paid=loan.total_amount_paid,
            version=1,
        )
        for item in loan.collateral:
            record.collateral.append(
                CollateralRecord(
                    item_type=item.item_type.value,
                    item_name=item.item_name,
                    purity=item.purity,
                    gross_weight=item.gross_weight,
                    net_weight=item.net_weight,
                    estimated_value=item.estimated_value,
                    description=item.description,
                )
            )
        self.db.add(record)
        try:
            self.db.flush()
        except IntegrityError as e:
            # Lost a race with another insert of the same number
            raise DuplicateLoanNumber(f"Loan number {loan.loan_number} already exists") from e
        return to_loan(record)

    def append_payment(self, loan_id: str, payment: LoanPayment) -> LoanPayment:
        record = LoanPaymentRecord(
            loan_id=_parse_uuid(loan_id, "Loan"),
            amount=payment.amount,
            payment_type=payment.payment_type.value,
            payment_method=payment.payment_method.value,
            payment_date=payment.payment_date,
            notes=payment.notes,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(record)
        self.db.flush()
        return LoanPayment(
            id=str(record.id),
            loan_id=str(record.loan_id),
            amount=payment.amount,
            payment_type=payment.payment_type,
            payment_method=payment.payment_method,
            payment_date=payment.payment_date,
            notes=payment.notes,
        )

    def update_loan(self, loan: Loan) -> int:
        """
        Write mutable loan fields if nobody else has since the loan was loaded.

        loan.version must be the version that was read. Returns the new version.

        Raises:
            ConcurrentModificationError: row version moved on (or row vanished)
        """
        matched = (
            self.db.query(LoanRecord)
            .filter(LoanRecord.id == _parse_uuid(loan.id, "Loan"), LoanRecord.version == loan.version)
            .update(
                {
                    LoanRecord.status: LoanStatus(loan.status).value,
                    LoanRecord.total_amount_paid: loan.total_amount_paid,
                    LoanRecord.settlement_amount: loan.settlement_amount,
                    LoanRecord.settlement_notes: loan.settlement_notes,
                    LoanRecord.closed_on: loan.closed_on,
                    LoanRecord.version: LoanRecord.version + 1,
                },
                synchronize_session="fetch",
            )
        )
        if matched == 0:
            raise ConcurrentModificationError(
                f"Loan #{loan.loan_number} was modified by another request; reload and retry"
            )
        return loan.version + 1
