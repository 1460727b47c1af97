"""Khata endpoints - parties, ledger entries and balances"""

from datetime import date
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.orm import Session
from typing import List

from khata_gateway.api.dependencies import get_actor, get_document_client, get_request_id
from khata_gateway.api.errors import domain_errors
from khata_gateway.api.v1.schemas import (
    AttachmentSchema,
    EntryCreate,
    EntryResponse,
    EntrySchema,
    LabelsSchema,
    LedgerResponse,
    LedgerRowSchema,
    PartyCreate,
    PartySummaryResponse,
    ShopStatsResponse,
)
from khata_gateway.domain.ledger import (
    admit_entry,
    compute_balance,
    display_labels,
    shop_stats,
    soft_delete_entry,
    summarize_party,
)
from khata_gateway.domain.models import Attachment, LedgerEntry, Party, PartySummary
from khata_gateway.infrastructure.clients.documents import DocumentStoreClient
from khata_gateway.infrastructure.database.repositories import LedgerRepository, PartyRepository
from khata_gateway.infrastructure.database.session import get_db
from khata_gateway.infrastructure.observability.logging import log_audit
from khata_gateway.infrastructure.observability.metrics import ledger_entry_counter, ledger_entry_deleted_counter

router = APIRouter()


def _labels(party: Party) -> LabelsSchema:
    labels = display_labels(party.entity_type)
    return LabelsSchema(given=labels.given, received=labels.received)


def _entry_schema(entry: LedgerEntry) -> EntrySchema:
    return EntrySchema(
        id=entry.id,
        party_id=entry.party_id,
        amount=entry.amount,
        entry_type=entry.entry_type,
        transaction_type=entry.transaction_type,
        description=entry.description,
        transaction_date=entry.transaction_date,
        is_deleted=entry.is_deleted,
        attachments=[AttachmentSchema(**vars(a)) for a in entry.attachments],
    )


def _summary_response(summary: PartySummary) -> PartySummaryResponse:
    party = summary.party
    return PartySummaryResponse(
        id=party.id,
        shop_id=party.shop_id,
        name=party.name,
        entity_type=party.entity_type,
        phone=party.phone,
        email=party.email,
        address=party.address,
        notes=party.notes,
        is_deleted=party.is_deleted,
        total_debit=summary.total_debit,
        total_credit=summary.total_credit,
        current_balance=summary.current_balance,
        transaction_count=summary.transaction_count,
        last_transaction_date=summary.last_transaction_date,
        labels=_labels(party),
    )


@router.post("/parties", response_model=PartySummaryResponse, status_code=201)
def create_party(
    request_body: PartyCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    """Register a customer, supplier, karigar or partner in the shop's khata"""
    request_id = get_request_id(request)
    with domain_errors(db, request_id, "create_party"):
        party = PartyRepository(db).create_party(
            Party(
                id="",
                shop_id=request_body.shop_id,
                name=request_body.name,
                entity_type=request_body.entity_type,
                phone=request_body.phone,
                email=request_body.email,
                address=request_body.address,
                notes=request_body.notes,
            )
        )
        db.commit()
        log_audit(request_id, get_actor(request), party.shop_id, "party", party.id, "create", party_name=party.name)
        return _summary_response(summarize_party(party, []))


@router.get("/parties", response_model=List[PartySummaryResponse])
def list_parties(
    request: Request,
    shop_id: str = Query(..., description="Shop identifier"),
    include_deleted: bool = Query(False),
    db: Session = Depends(get_db),
):
    """Parties with balances computed fresh from their entries"""
    with domain_errors(db, get_request_id(request), "list_parties"):
        ledger_repo = LedgerRepository(db)
        parties = PartyRepository(db).list_parties(shop_id, include_deleted=include_deleted)
        return [
            _summary_response(summarize_party(p, ledger_repo.load_entries_for_party(p.id)))
            for p in parties
        ]


@router.get("/parties/{party_id}", response_model=PartySummaryResponse)
def get_party(party_id: str, request: Request, db: Session = Depends(get_db)):
    with domain_errors(db, get_request_id(request), "get_party"):
        party = PartyRepository(db).get_party(party_id)
        entries = LedgerRepository(db).load_entries_for_party(party_id)
        return _summary_response(summarize_party(party, entries))


@router.delete("/parties/{party_id}", response_model=PartySummaryResponse)
def delete_party(party_id: str, request: Request, db: Session = Depends(get_db)):
    """
    Tombstone a party.

    The party drops out of active lists and stats; its entries are kept.
    """
    request_id = get_request_id(request)
    with domain_errors(db, request_id, "delete_party"):
        party = PartyRepository(db).soft_delete_party(party_id)
        entries = LedgerRepository(db).load_entries_for_party(party_id)
        db.commit()
        log_audit(request_id, get_actor(request), party.shop_id, "party", party.id, "delete")
        return _summary_response(summarize_party(party, entries))


@router.get("/shops/{shop_id}/ledger-stats", response_model=ShopStatsResponse)
def get_shop_stats(shop_id: str, request: Request, db: Session = Depends(get_db)):
    """Receivable / payable totals across the shop's active parties"""
    with domain_errors(db, get_request_id(request), "shop_stats"):
        ledger_repo = LedgerRepository(db)
        summaries = [
            summarize_party(p, ledger_repo.load_entries_for_party(p.id))
            for p in PartyRepository(db).list_parties(shop_id)
        ]
        stats = shop_stats(summaries)
        return ShopStatsResponse(
            shop_id=shop_id,
            total_parties=stats.total_parties,
            total_receivable=stats.total_receivable,
            total_payable=stats.total_payable,
            net_balance=stats.net_balance,
        )


@router.get("/parties/{party_id}/ledger", response_model=LedgerResponse)
def get_ledger(party_id: str, request: Request, db: Session = Depends(get_db)):
    """Chronological entries with running balance after each"""
    with domain_errors(db, get_request_id(request), "get_ledger"):
        party = PartyRepository(db).get_party(party_id)
        timeline = compute_balance(LedgerRepository(db).load_entries_for_party(party_id))
        return LedgerResponse(
            party_id=party.id,
            entity_type=party.entity_type,
            labels=_labels(party),
            rows=[
                LedgerRowSchema(**_entry_schema(row.entry).model_dump(), balance_after=row.balance_after)
                for row in timeline.rows
            ],
            total_debit=timeline.total_debit,
            total_credit=timeline.total_credit,
            current_balance=timeline.current_balance,
        )


@router.post("/parties/{party_id}/entries", response_model=EntryResponse, status_code=201)
def create_entry(
    party_id: str,
    request_body: EntryCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Admit a DEBIT/CREDIT entry.

    Flow:
    1. Load party (404 if missing)
    2. Validate amount and infer transaction type
    3. Persist entry and commit
    4. Recompute balance from scratch
    """
    request_id = get_request_id(request)
    with domain_errors(db, request_id, "create_entry"):
        party = PartyRepository(db).get_party(party_id)
        entry = admit_entry(
            party,
            request_body.amount,
            request_body.entry_type,
            request_body.transaction_date or date.today(),
            transaction_type=request_body.transaction_type,
            description=request_body.description,
            attachments=[Attachment(**a.model_dump()) for a in request_body.attachments],
        )

        ledger_repo = LedgerRepository(db)
        saved = ledger_repo.append_entry(party.shop_id, entry)
        db.commit()

        ledger_entry_counter.labels(entry_type=saved.entry_type.value).inc()
        log_audit(
            request_id,
            get_actor(request),
            party.shop_id,
            "ledger_entry",
            saved.id,
            "create",
            party_id=party.id,
            amount=saved.amount,
            entry_type=saved.entry_type.value,
            transaction_type=saved.transaction_type.value,
        )

        timeline = compute_balance(ledger_repo.load_entries_for_party(party_id))
        return EntryResponse(entry=_entry_schema(saved), current_balance=timeline.current_balance)


@router.delete("/entries/{entry_id}", response_model=EntryResponse)
def delete_entry(entry_id: str, request: Request, db: Session = Depends(get_db)):
    """Soft-delete an entry; the returned balance no longer includes it"""
    request_id = get_request_id(request)
    with domain_errors(db, request_id, "delete_entry"):
        ledger_repo = LedgerRepository(db)
        tombstone = soft_delete_entry(ledger_repo.get_entry(entry_id))
        saved = ledger_repo.soft_delete_entry(tombstone)
        party = PartyRepository(db).get_party(saved.party_id)
        db.commit()

        ledger_entry_deleted_counter.inc()
        log_audit(
            request_id,
            get_actor(request),
            party.shop_id,
            "ledger_entry",
            saved.id,
            "delete",
            amount=saved.amount,
            entry_type=saved.entry_type.value,
            party_id=saved.party_id,
        )

        timeline = compute_balance(ledger_repo.load_entries_for_party(saved.party_id))
        return EntryResponse(entry=_entry_schema(saved), current_balance=timeline.current_balance)


@router.post("/entries/{entry_id}/attachments", response_model=EntrySchema, status_code=201)
async def upload_attachment(
    entry_id: str,
    request: Request,
    file: UploadFile = File(...),
    description: str | None = Form(None),
    db: Session = Depends(get_db),
    document_client: DocumentStoreClient = Depends(get_document_client),
):
    """Upload a bill/receipt to the document store and link the reference to the entry"""
    request_id = get_request_id(request)
    with domain_errors(db, request_id, "upload_attachment"):
        ledger_repo = LedgerRepository(db)
        entry = ledger_repo.get_entry(entry_id)
        party = PartyRepository(db).get_party(entry.party_id)

        content = await file.read()
        attachment = await document_client.upload(
            shop_id=party.shop_id,
            file_name=file.filename or "document",
            content=content,
            content_type=file.content_type or "application/octet-stream",
            description=description,
        )
        saved = ledger_repo.attach_document(entry_id, attachment)
        db.commit()

        log_audit(
            request_id,
            get_actor(request),
            party.shop_id,
            "ledger_entry",
            entry_id,
            "attach_document",
            storage_path=attachment.storage_path,
        )
        return _entry_schema(saved)
