"""Party ledger (khata) engine - running balances and entry admission"""

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from khata_gateway.domain.exceptions import EntryAlreadyDeleted, InvalidAmount, PartyDeleted
from khata_gateway.domain.models import (
    Attachment,
    BalanceRow,
    BalanceTimeline,
    EntityLabels,
    EntityType,
    EntryType,
    LedgerEntry,
    Party,
    PartySummary,
    ShopLedgerStats,
    TransactionType,
)
from khata_gateway.utils.money import ZERO, is_minor_unit, money, parse_amount

# (entity, direction) -> category. Anything not listed falls back to ODHARA / JAMA.
TRANSACTION_TYPE_INFERENCE: Dict[Tuple[EntityType, EntryType], TransactionType] = {
    (EntityType.CUSTOMER, EntryType.DEBIT): TransactionType.SALE,
    (EntityType.CUSTOMER, EntryType.CREDIT): TransactionType.PAYMENT,
    (EntityType.SUPPLIER, EntryType.CREDIT): TransactionType.PURCHASE,
    (EntityType.SUPPLIER, EntryType.DEBIT): TransactionType.PAYMENT,
}

GENERIC_TRANSACTION_TYPES: Dict[EntryType, TransactionType] = {
    EntryType.DEBIT: TransactionType.ODHARA,
    EntryType.CREDIT: TransactionType.JAMA,
}

ENTITY_LABELS: Dict[EntityType, EntityLabels] = {
    EntityType.CUSTOMER: EntityLabels(given="You Gave", received="You Got"),
    EntityType.SUPPLIER: EntityLabels(given="Paid to Supplier", received="Purchase on Credit"),
    EntityType.WORKER: EntityLabels(given="Paid to Karigar", received="Work Received"),
    EntityType.PARTNER: EntityLabels(given="Withdrawn by Partner", received="Invested by Partner"),
    EntityType.OTHER: EntityLabels(given="Odhara (Given)", received="Jama (Received)"),
}


def _sort_key(entry: LedgerEntry):
    return (entry.transaction_date, entry.sequence)


def compute_balance(entries: Iterable[LedgerEntry]) -> BalanceTimeline:
    """
    Replay a party's entries and derive the running balance.

    Ordering is (transaction_date, sequence) ascending, where sequence is the
    store's insertion counter, so same-day entries replay in creation order.
    Deleted entries are skipped. The result is always computed from scratch;
    nothing is carried between calls.

    Sign convention: positive balance = party owes the shop (receivable),
    negative = shop owes the party (payable).
    """
    live = sorted((e for e in entries if not e.is_deleted), key=_sort_key)

    running = ZERO
    total_debit = ZERO
    total_credit = ZERO
    rows: List[BalanceRow] = []

    for entry in live:
        if entry.entry_type == EntryType.DEBIT:
            running += entry.amount
            total_debit += entry.amount
        else:
            running -= entry.amount
            total_credit += entry.amount
        rows.append(BalanceRow(entry=entry, balance_after=running))

    return BalanceTimeline(rows=tuple(rows), total_debit=total_debit, total_credit=total_credit)


def infer_transaction_type(entity_type: EntityType, entry_type: EntryType) -> TransactionType:
    """Category used downstream when the caller does not supply one"""
    inferred = TRANSACTION_TYPE_INFERENCE.get((EntityType(entity_type), EntryType(entry_type)))
    if inferred is not None:
        return inferred
    return GENERIC_TRANSACTION_TYPES[EntryType(entry_type)]


def validate_amount(raw: Any) -> Decimal:
    """Parse amount and reject anything that is not strictly positive"""
    amount = parse_amount(raw)
    if amount is None:
        raise InvalidAmount(f"Amount must be a number, got {raw!r}")
    if not is_minor_unit(amount):
        raise InvalidAmount(f"Amount must have at most two decimal places, got {amount}")
    if amount <= ZERO:
        raise InvalidAmount(f"Amount must be greater than zero, got {amount}")
    return money(amount)


def admit_entry(
    party: Party,
    amount: Any,
    entry_type: EntryType,
    transaction_date: date,
    transaction_type: TransactionType | None = None,
    description: str | None = None,
    attachments: Sequence[Attachment] = (),
    created_at: datetime | None = None,
) -> LedgerEntry:
    """
    Validate and build a new ledger entry for a party.

    Raises:
        InvalidAmount: amount is zero, negative or non-numeric
        PartyDeleted: party is tombstoned
    """
    validated = validate_amount(amount)

    if party.is_deleted:
        raise PartyDeleted(f"Party {party.id} has been deleted")

    entry_type = EntryType(entry_type)
    if transaction_type is None:
        transaction_type = infer_transaction_type(party.entity_type, entry_type)

    return LedgerEntry(
        id=None,
        party_id=party.id,
        amount=validated,
        entry_type=entry_type,
        transaction_type=TransactionType(transaction_type),
        transaction_date=transaction_date,
        description=description,
        created_at=created_at,
        attachments=tuple(attachments),
    )


def soft_delete_entry(entry: LedgerEntry) -> LedgerEntry:
    """Mark entry invisible to future balance computations"""
    if entry.is_deleted:
        raise EntryAlreadyDeleted(f"Entry {entry.id} is already deleted")
    return replace(entry, is_deleted=True)


def display_labels(entity_type: EntityType) -> EntityLabels:
    return ENTITY_LABELS[EntityType(entity_type)]


def summarize_party(party: Party, entries: Iterable[LedgerEntry]) -> PartySummary:
    timeline = compute_balance(entries)
    last_date = timeline.rows[-1].entry.transaction_date if timeline.rows else None
    return PartySummary(
        party=party,
        total_debit=timeline.total_debit,
        total_credit=timeline.total_credit,
        current_balance=timeline.current_balance,
        transaction_count=len(timeline.rows),
        last_transaction_date=last_date,
    )


def shop_stats(summaries: Iterable[PartySummary]) -> ShopLedgerStats:
    """Aggregate receivable/payable across a shop's active parties"""
    total_parties = 0
    receivable = ZERO
    payable = ZERO
    for summary in summaries:
        if summary.party.is_deleted:
            continue
        total_parties += 1
        if summary.current_balance > 0:
            receivable += summary.current_balance
        elif summary.current_balance < 0:
            payable += -summary.current_balance

    return ShopLedgerStats(
        total_parties=total_parties,
        total_receivable=receivable,
        total_payable=payable,
        net_balance=receivable - payable,
    )
