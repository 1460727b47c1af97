"""Loan endpoints - opening, payments, closure, schedule and reminders"""

import time
from datetime import date
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import List

from khata_gateway.api.dependencies import get_actor, get_reminder_client, get_request_id
from khata_gateway.api.errors import domain_errors
from khata_gateway.api.v1.schemas import (
    CloseLoanRequest,
    CloseLoanResponse,
    CollateralSchema,
    InstallmentSchema,
    LoanCreate,
    LoanResponse,
    PaymentCreate,
    PaymentResponse,
    PaymentSchema,
    ReminderResponse,
    ScheduleResponse,
)
from khata_gateway.config import settings
from khata_gateway.domain.amortization import generate_amortization_schedule
from khata_gateway.domain.exceptions import PartyDeleted
from khata_gateway.domain.loans import (
    OPEN_STATUSES,
    bullet_payoff_amount,
    close_loan,
    disbursement_entry,
    effective_status,
    loan_to_value,
    monthly_interest,
    next_due_date,
    open_loan,
    outstanding_principal,
    record_payment,
)
from khata_gateway.domain.models import CollateralItem, Loan, LoanStatus, RepaymentType
from khata_gateway.domain.reminders import build_reminder
from khata_gateway.infrastructure.clients.reminders import ReminderClient
from khata_gateway.infrastructure.database.repositories import LedgerRepository, LoanRepository, PartyRepository
from khata_gateway.infrastructure.database.session import get_db
from khata_gateway.infrastructure.observability.logging import log_audit
from khata_gateway.infrastructure.observability.metrics import (
    loan_opened_counter,
    record_closure,
    record_payment_metrics,
)
from khata_gateway.utils.money import format_amount

router = APIRouter()


def _loan_response(loan: Loan, today: date) -> LoanResponse:
    is_open = loan.status in OPEN_STATUSES
    return LoanResponse(
        id=loan.id,
        shop_id=loan.shop_id,
        loan_number=loan.loan_number,
        customer_id=loan.customer_id,
        principal_amount=loan.principal_amount,
        interest_rate=loan.interest_rate,
        repayment_type=loan.repayment_type,
        tenure_months=loan.tenure_months,
        emi_amount=loan.emi_amount,
        start_date=loan.start_date,
        end_date=loan.end_date,
        status=loan.status,
        effective_status=effective_status(loan, today),
        total_amount_paid=loan.total_amount_paid,
        outstanding_principal=outstanding_principal(loan),
        monthly_interest=monthly_interest(loan.principal_amount, loan.interest_rate),
        next_due_date=next_due_date(loan.start_date, today) if is_open else None,
        loan_to_value=loan_to_value(loan),
        bullet_payoff_amount=(
            bullet_payoff_amount(loan) if loan.repayment_type == RepaymentType.BULLET else None
        ),
        settlement_amount=loan.settlement_amount,
        settlement_notes=loan.settlement_notes,
        closed_on=loan.closed_on,
        collateral=[CollateralSchema(**vars(item)) for item in loan.collateral],
        payments=[
            PaymentSchema(
                id=p.id,
                amount=p.amount,
                payment_type=p.payment_type,
                payment_method=p.payment_method,
                payment_date=p.payment_date,
                notes=p.notes,
            )
            for p in loan.payments
        ],
        version=loan.version,
    )


@router.post("/loans", response_model=LoanResponse, status_code=201)
def create_loan(
    request_body: LoanCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Open a collateral-backed loan.

    Flow:
    1. Load borrower (must exist and not be deleted)
    2. Validate terms, compute EMI and end date
    3. Persist loan + collateral (loan number unique per shop)
    4. Optionally post the LOAN_GIVEN debit to the borrower's khata
    5. Commit all of it as one unit
    """
    request_id = get_request_id(request)
    with domain_errors(db, request_id, "create_loan"):
        borrower = PartyRepository(db).get_party(request_body.customer_id)
        if borrower.is_deleted:
            raise PartyDeleted(f"Customer {borrower.name} has been deleted")

        loan = open_loan(
            shop_id=request_body.shop_id,
            loan_number=request_body.loan_number,
            customer_id=borrower.id,
            principal_amount=request_body.principal_amount,
            interest_rate=request_body.interest_rate,
            repayment_type=request_body.repayment_type,
            start_date=request_body.start_date,
            collateral=[CollateralItem(**item.model_dump()) for item in request_body.collateral],
            tenure_months=request_body.tenure_months,
        )
        entry = disbursement_entry(loan, borrower) if request_body.record_in_khata else None

        saved = LoanRepository(db).create_loan(loan)
        if entry is not None:
            LedgerRepository(db).append_entry(saved.shop_id, entry)
        db.commit()

        loan_opened_counter.labels(repayment_type=saved.repayment_type.value).inc()
        log_audit(
            request_id,
            get_actor(request),
            saved.shop_id,
            "loan",
            saved.id,
            "create",
            loan_number=saved.loan_number,
            principal_amount=saved.principal_amount,
            interest_rate=saved.interest_rate,
            repayment_type=saved.repayment_type.value,
            recorded_in_khata=entry is not None,
        )
        return _loan_response(saved, date.today())


@router.get("/loans", response_model=List[LoanResponse])
def list_loans(
    request: Request,
    shop_id: str = Query(..., description="Shop identifier"),
    status: LoanStatus | None = Query(None, description="Filter by stored status"),
    db: Session = Depends(get_db),
):
    with domain_errors(db, get_request_id(request), "list_loans"):
        today = date.today()
        return [_loan_response(loan, today) for loan in LoanRepository(db).list_loans(shop_id, status)]


@router.get("/loans/{loan_id}", response_model=LoanResponse)
def get_loan(loan_id: str, request: Request, db: Session = Depends(get_db)):
    """Loan with outstanding principal, interest and due date derived at read time"""
    with domain_errors(db, get_request_id(request), "get_loan"):
        return _loan_response(LoanRepository(db).load_loan(loan_id), date.today())


@router.get("/loans/{loan_id}/schedule", response_model=ScheduleResponse)
def get_schedule(loan_id: str, request: Request, db: Session = Depends(get_db)):
    """EMI amortization schedule; 422 for non-EMI loans"""
    with domain_errors(db, get_request_id(request), "get_schedule"):
        loan = LoanRepository(db).load_loan(loan_id)
        schedule = generate_amortization_schedule(loan)
        return ScheduleResponse(
            loan_id=loan.id,
            emi_amount=schedule.emi,
            total_interest=schedule.total_interest(),
            installments=[InstallmentSchema(**vars(row)) for row in schedule],
        )


@router.post("/loans/{loan_id}/payments", response_model=PaymentResponse, status_code=201)
def create_payment(
    loan_id: str,
    request_body: PaymentCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Record a payment against a loan.

    The loan is re-read before applying the payment, and the payment row and
    the new running total are committed together. A concurrent write to the
    same loan makes this request fail with 409 instead of losing an update.
    """
    request_id = get_request_id(request)
    with domain_errors(db, request_id, "record_payment"):
        loan_repo = LoanRepository(db)
        loan = loan_repo.load_loan(loan_id)

        result = record_payment(
            loan,
            request_body.amount,
            request_body.payment_type,
            request_body.payment_method,
            notes=request_body.notes,
            payment_date=request_body.payment_date,
        )
        payment = loan_repo.append_payment(loan.id, result.payment)
        loan_repo.update_loan(result.loan)
        db.commit()

        record_payment_metrics(payment.payment_type.value, payment.amount)
        log_audit(
            request_id,
            get_actor(request),
            loan.shop_id,
            "loan_payment",
            payment.id,
            "create",
            loan_id=loan.id,
            loan_number=loan.loan_number,
            amount=payment.amount,
            payment_type=payment.payment_type.value,
            payment_method=payment.payment_method.value,
            previous_total=result.previous_total,
            new_total=result.loan.total_amount_paid,
        )
        return PaymentResponse(
            payment_id=payment.id,
            loan_id=loan.id,
            amount=payment.amount,
            previous_total=result.previous_total,
            new_total=result.loan.total_amount_paid,
            outstanding_principal=outstanding_principal(result.loan),
            message=(
                f"Payment of {format_amount(payment.amount, settings.currency_symbol)} "
                f"recorded for loan #{loan.loan_number}"
            ),
        )


@router.post("/loans/{loan_id}/close", response_model=CloseLoanResponse)
def settle_loan(
    loan_id: str,
    request_body: CloseLoanRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Close a loan once all collateral has been handed back.

    collateral_confirmed must be true; settlement defaults to total paid.
    """
    request_id = get_request_id(request)
    with domain_errors(db, request_id, "close_loan"):
        loan_repo = LoanRepository(db)
        loan = loan_repo.load_loan(loan_id)

        closed = close_loan(
            loan,
            request_body.collateral_confirmed,
            settlement_amount=request_body.settlement_amount,
            settlement_notes=request_body.settlement_notes,
            closed_on=request_body.closed_on,
        )
        loan_repo.update_loan(closed)
        db.commit()

        outstanding = outstanding_principal(closed)
        record_closure(closed.settlement_amount, closed.principal_amount)
        log_audit(
            request_id,
            get_actor(request),
            closed.shop_id,
            "loan",
            closed.id,
            "close",
            loan_number=closed.loan_number,
            settlement_amount=closed.settlement_amount,
            outstanding=outstanding,
            collateral_returned=True,
        )
        return CloseLoanResponse(
            loan_id=closed.id,
            loan_number=closed.loan_number,
            status=closed.status,
            settlement_amount=closed.settlement_amount,
            outstanding=outstanding,
            closed_on=closed.closed_on,
            message=f"Loan #{closed.loan_number} closed successfully. Collateral returned to customer.",
        )


@router.post("/loans/{loan_id}/reminders", response_model=ReminderResponse, status_code=202)
async def send_reminder(
    loan_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    shop_name: str | None = Query(None, description="Signature appended to the message"),
    db: Session = Depends(get_db),
    reminder_client: ReminderClient = Depends(get_reminder_client),
):
    """
    Queue a payment reminder for the borrower.

    Delivery to the messaging webhook happens after the response is sent.
    """
    start_time = time.time()
    request_id = get_request_id(request)
    with domain_errors(db, request_id, "send_reminder"):
        loan = LoanRepository(db).load_loan(loan_id)
        borrower = PartyRepository(db).get_party(loan.customer_id)
        reminder = build_reminder(
            loan,
            date.today(),
            customer_name=borrower.name,
            phone=borrower.phone,
            shop_name=shop_name,
            currency_symbol=settings.currency_symbol,
        )
        background_tasks.add_task(reminder_client.send_reminder, reminder)

        log_audit(
            request_id,
            get_actor(request),
            loan.shop_id,
            "loan",
            loan.id,
            "remind",
            loan_number=loan.loan_number,
            amount_due=reminder.amount_due,
            due_date=reminder.due_date.isoformat(),
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return ReminderResponse(
            loan_number=reminder.loan_number,
            phone=reminder.phone,
            amount_due=reminder.amount_due,
            due_date=reminder.due_date,
            message=reminder.message,
        )
