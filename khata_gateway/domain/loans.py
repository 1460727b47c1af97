"""Loan accounting engine - interest, EMI, payments and the closure workflow"""

from dataclasses import replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

from khata_gateway.domain.exceptions import (
    CollateralNotConfirmed,
    InvalidAmount,
    InvalidLoanTerms,
    InvalidStateTransition,
)
from khata_gateway.domain.ledger import admit_entry, validate_amount
from khata_gateway.domain.models import (
    CollateralItem,
    EntryType,
    LedgerEntry,
    Loan,
    LoanPayment,
    LoanStatus,
    Party,
    PaymentMethod,
    PaymentResult,
    PaymentType,
    RepaymentType,
    TransactionType,
)
from khata_gateway.utils.date_utils import add_months, clamp_day
from khata_gateway.utils.money import ZERO, money

# Stored statuses that still accept payments and closure. OVERDUE is normally derived on read.
OPEN_STATUSES = (LoanStatus.ACTIVE, LoanStatus.OVERDUE)

MAX_INTEREST_RATE = Decimal("100")
# Rates are stored with four decimal places
RATE_QUANTUM = Decimal("0.0001")


def _as_decimal(value: Any, what: str) -> Decimal:
    # Parsed exactly as given; callers check precision
    if value is None or isinstance(value, bool):
        raise InvalidLoanTerms(f"{what} must be a number, got {value!r}")
    try:
        parsed = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidLoanTerms(f"{what} must be a number, got {value!r}") from e
    if not parsed.is_finite():
        raise InvalidLoanTerms(f"{what} must be a finite number")
    return parsed


def monthly_interest(principal: Any, annual_rate_percent: Any) -> Decimal:
    """
    Simple interest for one month: principal * annual_rate / 1200.

    Computed fresh from principal on every call; never compounded.
    """
    principal = _as_decimal(principal, "Principal")
    rate = _as_decimal(annual_rate_percent, "Interest rate")
    return money(principal * rate / Decimal("1200"))


def next_due_date(start_date: date, today: date) -> date:
    """
    Next monthly due date, anchored on the day-of-month of start_date.

    If the anchor day is earlier than today in the current month the due date
    moves to the following month. Anchor days that do not exist in the target
    month are clamped to its last day (start Jan 31 -> due Feb 28/29).
    """
    due_day = start_date.day
    candidate = clamp_day(today.year, today.month, due_day)
    if candidate < today:
        candidate = add_months(candidate, 1, day=due_day)
    return candidate


def emi_amount_exact(principal: Any, annual_rate_percent: Any, months: int) -> Decimal:
    """
    Unrounded reducing-balance EMI.

    emi = P * r * (1 + r)^n / ((1 + r)^n - 1), with r = annual_rate / 12 / 100

    Raises:
        InvalidLoanTerms: rate or tenure is zero/negative (formula undefined)
    """
    principal = _as_decimal(principal, "Principal")
    rate = _as_decimal(annual_rate_percent, "Interest rate")

    if isinstance(months, bool) or not isinstance(months, int):
        raise InvalidLoanTerms(f"Tenure must be a whole number of months, got {months!r}")
    if rate <= 0:
        raise InvalidLoanTerms("EMI is undefined unless the interest rate is positive")
    if months <= 0:
        raise InvalidLoanTerms("EMI is undefined unless the tenure is at least one month")
    if principal <= 0:
        raise InvalidLoanTerms("Principal must be greater than zero")

    monthly_rate = rate / Decimal("12") / Decimal("100")
    factor = (1 + monthly_rate) ** months
    return principal * monthly_rate * factor / (factor - 1)


def emi_amount(principal: Any, annual_rate_percent: Any, months: int) -> Decimal:
    """EMI rounded to the minor currency unit, e.g. (100000, 12, 12) -> 8884.88"""
    return money(emi_amount_exact(principal, annual_rate_percent, months))


def outstanding_principal(loan: Loan) -> Decimal:
    """Principal not yet covered by payments; never negative"""
    return max(ZERO, money(loan.principal_amount - loan.total_amount_paid))


def bullet_payoff_amount(loan: Loan) -> Decimal:
    """Principal plus simple monthly interest for the whole tenure, due at term end"""
    if not loan.tenure_months:
        raise InvalidLoanTerms("Bullet payoff requires a tenure")
    interest = monthly_interest(loan.principal_amount, loan.interest_rate)
    return money(loan.principal_amount + interest * loan.tenure_months)


def loan_to_value(loan: Loan) -> Decimal:
    """Principal as a percentage of total collateral estimated value"""
    total_value = sum((item.estimated_value for item in loan.collateral), ZERO)
    if total_value <= 0:
        return ZERO
    return money(loan.principal_amount / total_value * 100)


def effective_status(loan: Loan, today: date) -> LoanStatus:
    """
    Status as seen on read.

    Open loans past their end date with principal still outstanding read as
    OVERDUE; paying them down reads as ACTIVE again. Nothing is written.
    """
    if loan.status not in OPEN_STATUSES:
        return loan.status
    if loan.end_date is not None and today > loan.end_date and outstanding_principal(loan) > 0:
        return LoanStatus.OVERDUE
    return LoanStatus.ACTIVE


def _ensure_open(loan: Loan, action: str) -> None:
    if loan.status not in OPEN_STATUSES:
        raise InvalidStateTransition(
            f"Cannot {action}: loan #{loan.loan_number} is {LoanStatus(loan.status).value}"
        )


def open_loan(
    shop_id: str,
    loan_number: str,
    customer_id: str,
    principal_amount: Any,
    interest_rate: Any,
    repayment_type: RepaymentType,
    start_date: date,
    collateral: Sequence[CollateralItem],
    tenure_months: int | None = None,
) -> Loan:
    """
    Validate terms and build a new ACTIVE loan.

    EMI and BULLET loans need a tenure; EMI loans get their EMI computed here
    once and stored. End date is start date plus tenure months.
    """
    try:
        principal = validate_amount(principal_amount)
    except InvalidAmount as e:
        raise InvalidAmount(f"Principal: {e}") from e

    rate = _as_decimal(interest_rate, "Interest rate")
    if rate < 0 or rate > MAX_INTEREST_RATE:
        raise InvalidLoanTerms(f"Interest rate must be between 0 and 100, got {rate}")
    if rate != rate.quantize(RATE_QUANTUM):
        raise InvalidLoanTerms(f"Interest rate must have at most four decimal places, got {rate}")

    repayment_type = RepaymentType(repayment_type)
    if repayment_type in (RepaymentType.EMI, RepaymentType.BULLET) and not tenure_months:
        raise InvalidLoanTerms(f"Tenure is required for {repayment_type.value} loans")
    if tenure_months is not None and tenure_months < 1:
        raise InvalidLoanTerms("Tenure must be at least one month")

    if not collateral:
        raise InvalidLoanTerms("At least one collateral item is required")
    for item in collateral:
        if item.gross_weight < 0 or item.net_weight < 0:
            raise InvalidLoanTerms(f"Collateral '{item.item_name}' has a negative weight")

    emi = emi_amount(principal, rate, tenure_months) if repayment_type == RepaymentType.EMI else None
    end_date = add_months(start_date, tenure_months) if tenure_months else None

    return Loan(
        id=None,
        shop_id=shop_id,
        loan_number=loan_number,
        customer_id=customer_id,
        principal_amount=principal,
        interest_rate=rate,
        repayment_type=repayment_type,
        tenure_months=tenure_months,
        emi_amount=emi,
        start_date=start_date,
        end_date=end_date,
        status=LoanStatus.ACTIVE,
        collateral=list(collateral),
    )


def disbursement_entry(loan: Loan, borrower: Party) -> LedgerEntry:
    """Khata DEBIT recording the principal handed to the borrower"""
    return admit_entry(
        borrower,
        loan.principal_amount,
        EntryType.DEBIT,
        loan.start_date,
        transaction_type=TransactionType.LOAN_GIVEN,
        description=f"Loan Disbursed #{loan.loan_number} (Principal)",
    )


def record_payment(
    loan: Loan,
    amount: Any,
    payment_type: PaymentType,
    payment_method: PaymentMethod,
    notes: str | None = None,
    payment_date: date | None = None,
) -> PaymentResult:
    """
    Apply a payment to a freshly loaded loan.

    Status is checked before anything else. Overpayment against the
    outstanding principal is accepted. The returned payment and loan must be
    persisted together.

    Raises:
        InvalidStateTransition: loan is CLOSED or REJECTED
        InvalidAmount: amount is zero, negative or non-numeric
    """
    _ensure_open(loan, "record a payment")
    validated = validate_amount(amount)

    payment = LoanPayment(
        id=None,
        loan_id=loan.id,
        amount=validated,
        payment_type=PaymentType(payment_type),
        payment_method=PaymentMethod(payment_method),
        payment_date=payment_date or date.today(),
        notes=notes,
    )
    previous_total = money(loan.total_amount_paid)
    updated = replace(
        loan,
        total_amount_paid=money(previous_total + validated),
        payments=[*loan.payments, payment],
    )
    return PaymentResult(payment=payment, loan=updated, previous_total=previous_total)


def close_loan(
    loan: Loan,
    collateral_confirmed: bool,
    settlement_amount: Any = None,
    settlement_notes: str | None = None,
    closed_on: date | None = None,
) -> Loan:
    """
    Close a loan after collateral has been handed back.

    The collateral gate is checked first and cannot be bypassed by any other
    argument. Settlement defaults to the total paid so far. CLOSED is terminal.

    Raises:
        CollateralNotConfirmed: collateral_confirmed is not exactly True
        InvalidStateTransition: loan is already CLOSED or REJECTED
        InvalidAmount: settlement amount supplied but not positive
    """
    if collateral_confirmed is not True:
        raise CollateralNotConfirmed("Confirm that all collateral has been returned to the customer")

    _ensure_open(loan, "close loan")

    if settlement_amount is None:
        settlement = money(loan.total_amount_paid)
    else:
        settlement = validate_amount(settlement_amount)

    return replace(
        loan,
        status=LoanStatus.CLOSED,
        settlement_amount=settlement,
        settlement_notes=settlement_notes,
        closed_on=closed_on or date.today(),
    )
