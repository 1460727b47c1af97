"""Payment reminder payloads for the messaging service"""

from datetime import date
from decimal import Decimal

from khata_gateway.domain.exceptions import InvalidStateTransition
from khata_gateway.domain.loans import OPEN_STATUSES, monthly_interest, next_due_date
from khata_gateway.domain.models import Loan, LoanStatus, Reminder, RepaymentType
from khata_gateway.utils.money import format_amount


def amount_due_for(loan: Loan) -> Decimal:
    """Installment the borrower owes on the next due date"""
    if loan.repayment_type == RepaymentType.EMI and loan.emi_amount is not None:
        return loan.emi_amount
    return monthly_interest(loan.principal_amount, loan.interest_rate)


def build_reminder(
    loan: Loan,
    today: date,
    customer_name: str,
    phone: str | None = None,
    shop_name: str | None = None,
    currency_symbol: str = "₹",
) -> Reminder:
    """
    Format the reminder text; sending is the messaging client's job.

    Raises:
        InvalidStateTransition: loan is no longer open
    """
    if loan.status not in OPEN_STATUSES:
        raise InvalidStateTransition(
            f"Cannot send a reminder for loan #{loan.loan_number}: it is {LoanStatus(loan.status).value}"
        )

    amount = amount_due_for(loan)
    due = next_due_date(loan.start_date, today)
    kind = "EMI" if loan.repayment_type == RepaymentType.EMI else "interest"

    message = (
        f"Dear {customer_name}, your {kind} payment of {format_amount(amount, currency_symbol)} "
        f"for loan #{loan.loan_number} is due on {due.strftime('%d %b %Y')}."
    )
    if shop_name:
        message += f" - {shop_name}"

    return Reminder(
        loan_number=loan.loan_number,
        phone=phone,
        amount_due=amount,
        due_date=due,
        message=message,
    )
