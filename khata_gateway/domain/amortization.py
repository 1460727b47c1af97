"""EMI amortization schedule generation"""

from decimal import Decimal
from typing import Iterator, List

from khata_gateway.domain.exceptions import InvalidLoanTerms
from khata_gateway.domain.loans import emi_amount, emi_amount_exact
from khata_gateway.domain.models import InstallmentRow, Loan, RepaymentType
from khata_gateway.utils.date_utils import add_months
from khata_gateway.utils.money import ZERO, money


class AmortizationSchedule:
    """
    Lazy, finite, re-iterable EMI schedule derived purely from loan terms.

    Interest per row uses the monthly rate (annual / 12 / 100), the same
    convention as the EMI formula, so the EMI column always equals the EMI
    computed for the loan. The balance is carried unrounded; displayed
    interest and balance are rounded to the minor unit and the principal
    column is EMI minus displayed interest. Balance is floored at zero.
    """

    def __init__(self, loan: Loan):
        if loan.repayment_type != RepaymentType.EMI:
            raise InvalidLoanTerms(
                f"Amortization schedule is only defined for EMI loans, not {RepaymentType(loan.repayment_type).value}"
            )
        if not loan.tenure_months:
            raise InvalidLoanTerms("EMI loan has no tenure")

        self.principal = Decimal(loan.principal_amount)
        self.annual_rate = Decimal(loan.interest_rate)
        self.tenure_months = loan.tenure_months
        self.start_date = loan.start_date
        # Fails with InvalidLoanTerms for zero rate
        self.emi_exact = emi_amount_exact(self.principal, self.annual_rate, self.tenure_months)
        self.emi = emi_amount(self.principal, self.annual_rate, self.tenure_months)

    def __len__(self) -> int:
        return self.tenure_months

    def __iter__(self) -> Iterator[InstallmentRow]:
        monthly_rate = self.annual_rate / Decimal("12") / Decimal("100")
        balance = self.principal
        anchor_day = self.start_date.day

        for number in range(1, self.tenure_months + 1):
            interest_exact = balance * monthly_rate
            balance -= self.emi_exact - interest_exact
            # Final row closes out the sub-paisa residue of the exact arithmetic
            if number == self.tenure_months or balance < 0:
                balance = ZERO

            interest = money(interest_exact)
            yield InstallmentRow(
                installment_number=number,
                due_date=add_months(self.start_date, number, day=anchor_day),
                emi=self.emi,
                interest=interest,
                principal=self.emi - interest,
                balance=money(balance),
            )

    def rows(self) -> List[InstallmentRow]:
        return list(self)

    def total_interest(self) -> Decimal:
        return sum((row.interest for row in self), ZERO)


def generate_amortization_schedule(loan: Loan) -> AmortizationSchedule:
    """
    Build the EMI schedule for a loan.

    Raises:
        InvalidLoanTerms: loan is not EMI, has no tenure or a zero rate
    """
    return AmortizationSchedule(loan)
