"""Unit tests for EMI amortization schedules"""

import pytest
from dataclasses import replace
from datetime import date
from decimal import Decimal
from khata_gateway.domain.amortization import generate_amortization_schedule
from khata_gateway.domain.exceptions import InvalidLoanTerms
from khata_gateway.domain.loans import emi_amount
from khata_gateway.domain.models import Loan, RepaymentType


def test_schedule_length_matches_tenure(emi_loan: Loan):
    schedule = generate_amortization_schedule(emi_loan)

    assert len(schedule) == 12
    assert len(schedule.rows()) == 12
    assert [row.installment_number for row in schedule] == list(range(1, 13))


def test_first_row(emi_loan: Loan):
    """Month one: 1% of 100000 interest, rest of EMI goes to principal"""
    first = generate_amortization_schedule(emi_loan).rows()[0]

    assert first.due_date == date(2024, 2, 15)
    assert first.emi == Decimal("8884.88")
    assert first.interest == Decimal("1000.00")
    assert first.principal == Decimal("7884.88")
    assert first.balance == Decimal("92115.12")


def test_final_row_clears_balance(emi_loan: Loan):
    rows = generate_amortization_schedule(emi_loan).rows()

    assert rows[-1].balance == Decimal("0.00")
    assert rows[-1].due_date == date(2025, 1, 15)
    assert all(row.balance >= 0 for row in rows)


def test_balance_decreases_every_month(emi_loan: Loan):
    balances = [row.balance for row in generate_amortization_schedule(emi_loan)]

    assert balances == sorted(balances, reverse=True)
    assert len(set(balances)) == len(balances)


def test_interest_falls_as_principal_rises(emi_loan: Loan):
    rows = generate_amortization_schedule(emi_loan).rows()

    assert rows[0].interest > rows[-1].interest
    assert rows[0].principal < rows[-1].principal


def test_every_row_emi_matches_computed_emi(gold_chain):
    """50000 at 24% over 6 months: EMI column equals emi_amount on every row"""
    loan = Loan(
        id="loan-6m",
        shop_id="shop_1",
        loan_number="GL-006",
        customer_id="p-cust",
        principal_amount=Decimal("50000.00"),
        interest_rate=Decimal("24"),
        repayment_type=RepaymentType.EMI,
        start_date=date(2024, 4, 10),
        tenure_months=6,
        emi_amount=emi_amount(50000, 24, 6),
        collateral=[gold_chain],
    )

    rows = generate_amortization_schedule(loan).rows()

    assert loan.emi_amount == Decimal("8926.29")
    assert len(rows) == 6
    assert {row.emi for row in rows} == {loan.emi_amount}
    assert all(row.interest + row.principal == row.emi for row in rows)
    assert rows[0].interest == Decimal("1000.00")


def test_total_interest_close_to_emi_times_tenure_minus_principal(emi_loan: Loan):
    schedule = generate_amortization_schedule(emi_loan)
    expected = schedule.emi * 12 - emi_loan.principal_amount

    assert abs(schedule.total_interest() - expected) <= Decimal("0.12")


def test_schedule_is_deterministic_and_restartable(emi_loan: Loan):
    """Iterating twice, or building twice, yields identical rows"""
    schedule = generate_amortization_schedule(emi_loan)

    assert list(schedule) == list(schedule)
    assert generate_amortization_schedule(emi_loan).rows() == generate_amortization_schedule(emi_loan).rows()


def test_schedule_ignores_payments(emi_loan: Loan):
    """Projection depends on terms only"""
    paid = replace(emi_loan, total_amount_paid=Decimal("50000.00"))

    assert generate_amortization_schedule(paid).rows() == generate_amortization_schedule(emi_loan).rows()


def test_month_end_anchor_is_kept(emi_loan: Loan):
    """Jan 31 start: Feb clamps, later months return to month end"""
    loan = replace(emi_loan, start_date=date(2024, 1, 31))

    due_dates = [row.due_date for row in generate_amortization_schedule(loan).rows()[:4]]

    assert due_dates == [date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30), date(2024, 5, 31)]


@pytest.mark.parametrize("repayment_type", [RepaymentType.INTEREST_ONLY, RepaymentType.BULLET])
def test_only_emi_loans_have_a_schedule(emi_loan: Loan, repayment_type):
    with pytest.raises(InvalidLoanTerms):
        generate_amortization_schedule(replace(emi_loan, repayment_type=repayment_type))


def test_zero_rate_has_no_schedule(emi_loan: Loan):
    with pytest.raises(InvalidLoanTerms):
        generate_amortization_schedule(replace(emi_loan, interest_rate=Decimal("0")))


def test_missing_tenure_has_no_schedule(emi_loan: Loan):
    with pytest.raises(InvalidLoanTerms):
        generate_amortization_schedule(replace(emi_loan, tenure_months=None))
