"""Unit tests for the loan accounting engine"""

import pytest
from dataclasses import replace
from datetime import date
from decimal import Decimal
from khata_gateway.domain.exceptions import (
    CollateralNotConfirmed,
    InvalidAmount,
    InvalidLoanTerms,
    InvalidStateTransition,
    PartyDeleted,
)
from khata_gateway.domain.loans import (
    bullet_payoff_amount,
    close_loan,
    disbursement_entry,
    effective_status,
    emi_amount,
    loan_to_value,
    monthly_interest,
    next_due_date,
    open_loan,
    outstanding_principal,
    record_payment,
)
from khata_gateway.domain.models import (
    CollateralItem,
    EntryType,
    Loan,
    LoanStatus,
    Party,
    PaymentMethod,
    PaymentType,
    RepaymentType,
    TransactionType,
)


def test_monthly_interest():
    """100000 x 24 / 1200"""
    assert monthly_interest(100000, 24) == Decimal("2000.00")


def test_monthly_interest_fractional_rate():
    assert monthly_interest(Decimal("75000"), Decimal("18.5")) == Decimal("1156.25")


def test_emi_amount_pinned_values():
    assert emi_amount(100000, 12, 12) == Decimal("8884.88")
    assert emi_amount(50000, 24, 6) == Decimal("8926.29")


@pytest.mark.parametrize("rate,months", [(0, 12), (12, 0), (-5, 12), (12, -3)])
def test_emi_amount_undefined_terms(rate, months):
    """Zero rate or tenure fails instead of returning 0 or NaN"""
    with pytest.raises(InvalidLoanTerms):
        emi_amount(100000, rate, months)


def test_emi_amount_rejects_non_integer_tenure():
    with pytest.raises(InvalidLoanTerms):
        emi_amount(100000, 12, 6.5)


def test_outstanding_principal_never_negative(emi_loan: Loan):
    overpaid = replace(emi_loan, total_amount_paid=Decimal("125000.00"))

    assert outstanding_principal(overpaid) == Decimal("0.00")


def test_outstanding_principal(emi_loan: Loan):
    partly_paid = replace(emi_loan, total_amount_paid=Decimal("30000.00"))

    assert outstanding_principal(partly_paid) == Decimal("70000.00")


class TestNextDueDate:
    """Due day is anchored on the start date's day-of-month"""

    def test_later_this_month(self):
        assert next_due_date(date(2024, 1, 15), date(2024, 3, 10)) == date(2024, 3, 15)

    def test_due_today(self):
        assert next_due_date(date(2024, 1, 15), date(2024, 3, 15)) == date(2024, 3, 15)

    def test_rolls_to_next_month_once_passed(self):
        assert next_due_date(date(2024, 1, 15), date(2024, 3, 20)) == date(2024, 4, 15)

    def test_rolls_over_year_end(self):
        assert next_due_date(date(2024, 1, 15), date(2024, 12, 20)) == date(2025, 1, 15)

    def test_jan_31_clamps_to_leap_february(self):
        assert next_due_date(date(2024, 1, 31), date(2024, 2, 10)) == date(2024, 2, 29)

    def test_jan_31_clamps_to_february(self):
        assert next_due_date(date(2023, 1, 31), date(2023, 2, 1)) == date(2023, 2, 28)

    def test_clamped_day_equal_to_today(self):
        assert next_due_date(date(2024, 1, 31), date(2024, 2, 29)) == date(2024, 2, 29)

    def test_anchor_restored_after_short_month(self):
        """After a clamped February the 31st comes back in March"""
        assert next_due_date(date(2024, 1, 31), date(2024, 3, 1)) == date(2024, 3, 31)

    def test_thirty_day_month(self):
        assert next_due_date(date(2024, 1, 31), date(2024, 4, 5)) == date(2024, 4, 30)


class TestOpenLoan:
    """Loan creation validation"""

    def test_emi_loan_gets_emi_and_end_date(self, gold_chain: CollateralItem):
        loan = open_loan(
            shop_id="shop_1",
            loan_number="GL-100",
            customer_id="p-cust",
            principal_amount="100000",
            interest_rate="12",
            repayment_type=RepaymentType.EMI,
            start_date=date(2024, 1, 31),
            collateral=[gold_chain],
            tenure_months=12,
        )

        assert loan.status == LoanStatus.ACTIVE
        assert loan.emi_amount == Decimal("8884.88")
        assert loan.end_date == date(2025, 1, 31)
        assert loan.total_amount_paid == Decimal("0.00")
        assert loan.id is None

    def test_interest_only_without_tenure(self, gold_chain: CollateralItem):
        loan = open_loan("shop_1", "GL-101", "p-cust", "50000", "24", RepaymentType.INTEREST_ONLY, date(2024, 1, 1), [gold_chain])

        assert loan.emi_amount is None
        assert loan.end_date is None

    @pytest.mark.parametrize("repayment_type", [RepaymentType.EMI, RepaymentType.BULLET])
    def test_tenure_required(self, gold_chain: CollateralItem, repayment_type):
        with pytest.raises(InvalidLoanTerms):
            open_loan("shop_1", "GL-102", "p-cust", "50000", "24", repayment_type, date(2024, 1, 1), [gold_chain])

    def test_collateral_required(self):
        with pytest.raises(InvalidLoanTerms):
            open_loan("shop_1", "GL-103", "p-cust", "50000", "24", RepaymentType.INTEREST_ONLY, date(2024, 1, 1), [])

    @pytest.mark.parametrize("rate", ["-1", "100.5", "abc"])
    def test_rate_out_of_range(self, gold_chain: CollateralItem, rate):
        with pytest.raises(InvalidLoanTerms):
            open_loan("shop_1", "GL-104", "p-cust", "50000", rate, RepaymentType.INTEREST_ONLY, date(2024, 1, 1), [gold_chain])

    def test_rate_finer_than_stored_precision(self, gold_chain: CollateralItem):
        with pytest.raises(InvalidLoanTerms, match="four decimal places"):
            open_loan("shop_1", "GL-107", "p-cust", "50000", "12.00004", RepaymentType.EMI, date(2024, 1, 1), [gold_chain], tenure_months=6)

    def test_emi_loan_with_zero_rate(self, gold_chain: CollateralItem):
        with pytest.raises(InvalidLoanTerms):
            open_loan("shop_1", "GL-105", "p-cust", "50000", "0", RepaymentType.EMI, date(2024, 1, 1), [gold_chain], tenure_months=6)

    @pytest.mark.parametrize("principal", ["0", "-50000", "lots"])
    def test_invalid_principal(self, gold_chain: CollateralItem, principal):
        with pytest.raises(InvalidAmount):
            open_loan("shop_1", "GL-106", "p-cust", principal, "24", RepaymentType.INTEREST_ONLY, date(2024, 1, 1), [gold_chain])

    def test_negative_collateral_weight(self, gold_chain: CollateralItem):
        bad = replace(gold_chain, net_weight=Decimal("-1"))

        with pytest.raises(InvalidLoanTerms):
            open_loan("shop_1", "GL-107", "p-cust", "50000", "24", RepaymentType.INTEREST_ONLY, date(2024, 1, 1), [bad])


def test_disbursement_entry(emi_loan: Loan, customer: Party):
    entry = disbursement_entry(emi_loan, customer)

    assert entry.entry_type == EntryType.DEBIT
    assert entry.transaction_type == TransactionType.LOAN_GIVEN
    assert entry.amount == Decimal("100000.00")
    assert entry.transaction_date == emi_loan.start_date
    assert entry.description == "Loan Disbursed #GL-001 (Principal)"


def test_disbursement_entry_for_deleted_borrower(emi_loan: Loan, customer: Party):
    customer.is_deleted = True

    with pytest.raises(PartyDeleted):
        disbursement_entry(emi_loan, customer)


class TestRecordPayment:
    """Payment application"""

    def test_updates_total_and_history(self, emi_loan: Loan):
        result = record_payment(emi_loan, "8884.88", PaymentType.PRINCIPAL, PaymentMethod.UPI, payment_date=date(2024, 2, 15))

        assert result.previous_total == Decimal("0.00")
        assert result.loan.total_amount_paid == Decimal("8884.88")
        assert result.loan.payments == [result.payment]
        assert result.payment.loan_id == emi_loan.id
        assert result.payment.payment_date == date(2024, 2, 15)

    def test_input_loan_is_not_mutated(self, emi_loan: Loan):
        record_payment(emi_loan, "1000", PaymentType.INTEREST, PaymentMethod.CASH)

        assert emi_loan.total_amount_paid == Decimal("0.00")
        assert emi_loan.payments == []

    def test_overpayment_is_accepted(self, emi_loan: Loan):
        result = record_payment(emi_loan, "150000", PaymentType.FULL_SETTLEMENT, PaymentMethod.BANK_TRANSFER)

        assert result.loan.total_amount_paid == Decimal("150000.00")
        assert outstanding_principal(result.loan) == Decimal("0.00")

    @pytest.mark.parametrize("amount", ["0", "-100", "abc"])
    def test_rejects_invalid_amount(self, emi_loan: Loan, amount):
        with pytest.raises(InvalidAmount):
            record_payment(emi_loan, amount, PaymentType.PRINCIPAL, PaymentMethod.CASH)

    def test_overdue_loan_accepts_payment(self, emi_loan: Loan):
        overdue = replace(emi_loan, status=LoanStatus.OVERDUE)

        result = record_payment(overdue, "500", PaymentType.INTEREST, PaymentMethod.CASH)

        assert result.loan.total_amount_paid == Decimal("500.00")

    @pytest.mark.parametrize("status", [LoanStatus.CLOSED, LoanStatus.REJECTED])
    def test_rejects_terminal_loan_before_amount(self, emi_loan: Loan, status):
        """Status is checked first, even for an invalid amount"""
        terminal = replace(emi_loan, status=status)

        with pytest.raises(InvalidStateTransition):
            record_payment(terminal, "-1", PaymentType.PRINCIPAL, PaymentMethod.CASH)


class TestCloseLoan:
    """Closure workflow"""

    @pytest.mark.parametrize("confirmed", [False, None, "true", 1])
    @pytest.mark.parametrize("settlement", [None, "100000", "-5"])
    def test_requires_collateral_confirmation(self, emi_loan: Loan, confirmed, settlement):
        """Unconfirmed collateral fails regardless of other arguments"""
        with pytest.raises(CollateralNotConfirmed):
            close_loan(emi_loan, confirmed, settlement_amount=settlement)

    def test_collateral_gate_checked_before_status(self, emi_loan: Loan):
        closed = replace(emi_loan, status=LoanStatus.CLOSED)

        with pytest.raises(CollateralNotConfirmed):
            close_loan(closed, False)

    def test_settlement_defaults_to_total_paid(self, emi_loan: Loan):
        paid = replace(emi_loan, total_amount_paid=Decimal("106618.56"))

        closed = close_loan(paid, True, closed_on=date(2025, 1, 15))

        assert closed.status == LoanStatus.CLOSED
        assert closed.settlement_amount == Decimal("106618.56")
        assert closed.closed_on == date(2025, 1, 15)

    def test_explicit_settlement_may_differ_from_outstanding(self, emi_loan: Loan):
        closed = close_loan(emi_loan, True, settlement_amount="95000", settlement_notes="Waived 5000 on festival")

        assert closed.settlement_amount == Decimal("95000.00")
        assert closed.settlement_notes == "Waived 5000 on festival"
        assert closed.closed_on == date.today()

    def test_rejects_non_positive_settlement(self, emi_loan: Loan):
        with pytest.raises(InvalidAmount):
            close_loan(emi_loan, True, settlement_amount="0")

    def test_closed_loan_rejects_payment_and_second_close(self, emi_loan: Loan):
        closed = close_loan(emi_loan, True)

        with pytest.raises(InvalidStateTransition):
            record_payment(closed, "100", PaymentType.PRINCIPAL, PaymentMethod.CASH)
        with pytest.raises(InvalidStateTransition):
            close_loan(closed, True)

    def test_version_is_left_to_storage(self, emi_loan: Loan):
        assert close_loan(emi_loan, True).version == emi_loan.version


class TestReadTimeFigures:
    """Status and amounts derived on read"""

    def test_overdue_after_end_date_with_principal_outstanding(self, emi_loan: Loan):
        assert effective_status(emi_loan, date(2025, 2, 1)) == LoanStatus.OVERDUE

    def test_active_before_end_date(self, emi_loan: Loan):
        assert effective_status(emi_loan, date(2024, 6, 1)) == LoanStatus.ACTIVE

    def test_paying_down_reads_active_again(self, emi_loan: Loan):
        paid = replace(emi_loan, total_amount_paid=Decimal("100000.00"))

        assert effective_status(paid, date(2025, 2, 1)) == LoanStatus.ACTIVE

    def test_closed_stays_closed(self, emi_loan: Loan):
        closed = replace(emi_loan, status=LoanStatus.CLOSED)

        assert effective_status(closed, date(2030, 1, 1)) == LoanStatus.CLOSED

    def test_open_ended_loan_never_overdue(self, interest_only_loan: Loan):
        assert effective_status(interest_only_loan, date(2030, 1, 1)) == LoanStatus.ACTIVE

    def test_bullet_payoff(self, interest_only_loan: Loan):
        bullet = replace(interest_only_loan, repayment_type=RepaymentType.BULLET, tenure_months=6)

        assert bullet_payoff_amount(bullet) == Decimal("112000.00")

    def test_loan_to_value(self, emi_loan: Loan):
        assert loan_to_value(emi_loan) == Decimal("66.67")

    def test_loan_to_value_without_valuation(self, emi_loan: Loan, gold_chain: CollateralItem):
        unvalued = replace(emi_loan, collateral=[replace(gold_chain, estimated_value=Decimal("0"))])

        assert loan_to_value(unvalued) == Decimal("0")
