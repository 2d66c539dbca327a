from datetime import date
from decimal import Decimal

from loanbook.engine.projection import project_loan
from loanbook.engine.reconcile import reconcile
from loanbook.engine.summary import summarize
from loanbook.models.loan import LoanDefinition, Payment
from loanbook.models.results import ReconciliationResult


class TestFixedTermSummary:
    def test_fresh_loan(self, price_loan):
        result = reconcile(price_loan, [], date(2023, 12, 1))
        s = summarize(price_loan, result)
        assert s.paid_count == 0
        assert s.total_installments == 12
        assert s.progress_pct == Decimal("0.00")
        assert s.next_installment.number == 1
        assert s.current_balance == Decimal("1200")
        assert not s.is_paid_off

    def test_partway(self, price_loan):
        pmt = project_loan(price_loan).monthly_payment
        payments = [Payment(amount=pmt, date=date(2024, m, 1)) for m in (2, 3, 4)]
        s = summarize(price_loan, reconcile(price_loan, payments, date(2024, 4, 15)))
        assert s.paid_count == 3
        assert s.progress_pct == Decimal("25.00")
        assert s.next_installment.number == 4
        assert s.next_installment.due_date == date(2024, 5, 1)

    def test_next_is_first_unpaid_even_if_late(self, price_loan):
        s = summarize(price_loan, reconcile(price_loan, [], date(2024, 3, 15)))
        assert s.next_installment.number == 1

    def test_paid_off(self, price_loan):
        lump = Payment(amount=project_loan(price_loan).total_amount, date=date(2024, 1, 10))
        s = summarize(price_loan, reconcile(price_loan, [lump], date(2024, 3, 15)))
        assert s.paid_count == 12
        assert s.progress_pct == Decimal("100.00")
        assert s.next_installment is None
        assert s.is_paid_off


class TestIndefiniteSummary:
    def test_progress_is_principal_repaid(self, open_loan):
        payments = [Payment(amount=Decimal("500"), date=date(2024, 1, 31))]
        s = summarize(open_loan, reconcile(open_loan, payments, date(2024, 3, 1)))
        # Balance 545.90 of 1000 borrowed
        assert s.progress_pct == Decimal("45.41")
        assert s.total_installments == 0
        assert s.next_installment is None
        assert abs(s.accumulated_interest - Decimal("45.90")) < Decimal("0.0001")
        assert not s.is_paid_off

    def test_growing_debt_shows_no_progress(self, open_loan):
        s = summarize(open_loan, reconcile(open_loan, [], date(2024, 6, 1)))
        assert s.progress_pct == Decimal("0.00")
        assert not s.is_paid_off

    def test_paid_off(self, open_loan):
        payments = [Payment(amount=Decimal("2000"), date=date(2024, 1, 11))]
        s = summarize(open_loan, reconcile(open_loan, payments, date(2024, 6, 1)))
        assert s.progress_pct == Decimal("100.00")
        assert s.is_paid_off


class TestInvalidSummary:
    def test_rejected_loan(self):
        loan = LoanDefinition(principal=Decimal("NaN"), interest_rate=Decimal("2"), term_months=12)
        s = summarize(loan, ReconciliationResult())
        assert s.progress_pct == Decimal("0.00")
        assert not s.is_paid_off
