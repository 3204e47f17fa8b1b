"""
Test suite for the investor calculation engine
"""

from decimal import Decimal
from datetime import date

from lending_book.investors import (
    calculate_investor_metrics, calculate_investor_summary, calculate_next_payout_date,
    calculate_total_paid,
)
from lending_book.models import (
    InvestmentType, Investor, InvestorPayment, InvestorStatus, PaymentType,
)


def make_investor(payments=(), status=InvestorStatus.ON_TRACK, amount="100000", rate="2",
                  investment_type=InvestmentType.FIXED_PROFIT_PLAN, start=date(2024, 1, 15),
                  investor_id="I1"):
    return Investor(
        id=investor_id,
        name="Test Investor",
        investment_type=investment_type,
        investment_amount=Decimal(amount),
        profit_rate=Decimal(rate),
        start_date=start,
        status=status,
        payments=payments,
    )


def profit(amount, payment_date=date(2024, 4, 16)):
    return InvestorPayment(Decimal(amount), payment_date, PaymentType.PROFIT)


class TestInvestorMetrics:
    """Test accrual, payouts and delinquency"""

    def test_unpaid_investor_is_delayed(self):
        """Test three completed months with no payouts"""
        metrics = calculate_investor_metrics(make_investor(), "2024-04-20")
        assert metrics.monthly_profit == Decimal("2000")
        assert metrics.accumulated_profit == Decimal("6000")
        assert metrics.pending_profit == Decimal("6000")
        assert metrics.missed_months == 3
        assert metrics.status == InvestorStatus.DELAYED
        assert metrics.current_balance == Decimal("106000")

    def test_paid_up_investor_is_on_track(self):
        """Test a payout covering accrued profit clears the delay"""
        metrics = calculate_investor_metrics(make_investor([profit("6000")]), date(2024, 4, 20))
        assert metrics.pending_profit == Decimal("0")
        assert metrics.missed_months == 0
        assert metrics.status == InvestorStatus.ON_TRACK
        assert metrics.current_balance == Decimal("100000")

    def test_partial_payment_floors_missed_months(self):
        """Test missed months count whole unpaid months"""
        metrics = calculate_investor_metrics(make_investor([profit("3000")]), date(2024, 4, 20))
        assert metrics.pending_profit == Decimal("3000")
        assert metrics.missed_months == 1
        assert metrics.status == InvestorStatus.DELAYED

    def test_month_not_complete_before_start_day(self):
        """Test accrual waits for the start day-of-month"""
        metrics = calculate_investor_metrics(make_investor(), date(2024, 4, 14))
        assert metrics.accumulated_profit == Decimal("4000")

    def test_pending_within_epsilon_is_on_track(self):
        """Test sub-cent pending profit counts as settled"""
        investor = make_investor([profit("5999.995")])
        metrics = calculate_investor_metrics(investor, date(2024, 4, 20))
        assert metrics.status == InvestorStatus.ON_TRACK

    def test_overpayment_keeps_balance_at_investment(self):
        """Test overpaid profit never lowers the current balance"""
        metrics = calculate_investor_metrics(make_investor([profit("8000")]), date(2024, 4, 20))
        assert metrics.pending_profit == Decimal("-2000")
        assert metrics.missed_months == 0
        assert metrics.current_balance == Decimal("100000")
        assert metrics.status == InvestorStatus.ON_TRACK

    def test_zero_rate_short_circuits(self):
        """Test a zero monthly profit yields zero missed months"""
        metrics = calculate_investor_metrics(make_investor(rate="0"), date(2024, 4, 20))
        assert metrics.monthly_profit == Decimal("0")
        assert metrics.missed_months == 0
        assert metrics.status == InvestorStatus.ON_TRACK

    def test_closed_investor_is_static(self):
        """Test closed investors depend only on payment history"""
        payments = [profit("60000"), InvestorPayment(Decimal("50000"), date(2024, 5, 1), PaymentType.PRINCIPAL)]
        for start, rate in [(date(2020, 1, 1), "5"), (date(2024, 1, 15), "0")]:
            investor = make_investor(payments, InvestorStatus.CLOSED, rate=rate, start=start)
            metrics = calculate_investor_metrics(investor, date(2030, 1, 1))
            assert metrics.total_paid == Decimal("110000")
            assert metrics.accumulated_profit == Decimal("10000")
            assert metrics.missed_months == 0
            assert metrics.monthly_profit == Decimal("0")
            assert metrics.current_balance == Decimal("0")
            assert metrics.status == InvestorStatus.CLOSED

    def test_closed_investor_with_loss(self):
        """Test accumulated profit for a closed investor is floored at zero"""
        investor = make_investor([profit("5000")], InvestorStatus.CLOSED)
        metrics = calculate_investor_metrics(investor, date(2024, 4, 20))
        assert metrics.accumulated_profit == Decimal("0")

    def test_total_paid_counts_every_type(self):
        """Test all payment types count toward total paid"""
        investor = make_investor([
            profit("1000"),
            InvestorPayment(Decimal("500"), date(2024, 3, 1), PaymentType.INTEREST),
        ])
        assert calculate_total_paid(investor) == Decimal("1500")


class TestInvestorSummary:
    """Test portfolio totals"""

    def test_summary_excludes_interest_rate_plan_from_pending(self):
        """Test pending profit leaves out InterestRatePlan investors"""
        fixed = make_investor()
        interest = make_investor(
            [profit("1000")], amount="50000", rate="1",
            investment_type=InvestmentType.INTEREST_RATE_PLAN, investor_id="I2",
        )
        summary = calculate_investor_summary([fixed, interest], date(2024, 4, 20))
        assert summary.total_investors == 2
        assert summary.total_investment == Decimal("150000")
        assert summary.total_profit_earned == Decimal("7500")
        assert summary.total_paid_to_investors == Decimal("1000")
        assert summary.total_pending_profit == Decimal("6000")
        assert summary.overall_profit_loss == Decimal("-149000")

    def test_empty_summary(self):
        """Test an empty portfolio sums to zero"""
        summary = calculate_investor_summary([], date(2024, 4, 20))
        assert summary.total_investors == 0
        assert summary.total_investment == Decimal("0")


class TestNextPayoutDate:
    """Test the next monthly payout date"""

    def test_next_anniversary(self):
        """Test the next anniversary strictly after the as-of date"""
        investor = make_investor()
        assert calculate_next_payout_date(investor, date(2024, 4, 14)) == date(2024, 4, 15)
        assert calculate_next_payout_date(investor, date(2024, 4, 15)) == date(2024, 5, 15)
        assert calculate_next_payout_date(investor, date(2024, 4, 20)) == date(2024, 5, 15)

    def test_before_start(self):
        """Test the first payout is one month after the start"""
        investor = make_investor()
        assert calculate_next_payout_date(investor, date(2024, 1, 1)) == date(2024, 2, 15)
        assert calculate_next_payout_date(investor, date(2023, 11, 20)) == date(2024, 2, 15)
        assert calculate_next_payout_date(investor, date(2024, 1, 15)) == date(2024, 2, 15)

    def test_clamped_anniversary(self):
        """Test anniversaries clamp in short months"""
        investor = make_investor(start=date(2024, 1, 31))
        assert calculate_next_payout_date(investor, date(2024, 2, 10)) == date(2024, 2, 29)

    def test_closed_investor_has_no_payout(self):
        """Test closed investors have no next payout"""
        investor = make_investor(status=InvestorStatus.CLOSED)
        assert calculate_next_payout_date(investor, date(2024, 4, 20)) is None
