"""
Investor Calculation Module

Accrues monthly profit owed to investors and summarises payouts. Profit for a
month accrues once the start day-of-month recurs; a CLOSED investor stops
accruing permanently and is described by its payment history alone.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from .dates import DateLike, add_months, completed_months, month_difference, to_date
from .models import (
    InvestmentType, Investor, InvestorMetrics, InvestorStatus, InvestorSummary,
)


ZERO = Decimal('0')
HUNDRED = Decimal('100')
DEFAULT_EPSILON = Decimal('0.01')


def calculate_total_paid(investor: Investor) -> Decimal:
    """Sum of every payout regardless of payment type"""
    return sum((payment.amount for payment in investor.payments), ZERO)


def calculate_investor_metrics(investor: Investor, as_of: DateLike,
                               epsilon: Decimal = DEFAULT_EPSILON) -> InvestorMetrics:
    """
    Compute accrued profit, payouts and delinquency for an investor.

    Args:
        investor: Investor record
        as_of: Reference date
        epsilon: Pending profit at or below this is treated as settled

    Returns:
        InvestorMetrics
    """
    total_paid = calculate_total_paid(investor)

    if investor.is_closed:
        return InvestorMetrics(
            current_balance=ZERO,
            accumulated_profit=max(ZERO, total_paid - investor.investment_amount),
            total_paid=total_paid,
            missed_months=0,
            monthly_profit=ZERO,
            pending_profit=ZERO,
            status=InvestorStatus.CLOSED,
        )

    months = completed_months(investor.start_date, to_date(as_of))
    monthly_profit = investor.investment_amount * investor.profit_rate / HUNDRED
    accumulated_profit = monthly_profit * months
    pending_profit = accumulated_profit - total_paid

    missed_months = 0
    if monthly_profit > ZERO:
        missed_months = int(max(ZERO, pending_profit) // monthly_profit)

    status = InvestorStatus.DELAYED if pending_profit > epsilon else InvestorStatus.ON_TRACK

    return InvestorMetrics(
        current_balance=investor.investment_amount + max(ZERO, pending_profit),
        accumulated_profit=accumulated_profit,
        total_paid=total_paid,
        missed_months=missed_months,
        monthly_profit=monthly_profit,
        pending_profit=pending_profit,
        status=status,
    )


def calculate_investor_summary(investors: Iterable[Investor], as_of: DateLike,
                               epsilon: Decimal = DEFAULT_EPSILON) -> InvestorSummary:
    """
    Aggregate investment, payouts and profit across investors.

    InterestRatePlan investors are left out of the pending-profit total: their
    interest is tracked per period, not as a lump pending balance.
    """
    as_of = to_date(as_of)
    count = 0
    total_investment = ZERO
    total_profit_earned = ZERO
    total_paid = ZERO
    total_pending = ZERO

    for investor in investors:
        metrics = calculate_investor_metrics(investor, as_of, epsilon)
        count += 1
        total_investment += investor.investment_amount
        total_paid += metrics.total_paid
        total_profit_earned += metrics.accumulated_profit
        if investor.investment_type != InvestmentType.INTEREST_RATE_PLAN:
            total_pending += max(ZERO, metrics.accumulated_profit - metrics.total_paid)

    return InvestorSummary(
        total_investors=count,
        total_investment=total_investment,
        total_profit_earned=total_profit_earned,
        total_paid_to_investors=total_paid,
        total_pending_profit=total_pending,
        overall_profit_loss=total_paid - total_investment,
    )


def calculate_next_payout_date(investor: Investor, as_of: DateLike) -> Optional[date]:
    """First monthly anniversary of the start date strictly after ``as_of``, never the start itself"""
    if investor.is_closed:
        return None

    as_of = to_date(as_of)
    start = investor.start_date
    # No profit is owed on the investment day itself
    months = max(1, month_difference(as_of, start))
    candidate = add_months(start, months)
    if candidate <= as_of:
        candidate = add_months(start, months + 1)
    return candidate
