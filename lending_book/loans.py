"""
Loan Calculation Module

Derives balances, interest, due dates and lifecycle status for the three loan
plans. Every function is a pure function of the loan record (and, where the
answer depends on "today", an explicit ``as_of`` date); nothing here mutates a
loan or reads the wall clock.

Plan semantics:
    Finance       principal + flat monthly interest over ``duration_months``,
                  due on the start day-of-month every month after the start month
    Tender        principal + monthly rate pro-rated over ``duration_in_days``
                  (30-day months), due once on ``start + duration_in_days``
    InterestRate  principal stays outstanding until repaid by payments flagged
                  PRINCIPAL; interest on the remaining principal is due at
                  every period boundary
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Iterator, Optional, Tuple

from .dates import (
    DateLike, add_months, add_period, is_period_boundary, month_difference,
    periods_elapsed, to_date,
)
from .models import (
    FinancePlan, InterestRatePlan, Loan, LoanMetrics, LoanStatus, LoanTransaction,
    LoanType, TenderPlan,
)


ZERO = Decimal('0')
HUNDRED = Decimal('100')
TENDER_MONTH_DAYS = Decimal('30')


def calculate_amount_paid(transactions: Iterable[LoanTransaction]) -> Decimal:
    """Sum of transaction amounts; negative amounts reduce the total"""
    return sum((txn.amount for txn in transactions), ZERO)


def _principal_paid(loan: Loan) -> Decimal:
    return calculate_amount_paid(txn for txn in loan.transactions if txn.is_principal)


def _interest_paid(loan: Loan, as_of: Optional[date] = None) -> Decimal:
    return calculate_amount_paid(
        txn for txn in loan.transactions
        if not txn.is_principal and (as_of is None or txn.payment_date <= as_of)
    )


def calculate_total_amount(loan: Loan) -> Decimal:
    """
    Total amount owed over the life of the loan.

    InterestRate loans return the principal only: their interest is
    perpetual and tracked per period, not as a fixed total.
    """
    principal = loan.loan_amount
    plan = loan.plan

    if isinstance(plan, FinancePlan):
        return principal + principal * plan.interest_rate * plan.duration_months / HUNDRED
    elif isinstance(plan, TenderPlan):
        fee = (principal * plan.interest_rate * plan.duration_in_days
               / (HUNDRED * TENDER_MONTH_DAYS))
        return principal + fee
    elif isinstance(plan, InterestRatePlan):
        return principal
    else:
        raise ValueError(f"Unsupported loan plan: {plan!r}")


def get_remaining_principal(loan: Loan) -> Decimal:
    """Principal still outstanding; for fixed-schedule plans this is the balance"""
    if loan.loan_type == LoanType.INTEREST_RATE:
        return loan.loan_amount - _principal_paid(loan)
    return calculate_balance(loan)


def calculate_balance(loan: Loan) -> Decimal:
    """
    Amount still owed. Not clamped: overpayment drives it negative.

    InterestRate loans report remaining principal; interest due is
    separate (see ``get_interest_per_period`` / ``get_pending_interest``).
    """
    if loan.loan_type == LoanType.INTEREST_RATE:
        return get_remaining_principal(loan)
    return calculate_total_amount(loan) - calculate_amount_paid(loan.transactions)


def get_interest_per_period(loan: Loan) -> Decimal:
    """
    Interest due for one period.

    InterestRate: remaining principal times the per-period rate.
    Finance: the flat monthly interest component. Tender: the single fee.
    """
    plan = loan.plan
    if isinstance(plan, InterestRatePlan):
        return get_remaining_principal(loan) * plan.interest_rate / HUNDRED
    elif isinstance(plan, FinancePlan):
        return loan.loan_amount * plan.interest_rate / HUNDRED
    return calculate_total_amount(loan) - loan.loan_amount


def calculate_interest_amount(loan: Loan) -> Decimal:
    """Per-period interest shown alongside the loan"""
    return get_interest_per_period(loan)


def calculate_installment_amount(loan: Loan) -> Decimal:
    """Amount expected on each due date"""
    plan = loan.plan
    if isinstance(plan, FinancePlan):
        total = calculate_total_amount(loan)
        if plan.duration_months == 0:
            return total
        return total / plan.duration_months
    elif isinstance(plan, TenderPlan):
        return calculate_total_amount(loan)
    return get_interest_per_period(loan)


def _accrual_schedule(loan: Loan, periods: int) -> Iterator[Tuple[date, Decimal]]:
    """
    Yield (period end, cumulative interest) for the first ``periods`` periods
    of an InterestRate loan.

    Each period is charged on the principal outstanding at its start, counting
    principal repayments dated on or before that day.
    """
    plan = loan.plan
    rate = plan.interest_rate / HUNDRED
    principal_payments = sorted(
        (txn.payment_date, txn.amount) for txn in loan.transactions if txn.is_principal
    )

    outstanding = loan.loan_amount
    accrued = ZERO
    index = 0
    for k in range(periods):
        period_start = add_period(loan.start_date, plan.duration_unit, k)
        while index < len(principal_payments) and principal_payments[index][0] <= period_start:
            outstanding -= principal_payments[index][1]
            index += 1
        if outstanding > ZERO:
            accrued += outstanding * rate
        yield add_period(loan.start_date, plan.duration_unit, k + 1), accrued


def _accrued_interest(loan: Loan, periods: int) -> Decimal:
    accrued = ZERO
    for _, accrued in _accrual_schedule(loan, periods):
        pass
    return accrued


def get_pending_interest(loan: Loan, as_of: DateLike) -> Decimal:
    """
    Interest accrued over elapsed periods minus interest received, floored at 0.

    Interest paid ahead of accrual is not shown as a credit, but it still
    offsets later periods because both sides are cumulative.

    Args:
        loan: Loan to evaluate (non-InterestRate loans return 0)
        as_of: Reference date

    Returns:
        Pending interest as Decimal
    """
    plan = loan.plan
    if not isinstance(plan, InterestRatePlan):
        return ZERO

    as_of = to_date(as_of)
    periods = periods_elapsed(loan.start_date, as_of, plan.duration_unit)
    pending = _accrued_interest(loan, periods) - _interest_paid(loan, as_of)
    return max(pending, ZERO)


def is_due_on(loan: Loan, target: DateLike) -> bool:
    """
    Check whether a payment on ``loan`` falls due on ``target``.

    Settled loans are never due, and nothing is due before the start date.
    Finance: the start day-of-month (clamped in short months) of every month
    after the start month. Tender: exactly ``start + duration_in_days``; a
    zero-day tender is due on its start date. InterestRate: every period
    boundary reachable from the start date.
    """
    if calculate_balance(loan) <= ZERO:
        return False

    target = to_date(target)
    start = loan.start_date
    if target < start:
        return False

    plan = loan.plan
    if isinstance(plan, FinancePlan):
        months = month_difference(target, start)
        return months >= 1 and target == add_months(start, months)
    elif isinstance(plan, TenderPlan):
        return target == start + timedelta(days=plan.duration_in_days)
    elif isinstance(plan, InterestRatePlan):
        return is_period_boundary(start, target, plan.duration_unit)
    return False


def calculate_next_due_date(loan: Loan, as_of: DateLike) -> Optional[date]:
    """Earliest due date on or after ``as_of``; None when settled or nothing remains due"""
    if calculate_balance(loan) <= ZERO:
        return None

    as_of = to_date(as_of)
    start = loan.start_date
    plan = loan.plan

    if isinstance(plan, FinancePlan):
        months = max(1, month_difference(as_of, start))
        candidate = add_months(start, months)
        if candidate < as_of:
            candidate = add_months(start, months + 1)
        return candidate

    elif isinstance(plan, TenderPlan):
        due = start + timedelta(days=plan.duration_in_days)
        return due if due >= as_of else None

    elif isinstance(plan, InterestRatePlan):
        unit = plan.duration_unit
        periods = periods_elapsed(start, as_of, unit)
        candidate = add_period(start, unit, periods)
        if periods >= 1 and candidate == as_of:
            return candidate
        return add_period(start, unit, periods + 1)

    return None


def earliest_unsettled_due_date(loan: Loan, as_of: DateLike) -> Optional[date]:
    """
    First due date whose obligation payments have not yet covered.

    Finance: installment ``k + 1`` where ``k`` whole installments are paid.
    Tender: the single due date. InterestRate: the first boundary whose
    cumulative interest exceeds the interest received by ``as_of``, or the
    next boundary after ``as_of`` when every elapsed period is covered.
    """
    if calculate_balance(loan) <= ZERO:
        return None

    as_of = to_date(as_of)
    start = loan.start_date
    plan = loan.plan

    if isinstance(plan, FinancePlan):
        installment = calculate_installment_amount(loan)
        paid = calculate_amount_paid(loan.transactions)
        covered = 0
        if installment > ZERO and paid > ZERO:
            covered = int(paid // installment)
        return add_months(start, covered + 1)

    elif isinstance(plan, TenderPlan):
        return start + timedelta(days=plan.duration_in_days)

    elif isinstance(plan, InterestRatePlan):
        unit = plan.duration_unit
        interest_paid = _interest_paid(loan, as_of)
        periods = periods_elapsed(start, as_of, unit)
        for boundary, accrued in _accrual_schedule(loan, periods):
            if accrued > interest_paid:
                return boundary
        return add_period(start, unit, periods + 1)

    return None


def get_loan_status(loan: Loan, as_of: DateLike) -> LoanStatus:
    """
    Completed when nothing is owed, Overdue when an unsettled due date lies
    strictly before ``as_of``, Active otherwise.

    An InterestRate loan is settled by PRINCIPAL payments alone. Unflagged
    payments are interest, so they never complete it however large they are.
    """
    if calculate_balance(loan) <= ZERO:
        return LoanStatus.COMPLETED

    due = earliest_unsettled_due_date(loan, as_of)
    if due is not None and due < to_date(as_of):
        return LoanStatus.OVERDUE
    return LoanStatus.ACTIVE


def calculate_loan_profit(loan: Loan) -> Decimal:
    """Interest or fee earned: scheduled for fixed plans, received for InterestRate"""
    if loan.loan_type == LoanType.INTEREST_RATE:
        return _interest_paid(loan)
    return calculate_total_amount(loan) - loan.loan_amount


def calculate_loan_metrics(loan: Loan, as_of: DateLike) -> LoanMetrics:
    """Project every derived figure for ``loan`` as of a date"""
    as_of = to_date(as_of)
    return LoanMetrics(
        balance=calculate_balance(loan),
        status=get_loan_status(loan, as_of),
        next_due_date=calculate_next_due_date(loan, as_of),
        interest_per_period=get_interest_per_period(loan),
        pending_interest=get_pending_interest(loan, as_of),
        profit=calculate_loan_profit(loan),
        total_amount=calculate_total_amount(loan),
        amount_paid=calculate_amount_paid(loan.transactions),
    )
