"""
Due and Delinquency Views Module

Filters a loan collection against a reference date: loans due on a day,
loans that have gone months without a repayment, and loans already overdue.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from .dates import DateLike, month_difference, to_date
from .loans import calculate_balance, get_loan_status, is_due_on
from .models import Loan, LoanStatus, LoanType, NotPayingEntry


def _matches_type(loan: Loan, loan_type: Optional[LoanType]) -> bool:
    return loan_type is None or loan.loan_type == loan_type


def due_on(loans: Iterable[Loan], target: DateLike,
           loan_type: Optional[LoanType] = None) -> List[Loan]:
    """
    Loans with a payment due on ``target``.

    Args:
        loans: Loan collection, in insertion order
        target: Day to check
        loan_type: Optional plan filter

    Returns:
        Matching loans in input order (no sorting is applied)
    """
    target = to_date(target)
    return [
        loan for loan in loans
        if _matches_type(loan, loan_type) and is_due_on(loan, target)
    ]


def last_payment_reference(loan: Loan) -> date:
    """Date of the latest repayment, or the start date when there is none"""
    if loan.transactions:
        return max(txn.payment_date for txn in loan.transactions)
    return loan.start_date


def months_without_payment(loan: Loan, as_of: DateLike) -> int:
    """Calendar months since the last repayment (0 once the loan is settled)"""
    if calculate_balance(loan) <= Decimal('0'):
        return 0
    return month_difference(to_date(as_of), last_payment_reference(loan))


def not_paying_for(loans: Iterable[Loan], months_threshold: int, as_of: DateLike,
                   loan_type: Optional[LoanType] = None) -> List[NotPayingEntry]:
    """
    Loans with a balance and no repayment for at least ``months_threshold`` months.

    Sorted by months without payment, longest first; ties keep input order.
    """
    as_of = to_date(as_of)
    entries = []
    for loan in loans:
        if not _matches_type(loan, loan_type):
            continue
        if calculate_balance(loan) <= Decimal('0'):
            continue
        months = months_without_payment(loan, as_of)
        if months >= months_threshold:
            entries.append(NotPayingEntry(loan=loan, months=months))

    # reverse=True keeps ties in input order
    return sorted(entries, key=lambda entry: entry.months, reverse=True)


def overdue_loans(loans: Iterable[Loan], as_of: DateLike,
                  loan_type: Optional[LoanType] = None) -> List[Loan]:
    """Loans whose status is Overdue, in input order"""
    as_of = to_date(as_of)
    return [
        loan for loan in loans
        if _matches_type(loan, loan_type) and get_loan_status(loan, as_of) == LoanStatus.OVERDUE
    ]
