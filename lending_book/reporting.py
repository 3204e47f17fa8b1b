"""
Reporting Module

Portfolio summary totals and the loan CSV export.
"""

import csv
import io
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List

from .dates import DateLike, to_date
from .loans import (
    calculate_amount_paid, calculate_balance, calculate_loan_profit,
    calculate_total_amount, get_loan_status,
)
from .models import Loan, LoanPortfolioSummary, LoanStatus, LoanType


ZERO = Decimal('0')

CSV_HEADERS = [
    "Loan ID", "Customer Name", "Phone Number", "Loan Type", "Status",
    "Issue Date", "Principal Amount", "Given Amount (Disbursed)",
    "Total Amount", "Amount Paid", "Balance Due",
]

# Leading characters spreadsheet applications evaluate as formulas
FORMULA_PREFIXES = ("=", "+", "-", "@")


def quantize_amount(value: Decimal, places: int = 2) -> Decimal:
    """Round an amount for display (half-up)"""
    return Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def calculate_loan_portfolio_summary(loans: Iterable[Loan], as_of: DateLike) -> LoanPortfolioSummary:
    """
    Summarise a loan collection.

    Args:
        loans: Loans to include
        as_of: Reference date for status

    Returns:
        LoanPortfolioSummary with per-status and per-type counts and totals
    """
    as_of = to_date(as_of)
    by_status = {status: 0 for status in LoanStatus}
    by_type = {loan_type: 0 for loan_type in LoanType}
    count = 0
    principal = ZERO
    disbursed = ZERO
    collected = ZERO
    outstanding = ZERO
    profit = ZERO

    for loan in loans:
        count += 1
        by_status[get_loan_status(loan, as_of)] += 1
        by_type[loan.loan_type] += 1
        principal += loan.loan_amount
        disbursed += loan.given_amount
        collected += calculate_amount_paid(loan.transactions)
        profit += calculate_loan_profit(loan)

        balance = calculate_balance(loan)
        if balance > ZERO:
            outstanding += balance

    return LoanPortfolioSummary(
        total_loans=count,
        by_status=by_status,
        by_type=by_type,
        total_principal=principal,
        total_disbursed=disbursed,
        total_collected=collected,
        total_outstanding=outstanding,
        total_profit=profit,
    )


def _sanitize_cell(value: Any) -> str:
    text = "" if value is None else str(value)
    if text.startswith(FORMULA_PREFIXES):
        text = "'" + text
    return text


def _loan_row(loan: Loan, as_of, places: int) -> List[Any]:
    issued = to_date(loan.created_at) if loan.created_at is not None else loan.start_date
    return [
        loan.id,
        loan.customer_name,
        loan.phone or "",
        loan.loan_type.value,
        get_loan_status(loan, as_of).value,
        issued.isoformat(),
        quantize_amount(loan.loan_amount, places),
        quantize_amount(loan.given_amount, places),
        quantize_amount(calculate_total_amount(loan), places),
        quantize_amount(calculate_amount_paid(loan.transactions), places),
        quantize_amount(calculate_balance(loan), places),
    ]


def export_loans_csv(loans: Iterable[Loan], as_of: DateLike, places: int = 2) -> str:
    """
    Export loans as CSV text.

    Every cell is quoted, and cells that a spreadsheet would read as a
    formula are prefixed with a single quote.
    """
    as_of = to_date(as_of)
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    for loan in loans:
        writer.writerow([_sanitize_cell(cell) for cell in _loan_row(loan, as_of, places)])

    csv_content = output.getvalue()
    output.close()
    return csv_content
