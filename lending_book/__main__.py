"""
Command-line report over a snapshot file.

    python -m lending_book backup.json --view not-paying --months 2
"""

import argparse
import json
import sys
from datetime import date
from typing import Any, Dict, List, Optional

from .book import LoanBook
from .config import get_config
from .dates import to_date
from .investors import calculate_next_payout_date
from .logging_config import setup_logging
from .models import LoanType
from .reporting import calculate_loan_portfolio_summary, export_loans_csv, quantize_amount
from .schemas import InvestorMetricsModel, LoanMetricsModel
from .storage import InMemoryStorage


VIEWS = ("due", "not-paying", "overdue", "investors", "portfolio", "csv")


def _iso_or_none(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _loan_rows(book: LoanBook, loans, as_of: date) -> List[Dict[str, Any]]:
    rows = []
    for loan in loans:
        metrics = LoanMetricsModel.from_metrics(book.loan_metrics(loan.id, as_of))
        rows.append({
            "id": loan.id,
            "customerName": loan.customer_name,
            "loanType": loan.loan_type.value,
            **metrics.model_dump(mode="json", by_alias=True),
        })
    return rows


def build_report(book: LoanBook, view: str, as_of: date,
                 months: Optional[int] = None,
                 loan_type: Optional[LoanType] = None) -> Any:
    """Produce the data for one view; CSV is returned as text"""
    if view == "due":
        return _loan_rows(book, book.due_on(as_of, loan_type), as_of)

    elif view == "not-paying":
        return [
            {
                "id": entry.loan.id,
                "customerName": entry.loan.customer_name,
                "loanType": entry.loan.loan_type.value,
                "months": entry.months,
            }
            for entry in book.not_paying(as_of, months, loan_type)
        ]

    elif view == "overdue":
        return _loan_rows(book, book.overdue(as_of, loan_type), as_of)

    elif view == "investors":
        summary = book.investor_summary(as_of)
        return {
            "summary": {
                "totalInvestors": summary.total_investors,
                "totalInvestment": str(summary.total_investment),
                "totalProfitEarned": str(summary.total_profit_earned),
                "totalPaidToInvestors": str(summary.total_paid_to_investors),
                "totalPendingProfit": str(summary.total_pending_profit),
                "overallProfitLoss": str(summary.overall_profit_loss),
            },
            "investors": [
                {
                    "id": investor.id,
                    "name": investor.name,
                    **InvestorMetricsModel.from_metrics(
                        book.investor_metrics(investor.id, as_of)
                    ).model_dump(mode="json", by_alias=True),
                    "nextPayoutDate": _iso_or_none(calculate_next_payout_date(investor, as_of)),
                }
                for investor in book.list_investors()
            ],
        }

    elif view == "portfolio":
        summary = calculate_loan_portfolio_summary(book.list_loans(loan_type), as_of)
        places = get_config().amount_precision
        return {
            "totalLoans": summary.total_loans,
            "byStatus": {status.value: count for status, count in summary.by_status.items()},
            "byType": {kind.value: count for kind, count in summary.by_type.items()},
            "totalPrincipal": str(quantize_amount(summary.total_principal, places)),
            "totalDisbursed": str(quantize_amount(summary.total_disbursed, places)),
            "totalCollected": str(quantize_amount(summary.total_collected, places)),
            "totalOutstanding": str(quantize_amount(summary.total_outstanding, places)),
            "totalProfit": str(quantize_amount(summary.total_profit, places)),
        }

    elif view == "csv":
        return export_loans_csv(book.list_loans(loan_type), as_of, get_config().amount_precision)

    else:
        raise ValueError(f"Unknown view: {view}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    config = get_config()
    parser = argparse.ArgumentParser(
        prog="lending_book",
        description="Report on loans and investors in a lending book snapshot",
    )
    parser.add_argument(
        "snapshot",
        help="Path to a snapshot JSON document",
    )
    parser.add_argument(
        "--as-of",
        type=str,
        default=None,
        help="Reference date, YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--view",
        choices=VIEWS,
        default="due",
        help="Report to print (default: due)",
    )
    parser.add_argument(
        "--months",
        type=int,
        default=config.not_paying_months_threshold,
        help=f"Months without payment for not-paying (default: {config.not_paying_months_threshold})",
    )
    parser.add_argument(
        "--type",
        dest="loan_type",
        choices=[kind.value for kind in LoanType],
        default=None,
        help="Only include loans of this plan type",
    )
    args = parser.parse_args(argv)

    setup_logging(config.log_level, format_type=config.log_format, log_file=config.log_file)

    try:
        as_of = to_date(args.as_of) if args.as_of else date.today()
    except ValueError as e:
        parser.error(str(e))

    with open(args.snapshot, encoding="utf-8") as handle:
        document = json.load(handle)

    book = LoanBook(
        InMemoryStorage(),
        months_threshold=config.not_paying_months_threshold,
        epsilon=config.epsilon,
    )
    book.restore_snapshot(document)

    loan_type = LoanType(args.loan_type) if args.loan_type else None
    report = build_report(book, args.view, as_of, args.months, loan_type)

    if isinstance(report, str):
        sys.stdout.write(report)
    else:
        print(json.dumps(report, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
