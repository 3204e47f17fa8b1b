"""
Loan Book Module

Record keeping for loans and investors on top of a storage backend:
creating and editing records, logging repayments and payouts, the due and
delinquency views, and JSON snapshot export/restore.

Records are stored in their JSON wire shape and converted to immutable
domain records on every read.
"""

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .aggregation import due_on, not_paying_for, overdue_loans
from .dates import DateLike
from .investors import calculate_investor_metrics, calculate_investor_summary
from .loans import calculate_balance, calculate_loan_metrics
from .logging_config import get_logger, log_action
from .models import (
    Investor, InvestorMetrics, InvestorPayment, InvestorSummary, Loan, LoanMetrics,
    LoanTransaction, LoanType, NotPayingEntry, PaymentType,
)
from .schemas import (
    InvestorPaymentRequest, InvestorRecordModel, LoanRecordModel, RepaymentRequest,
    SnapshotModel, investor_to_record, loan_to_record,
)
from .storage import StorageInterface


def backup_file_name(now: datetime, prefix: str = "lending-book") -> str:
    """File name for a snapshot taken at ``now``"""
    return f"{prefix}-backup-{now.strftime('%Y-%m-%d_%H-%M-%S')}.json"


class LoanBook:
    """
    Manages loan and investor records and their payment histories
    """

    def __init__(
        self,
        storage: StorageInterface,
        months_threshold: int = 3,
        epsilon: Decimal = Decimal('0.01')
    ):
        self.storage = storage
        self.months_threshold = months_threshold
        self.epsilon = epsilon
        self.loans_table = "loans"
        self.investors_table = "investors"
        self.logger = get_logger("lending_book.book")

    # Loans

    def add_loan(self, record: Mapping[str, Any]) -> Loan:
        """
        Create a loan from its JSON record.

        Args:
            record: camelCase loan record; ``id`` and ``createdAt`` are
                generated when missing

        Returns:
            Created Loan
        """
        data = dict(record)
        data.setdefault("id", str(uuid.uuid4()))
        if not data.get("createdAt"):
            data["createdAt"] = datetime.now(timezone.utc).isoformat()

        loan = LoanRecordModel.model_validate(data).to_loan()
        if self.storage.exists(self.loans_table, loan.id):
            raise ValueError(f"Loan {loan.id} already exists")

        self._save_loan(loan)

        log_action(
            self.logger, "info", f"Loan created: {loan.loan_type.value}",
            action="create_loan", resource=f"loan:{loan.id}",
            details={
                "loan_id": loan.id,
                "loan_type": loan.loan_type.value,
                "loan_amount": str(loan.loan_amount),
                "start_date": loan.start_date.isoformat()
            }
        )
        return loan

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        data = self.storage.load(self.loans_table, loan_id)
        if data is None:
            return None
        return LoanRecordModel.model_validate(data).to_loan()

    def list_loans(self, loan_type: Optional[LoanType] = None) -> List[Loan]:
        """All loans in insertion order, optionally of one type"""
        if loan_type is None:
            records = self.storage.load_all(self.loans_table)
        else:
            records = self.storage.find(self.loans_table, {"loanType": LoanType(loan_type).value})
        return [LoanRecordModel.model_validate(data).to_loan() for data in records]

    def update_loan(self, loan_id: str, changes: Mapping[str, Any]) -> Loan:
        """
        Edit loan details. The repayment history is kept as is and the plan
        type cannot change.
        """
        current = self.storage.load(self.loans_table, loan_id)
        if current is None:
            raise ValueError(f"Loan {loan_id} not found")

        data = {**current, **changes}
        data["id"] = loan_id
        data["transactions"] = current.get("transactions", [])
        data["createdAt"] = current.get("createdAt")

        loan = LoanRecordModel.model_validate(data).to_loan()
        if loan.loan_type.value != current["loanType"]:
            raise ValueError("Loan type cannot be changed")

        self._save_loan(loan)

        log_action(
            self.logger, "info", "Loan updated",
            action="update_loan", resource=f"loan:{loan_id}",
            details={"fields": sorted(changes.keys())}
        )
        return loan

    def delete_loans(self, loan_ids: Iterable[str]) -> int:
        """Delete loans in bulk; returns the number removed"""
        removed = []
        with self.storage.atomic():
            for loan_id in loan_ids:
                if self.storage.delete(self.loans_table, loan_id):
                    removed.append(loan_id)

        if removed:
            log_action(
                self.logger, "info", f"Deleted {len(removed)} loan(s)",
                action="delete_loans", resource="loans",
                details={"loan_ids": removed}
            )
        return len(removed)

    # Repayments

    def record_repayment(
        self,
        loan_id: str,
        amount: Any,
        payment_date: DateLike,
        payment_type: Optional[PaymentType] = None
    ) -> Loan:
        """
        Append a repayment to a loan.

        Args:
            loan_id: Loan to pay against
            amount: Positive amount
            payment_date: Date the money was received
            payment_type: PRINCIPAL reduces an InterestRate loan's principal;
                anything else counts as interest for that plan

        Returns:
            Updated Loan
        """
        request = RepaymentRequest(amount=amount, payment_date=payment_date, payment_type=payment_type)

        loan = self.get_loan(loan_id)
        if loan is None:
            raise ValueError(f"Loan {loan_id} not found")
        if calculate_balance(loan) <= Decimal('0'):
            raise ValueError(f"Loan {loan_id} is already completed")
        if request.payment_type == PaymentType.PRINCIPAL and loan.loan_type != LoanType.INTEREST_RATE:
            raise ValueError("Principal payments are only recorded for InterestRate loans")

        transaction = LoanTransaction(
            amount=request.amount,
            payment_date=request.payment_date,
            payment_type=request.payment_type,
            id=str(uuid.uuid4()),
        )
        loan = loan.with_transaction(transaction)
        self._save_loan(loan)

        log_action(
            self.logger, "info", "Repayment recorded",
            action="record_repayment", resource=f"loan:{loan_id}",
            details={
                "transaction_id": transaction.id,
                "amount": str(transaction.amount),
                "payment_date": transaction.payment_date.isoformat(),
                "payment_type": transaction.payment_type.value if transaction.payment_type else None
            }
        )
        return loan

    def delete_transaction(self, loan_id: str, transaction_id: str) -> Loan:
        loan = self.get_loan(loan_id)
        if loan is None:
            raise ValueError(f"Loan {loan_id} not found")

        remaining = tuple(txn for txn in loan.transactions if txn.id != transaction_id)
        if len(remaining) == len(loan.transactions):
            raise ValueError(f"Transaction {transaction_id} not found on loan {loan_id}")

        loan = replace(loan, transactions=remaining)
        self._save_loan(loan)

        log_action(
            self.logger, "info", "Repayment deleted",
            action="delete_transaction", resource=f"loan:{loan_id}",
            details={"transaction_id": transaction_id}
        )
        return loan

    # Investors

    def add_investor(self, record: Mapping[str, Any]) -> Investor:
        """Create an investor from its JSON record"""
        data = dict(record)
        data.setdefault("id", str(uuid.uuid4()))
        if not data.get("createdAt"):
            data["createdAt"] = datetime.now(timezone.utc).isoformat()

        investor = InvestorRecordModel.model_validate(data).to_investor()
        if self.storage.exists(self.investors_table, investor.id):
            raise ValueError(f"Investor {investor.id} already exists")

        self._save_investor(investor)

        log_action(
            self.logger, "info", "Investor created",
            action="create_investor", resource=f"investor:{investor.id}",
            details={
                "investor_id": investor.id,
                "investment_type": investor.investment_type.value,
                "investment_amount": str(investor.investment_amount)
            }
        )
        return investor

    def get_investor(self, investor_id: str) -> Optional[Investor]:
        data = self.storage.load(self.investors_table, investor_id)
        if data is None:
            return None
        return InvestorRecordModel.model_validate(data).to_investor()

    def list_investors(self) -> List[Investor]:
        return [
            InvestorRecordModel.model_validate(data).to_investor()
            for data in self.storage.load_all(self.investors_table)
        ]

    def record_investor_payment(
        self,
        investor_id: str,
        amount: Any,
        payment_date: DateLike,
        payment_type: PaymentType = PaymentType.PROFIT,
        remarks: str = ""
    ) -> Investor:
        """Append a payout to an investor; closed investors take no payments"""
        request = InvestorPaymentRequest(
            amount=amount, payment_date=payment_date,
            payment_type=payment_type, remarks=remarks
        )

        investor = self._require_investor(investor_id)
        if investor.is_closed:
            raise ValueError(f"Investor {investor_id} is closed")

        payment = InvestorPayment(
            amount=request.amount,
            payment_date=request.payment_date,
            payment_type=request.payment_type,
            remarks=request.remarks,
            id=str(uuid.uuid4()),
        )
        investor = investor.with_payment(payment)
        self._save_investor(investor)

        log_action(
            self.logger, "info", "Investor payment recorded",
            action="record_investor_payment", resource=f"investor:{investor_id}",
            details={
                "payment_id": payment.id,
                "amount": str(payment.amount),
                "payment_date": payment.payment_date.isoformat(),
                "payment_type": payment.payment_type.value
            }
        )
        return investor

    def close_investor(self, investor_id: str) -> Investor:
        investor = self._require_investor(investor_id).closed()
        self._save_investor(investor)

        log_action(
            self.logger, "info", "Investor closed",
            action="close_investor", resource=f"investor:{investor_id}"
        )
        return investor

    def delete_investor(self, investor_id: str) -> bool:
        deleted = self.storage.delete(self.investors_table, investor_id)
        if deleted:
            log_action(
                self.logger, "info", "Investor deleted",
                action="delete_investor", resource=f"investor:{investor_id}"
            )
        return deleted

    # Views

    def loan_metrics(self, loan_id: str, as_of: DateLike) -> LoanMetrics:
        loan = self.get_loan(loan_id)
        if loan is None:
            raise ValueError(f"Loan {loan_id} not found")
        return calculate_loan_metrics(loan, as_of)

    def investor_metrics(self, investor_id: str, as_of: DateLike) -> InvestorMetrics:
        return calculate_investor_metrics(self._require_investor(investor_id), as_of, self.epsilon)

    def due_on(self, target: DateLike, loan_type: Optional[LoanType] = None) -> List[Loan]:
        return due_on(self.list_loans(), target, loan_type)

    def not_paying(
        self,
        as_of: DateLike,
        months_threshold: Optional[int] = None,
        loan_type: Optional[LoanType] = None
    ) -> List[NotPayingEntry]:
        if months_threshold is None:
            months_threshold = self.months_threshold
        return not_paying_for(self.list_loans(), months_threshold, as_of, loan_type)

    def overdue(self, as_of: DateLike, loan_type: Optional[LoanType] = None) -> List[Loan]:
        return overdue_loans(self.list_loans(), as_of, loan_type)

    def investor_summary(self, as_of: DateLike) -> InvestorSummary:
        return calculate_investor_summary(self.list_investors(), as_of, self.epsilon)

    # Snapshots

    def export_snapshot(self, exported_at: datetime) -> Dict[str, Any]:
        """Backup document holding every loan and investor record"""
        return {
            "loans": [loan_to_record(loan) for loan in self.list_loans()],
            "investors": [investor_to_record(investor) for investor in self.list_investors()],
            "exportedAt": exported_at.isoformat(),
        }

    def restore_snapshot(self, data: Mapping[str, Any]) -> Dict[str, int]:
        """
        Replace records with the contents of a backup document.

        Only the collections present in the document are replaced. The whole
        document is validated before anything is written, and the writes
        happen in one transaction.

        Returns:
            Number of loans and investors restored
        """
        snapshot = SnapshotModel.model_validate(data)
        loans = [model.to_loan() for model in snapshot.loans] if snapshot.loans is not None else None
        investors = (
            [model.to_investor() for model in snapshot.investors]
            if snapshot.investors is not None else None
        )

        with self.storage.atomic():
            if loans is not None:
                self.storage.clear_table(self.loans_table)
                for loan in loans:
                    self._save_loan(loan)
            if investors is not None:
                self.storage.clear_table(self.investors_table)
                for investor in investors:
                    self._save_investor(investor)

        counts = {
            "loans": len(loans) if loans is not None else 0,
            "investors": len(investors) if investors is not None else 0,
        }
        log_action(
            self.logger, "info", "Snapshot restored",
            action="restore_snapshot", resource="snapshot",
            details={
                **counts,
                "exported_at": snapshot.exported_at.isoformat() if snapshot.exported_at else None
            }
        )
        return counts

    # Helpers

    def _require_investor(self, investor_id: str) -> Investor:
        investor = self.get_investor(investor_id)
        if investor is None:
            raise ValueError(f"Investor {investor_id} not found")
        return investor

    def _save_loan(self, loan: Loan) -> None:
        self.storage.save(self.loans_table, loan.id, loan_to_record(loan))

    def _save_investor(self, investor: Investor) -> None:
        self.storage.save(self.investors_table, investor.id, investor_to_record(investor))
