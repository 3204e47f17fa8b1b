"""
Pydantic schemas for the JSON record boundary

Loan and investor records arrive as camelCase JSON (transactions and payments
keep their snake_case ``payment_date`` keys). Models here validate that shape,
convert it into the immutable domain records and serialise records back.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .dates import PeriodUnit, to_date
from .models import (
    FinancePlan, InterestRatePlan, InvestmentType, Investor, InvestorMetrics,
    InvestorPayment, InvestorStatus, Loan, LoanMetrics, LoanStatus, LoanTransaction,
    LoanType, PaymentType, TenderPlan,
)


def _parse_date(value: Any) -> Any:
    if value is None:
        return None
    return to_date(value)


# Loan schemas
class LoanTransactionModel(BaseModel):
    id: Optional[str] = None
    amount: Decimal
    payment_date: date
    payment_type: Optional[PaymentType] = None

    check_payment_date = field_validator("payment_date", mode="before")(_parse_date)

    def to_transaction(self) -> LoanTransaction:
        return LoanTransaction(
            amount=self.amount,
            payment_date=self.payment_date,
            payment_type=self.payment_type,
            id=self.id,
        )


class LoanRecordModel(BaseModel):
    """Loan record; plan fields are checked against ``loanType``"""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    customer_name: str = Field(..., alias="customerName")
    phone: str = ""
    loan_type: LoanType = Field(..., alias="loanType")
    loan_amount: Decimal = Field(..., alias="loanAmount")
    given_amount: Optional[Decimal] = Field(None, alias="givenAmount")
    start_date: date = Field(..., alias="startDate")
    interest_rate: Decimal = Field(..., alias="interestRate")
    duration_in_months: Optional[int] = Field(None, alias="durationInMonths", ge=0)
    duration_in_days: Optional[int] = Field(None, alias="durationInDays", ge=0)
    duration_unit: Optional[PeriodUnit] = Field(None, alias="durationUnit")
    transactions: List[LoanTransactionModel] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    check_start_date = field_validator("start_date", mode="before")(_parse_date)

    @model_validator(mode="after")
    def check_plan_fields(self) -> 'LoanRecordModel':
        if self.loan_type == LoanType.FINANCE and self.duration_in_months is None:
            raise ValueError("Finance loans require durationInMonths")
        if self.loan_type == LoanType.TENDER and self.duration_in_days is None:
            raise ValueError("Tender loans require durationInDays")
        return self

    def to_loan(self) -> Loan:
        if self.loan_type == LoanType.FINANCE:
            plan = FinancePlan(self.interest_rate, self.duration_in_months)
        elif self.loan_type == LoanType.TENDER:
            plan = TenderPlan(self.interest_rate, self.duration_in_days)
        else:
            plan = InterestRatePlan(self.interest_rate, self.duration_unit or PeriodUnit.MONTHS)

        return Loan(
            id=self.id,
            customer_name=self.customer_name,
            phone=self.phone,
            loan_amount=self.loan_amount,
            given_amount=self.loan_amount if self.given_amount is None else self.given_amount,
            start_date=self.start_date,
            plan=plan,
            transactions=tuple(txn.to_transaction() for txn in self.transactions),
            created_at=self.created_at,
        )


class RepaymentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_date: date
    payment_type: Optional[PaymentType] = None

    check_payment_date = field_validator("payment_date", mode="before")(_parse_date)


# Investor schemas
class InvestorPaymentModel(BaseModel):
    id: Optional[str] = None
    amount: Decimal
    payment_date: date
    payment_type: PaymentType = PaymentType.PROFIT
    remarks: str = ""

    check_payment_date = field_validator("payment_date", mode="before")(_parse_date)

    def to_payment(self) -> InvestorPayment:
        return InvestorPayment(
            amount=self.amount,
            payment_date=self.payment_date,
            payment_type=self.payment_type,
            remarks=self.remarks,
            id=self.id,
        )


class InvestorRecordModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    investment_type: InvestmentType = Field(InvestmentType.FIXED_PROFIT_PLAN, alias="investmentType")
    investment_amount: Decimal = Field(..., alias="investmentAmount")
    profit_rate: Decimal = Field(..., alias="profitRate")
    start_date: date = Field(..., alias="startDate")
    status: InvestorStatus = InvestorStatus.ON_TRACK
    payments: List[InvestorPaymentModel] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    check_start_date = field_validator("start_date", mode="before")(_parse_date)

    @field_validator("investment_type", mode="before")
    @classmethod
    def map_investment_type(cls, value: Any) -> Any:
        # Every plan other than InterestRatePlan accrues as a fixed profit plan
        if isinstance(value, InvestmentType):
            return value
        if value == InvestmentType.INTEREST_RATE_PLAN.value:
            return InvestmentType.INTEREST_RATE_PLAN
        return InvestmentType.FIXED_PROFIT_PLAN

    def to_investor(self) -> Investor:
        return Investor(
            id=self.id,
            name=self.name,
            investment_type=self.investment_type,
            investment_amount=self.investment_amount,
            profit_rate=self.profit_rate,
            start_date=self.start_date,
            status=self.status,
            payments=tuple(payment.to_payment() for payment in self.payments),
            created_at=self.created_at,
        )


class InvestorPaymentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_date: date
    payment_type: PaymentType = PaymentType.PROFIT
    remarks: str = ""

    check_payment_date = field_validator("payment_date", mode="before")(_parse_date)


# Metrics output schemas
class LoanMetricsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    balance: Decimal
    status: LoanStatus
    next_due_date: Optional[date] = Field(None, alias="nextDueDate")
    interest_per_period: Decimal = Field(..., alias="interestPerPeriod")
    pending_interest: Decimal = Field(..., alias="pendingInterest")
    profit: Decimal
    total_amount: Decimal = Field(..., alias="totalAmount")
    amount_paid: Decimal = Field(..., alias="amountPaid")

    @classmethod
    def from_metrics(cls, metrics: LoanMetrics) -> 'LoanMetricsModel':
        return cls(
            balance=metrics.balance,
            status=metrics.status,
            next_due_date=metrics.next_due_date,
            interest_per_period=metrics.interest_per_period,
            pending_interest=metrics.pending_interest,
            profit=metrics.profit,
            total_amount=metrics.total_amount,
            amount_paid=metrics.amount_paid,
        )


class InvestorMetricsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_balance: Decimal = Field(..., alias="currentBalance")
    accumulated_profit: Decimal = Field(..., alias="accumulatedProfit")
    total_paid: Decimal = Field(..., alias="totalPaid")
    missed_months: int = Field(..., alias="missedMonths")
    monthly_profit: Decimal = Field(..., alias="monthlyProfit")
    pending_profit: Decimal = Field(..., alias="pendingProfit")
    status: InvestorStatus

    @classmethod
    def from_metrics(cls, metrics: InvestorMetrics) -> 'InvestorMetricsModel':
        return cls(
            current_balance=metrics.current_balance,
            accumulated_profit=metrics.accumulated_profit,
            total_paid=metrics.total_paid,
            missed_months=metrics.missed_months,
            monthly_profit=metrics.monthly_profit,
            pending_profit=metrics.pending_profit,
            status=metrics.status,
        )


# Snapshot schema
class SnapshotModel(BaseModel):
    """Backup document; at least one collection must be present"""

    model_config = ConfigDict(populate_by_name=True)

    loans: Optional[List[LoanRecordModel]] = None
    investors: Optional[List[InvestorRecordModel]] = None
    exported_at: Optional[datetime] = Field(None, alias="exportedAt")

    @model_validator(mode="after")
    def check_collections(self) -> 'SnapshotModel':
        if self.loans is None and self.investors is None:
            raise ValueError("Snapshot must contain loans or investors")
        return self


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def loan_to_record(loan: Loan) -> Dict[str, Any]:
    """Serialise a loan to its camelCase JSON record (amounts as strings)"""
    record = {
        "id": loan.id,
        "customerName": loan.customer_name,
        "phone": loan.phone,
        "loanType": loan.loan_type.value,
        "loanAmount": str(loan.loan_amount),
        "givenAmount": str(loan.given_amount),
        "startDate": loan.start_date.isoformat(),
        "interestRate": str(loan.interest_rate),
        "transactions": [],
        "createdAt": _iso(loan.created_at),
    }

    plan = loan.plan
    if isinstance(plan, FinancePlan):
        record["durationInMonths"] = plan.duration_months
    elif isinstance(plan, TenderPlan):
        record["durationInDays"] = plan.duration_in_days
    elif isinstance(plan, InterestRatePlan):
        record["durationUnit"] = plan.duration_unit.value

    for txn in loan.transactions:
        entry = {
            "id": txn.id,
            "amount": str(txn.amount),
            "payment_date": txn.payment_date.isoformat(),
        }
        if txn.payment_type is not None:
            entry["payment_type"] = txn.payment_type.value
        record["transactions"].append(entry)

    return record


def investor_to_record(investor: Investor) -> Dict[str, Any]:
    """Serialise an investor to its camelCase JSON record (amounts as strings)"""
    return {
        "id": investor.id,
        "name": investor.name,
        "investmentType": investor.investment_type.value,
        "investmentAmount": str(investor.investment_amount),
        "profitRate": str(investor.profit_rate),
        "startDate": investor.start_date.isoformat(),
        "status": investor.status.value,
        "payments": [
            {
                "id": payment.id,
                "amount": str(payment.amount),
                "payment_date": payment.payment_date.isoformat(),
                "payment_type": payment.payment_type.value,
                "remarks": payment.remarks,
            }
            for payment in investor.payments
        ],
        "createdAt": _iso(investor.created_at),
    }
