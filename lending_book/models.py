"""
Record Types Module

Loans, investors and their payment histories, plus the derived metric
objects the engines produce. Records are immutable: recording a payment
builds a new record, so the calculation engines can never mutate their input.

A loan's plan is a tagged variant with one class per loan type, each carrying
only the fields that plan uses.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Dict, Optional, Tuple, Union

from .dates import PeriodUnit, to_date


class LoanType(Enum):
    """Loan plan types"""
    FINANCE = "Finance"              # Flat monthly interest, monthly installments
    TENDER = "Tender"                # Lump sum repaid on a single due date
    INTEREST_RATE = "InterestRate"   # Perpetual principal, interest due each period


class LoanStatus(Enum):
    """Derived loan lifecycle status"""
    ACTIVE = "Active"
    COMPLETED = "Completed"
    OVERDUE = "Overdue"


class PaymentType(Enum):
    """What a payment settles"""
    INTEREST = "Interest"
    PRINCIPAL = "Principal"
    PROFIT = "Profit"


class InvestmentType(Enum):
    """Investor plan types"""
    INTEREST_RATE_PLAN = "InterestRatePlan"
    FIXED_PROFIT_PLAN = "FixedProfitPlan"


class InvestorStatus(Enum):
    """Investor payout status; CLOSED is terminal and set externally"""
    ON_TRACK = "On Track"
    DELAYED = "Delayed"
    CLOSED = "Closed"


def _decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class FinancePlan:
    """Flat-rate plan: ``interest_rate`` percent of principal per month"""
    interest_rate: Decimal
    duration_months: int

    loan_type: ClassVar[LoanType] = LoanType.FINANCE

    def __post_init__(self):
        object.__setattr__(self, 'interest_rate', _decimal(self.interest_rate))
        if self.duration_months < 0:
            raise ValueError("Finance duration cannot be negative")


@dataclass(frozen=True)
class TenderPlan:
    """Single repayment ``duration_in_days`` after disbursal; monthly rate pro-rated"""
    interest_rate: Decimal
    duration_in_days: int

    loan_type: ClassVar[LoanType] = LoanType.TENDER

    def __post_init__(self):
        object.__setattr__(self, 'interest_rate', _decimal(self.interest_rate))
        if self.duration_in_days < 0:
            raise ValueError("Tender duration cannot be negative")


@dataclass(frozen=True)
class InterestRatePlan:
    """``interest_rate`` percent of remaining principal due every period"""
    interest_rate: Decimal
    duration_unit: PeriodUnit = PeriodUnit.MONTHS

    loan_type: ClassVar[LoanType] = LoanType.INTEREST_RATE

    def __post_init__(self):
        object.__setattr__(self, 'interest_rate', _decimal(self.interest_rate))


LoanPlan = Union[FinancePlan, TenderPlan, InterestRatePlan]


@dataclass(frozen=True)
class LoanTransaction:
    """A repayment logged against a loan"""
    amount: Decimal
    payment_date: date
    payment_type: Optional[PaymentType] = None  # Only PRINCIPAL changes InterestRate accounting
    id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'amount', _decimal(self.amount))
        object.__setattr__(self, 'payment_date', to_date(self.payment_date))

    @property
    def is_principal(self) -> bool:
        return self.payment_type == PaymentType.PRINCIPAL


@dataclass(frozen=True)
class Loan:
    """Loan record with its repayment history (insertion order)"""
    id: str
    customer_name: str
    phone: str
    loan_amount: Decimal       # Principal
    given_amount: Decimal      # Actually disbursed, after upfront deductions
    start_date: date
    plan: LoanPlan
    transactions: Tuple[LoanTransaction, ...] = ()
    created_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, 'loan_amount', _decimal(self.loan_amount))
        object.__setattr__(self, 'given_amount', _decimal(self.given_amount))
        object.__setattr__(self, 'start_date', to_date(self.start_date))
        object.__setattr__(self, 'transactions', tuple(self.transactions))

    @property
    def loan_type(self) -> LoanType:
        return self.plan.loan_type

    @property
    def interest_rate(self) -> Decimal:
        return self.plan.interest_rate

    def with_transaction(self, transaction: LoanTransaction) -> 'Loan':
        """Return a copy with ``transaction`` appended"""
        return replace(self, transactions=self.transactions + (transaction,))


@dataclass(frozen=True)
class InvestorPayment:
    """A payout made to an investor"""
    amount: Decimal
    payment_date: date
    payment_type: PaymentType = PaymentType.PROFIT
    remarks: str = ""
    id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'amount', _decimal(self.amount))
        object.__setattr__(self, 'payment_date', to_date(self.payment_date))


@dataclass(frozen=True)
class Investor:
    """Investor record with payout history"""
    id: str
    name: str
    investment_type: InvestmentType
    investment_amount: Decimal
    profit_rate: Decimal       # Percent per month
    start_date: date
    status: InvestorStatus = InvestorStatus.ON_TRACK
    payments: Tuple[InvestorPayment, ...] = ()
    created_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, 'investment_amount', _decimal(self.investment_amount))
        object.__setattr__(self, 'profit_rate', _decimal(self.profit_rate))
        object.__setattr__(self, 'start_date', to_date(self.start_date))
        object.__setattr__(self, 'payments', tuple(self.payments))

    @property
    def is_closed(self) -> bool:
        return self.status == InvestorStatus.CLOSED

    def with_payment(self, payment: InvestorPayment) -> 'Investor':
        """Return a copy with ``payment`` appended"""
        return replace(self, payments=self.payments + (payment,))

    def closed(self) -> 'Investor':
        """Return a copy in the terminal CLOSED state"""
        return replace(self, status=InvestorStatus.CLOSED)


# Derived projections; recomputed on every read, never persisted

@dataclass(frozen=True)
class LoanMetrics:
    balance: Decimal
    status: LoanStatus
    next_due_date: Optional[date]
    interest_per_period: Decimal
    pending_interest: Decimal
    profit: Decimal
    total_amount: Decimal
    amount_paid: Decimal


@dataclass(frozen=True)
class InvestorMetrics:
    current_balance: Decimal
    accumulated_profit: Decimal
    total_paid: Decimal
    missed_months: int
    monthly_profit: Decimal
    pending_profit: Decimal
    status: InvestorStatus


@dataclass(frozen=True)
class InvestorSummary:
    total_investors: int
    total_investment: Decimal
    total_profit_earned: Decimal
    total_paid_to_investors: Decimal
    total_pending_profit: Decimal
    overall_profit_loss: Decimal


@dataclass(frozen=True)
class NotPayingEntry:
    """A loan with no repayment for ``months`` calendar months"""
    loan: Loan
    months: int


@dataclass(frozen=True)
class LoanPortfolioSummary:
    """Totals across a loan collection as of a date"""
    total_loans: int
    by_status: Dict[LoanStatus, int]
    by_type: Dict[LoanType, int]
    total_principal: Decimal
    total_disbursed: Decimal
    total_collected: Decimal
    total_outstanding: Decimal   # Positive balances only
    total_profit: Decimal
