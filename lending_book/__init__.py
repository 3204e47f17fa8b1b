"""
Lending Book

Bookkeeping for a small lending and investment operation: loan plans
(Finance, Tender, InterestRate), repayments, investor capital and profit
payouts. All financial calculations use Decimal precision and are pure
functions of (record, history, as-of date).
"""

__version__ = "1.0.0"
