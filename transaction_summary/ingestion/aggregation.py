"""
Aggregation engine computing summary statistics over transaction records.
"""

import logging
from decimal import Decimal
from typing import Dict, Sequence

from pydantic import BaseModel, ConfigDict

from transaction_summary.errors import NoDataForAggregate
from transaction_summary.ingestion.record_parser import TransactionRecord

logger = logging.getLogger(__name__)

# Locale-independent month names
MONTH_NAMES = (
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
)


class SummaryStatistics(BaseModel):
    """Read-only statistics. Amounts carry full decimal precision."""

    model_config = ConfigDict(frozen=True)

    total_balance: Decimal
    # Keyed by month name only; the same month of different years shares a bucket.
    counts_by_month: Dict[str, int]
    average_debit: Decimal
    average_credit: Decimal


class AggregationEngine:
    """Computes totals, per-month counts and average debit/credit amounts."""

    def calculate_total_balance(self, transactions: Sequence[TransactionRecord]) -> Decimal:
        return sum((t.amount for t in transactions), Decimal('0'))

    def calculate_transactions_per_month(self, transactions: Sequence[TransactionRecord]) -> Dict[str, int]:
        """Count transactions per month name, in order of first appearance."""
        counts: Dict[str, int] = {}
        for transaction in transactions:
            month = MONTH_NAMES[transaction.parsed_date.month - 1]
            counts[month] = counts.get(month, 0) + 1
        return counts

    def calculate_average_debit(self, transactions: Sequence[TransactionRecord]) -> Decimal:
        debits = [t.amount for t in transactions if t.amount < 0]
        if not debits:
            raise NoDataForAggregate(NoDataForAggregate.DEBIT)
        return sum(debits, Decimal('0')) / len(debits)

    def calculate_average_credit(self, transactions: Sequence[TransactionRecord]) -> Decimal:
        credits = [t.amount for t in transactions if t.amount > 0]
        if not credits:
            raise NoDataForAggregate(NoDataForAggregate.CREDIT)
        return sum(credits, Decimal('0')) / len(credits)

    def summarize(self, transactions: Sequence[TransactionRecord]) -> SummaryStatistics:
        """Compute all statistics. Raises NoDataForAggregate when debits or credits are missing."""
        summary = SummaryStatistics(
            total_balance=self.calculate_total_balance(transactions),
            counts_by_month=self.calculate_transactions_per_month(transactions),
            average_debit=self.calculate_average_debit(transactions),
            average_credit=self.calculate_average_credit(transactions),
        )

        logger.info(
            f"Aggregated {len(transactions)} transactions into "
            f"{len(summary.counts_by_month)} month buckets"
        )
        return summary
