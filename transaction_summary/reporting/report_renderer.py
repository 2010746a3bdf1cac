"""
Renders summary statistics into human-readable report lines.
"""

from decimal import Decimal, ROUND_HALF_EVEN, localcontext
from typing import List

from transaction_summary.ingestion.aggregation import SummaryStatistics

CENTS = Decimal('0.01')


def format_amount(value: Decimal) -> str:
    """Format a monetary value with two fractional digits, rounding half to even."""
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the two cents digits
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return str(value.quantize(CENTS, rounding=ROUND_HALF_EVEN))


class ReportRenderer:
    """Produces report lines: total balance, month counts, average debit, average credit."""

    def render(self, summary: SummaryStatistics) -> List[str]:
        lines = [f"Total balance is: {format_amount(summary.total_balance)}"]

        # counts_by_month is insertion-ordered, so month lines are reproducible
        for month, count in summary.counts_by_month.items():
            lines.append(f"Number of transactions in {month}: {count}")

        lines.append(f"Average debit amount: {format_amount(summary.average_debit)}")
        lines.append(f"Average credit amount: {format_amount(summary.average_credit)}")
        return lines
