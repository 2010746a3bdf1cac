"""
Record parser for turning raw CSV rows into typed transaction records.
"""

import csv
import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import List, Sequence

from pydantic import BaseModel, ConfigDict, field_validator

from transaction_summary.errors import MalformedField

logger = logging.getLogger(__name__)

DATE_FORMAT = '%Y-%m-%d'

# Zero-padded dates and plain decimal amounts only; no whitespace or digit separators
DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
AMOUNT_PATTERN = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")

# Zero values substituted by the lenient policy
ZERO_DATE = date.min.isoformat()
ZERO_AMOUNT = Decimal('0')


class TransactionRecord(BaseModel):
    """A single account transaction. Negative amounts are debits, positive are credits."""

    model_config = ConfigDict(frozen=True)

    id: str
    date: str
    amount: Decimal

    @field_validator('date')
    @classmethod
    def validate_date(cls, v):
        if not DATE_PATTERN.fullmatch(v):
            raise ValueError(f"Date must be YYYY-MM-DD: {v}")
        datetime.strptime(v, DATE_FORMAT)
        return v

    @property
    def parsed_date(self) -> date:
        return datetime.strptime(self.date, DATE_FORMAT).date()


class LenientParsePolicy:
    """Malformed fields resolve to their zero value; the row is kept."""

    strict = False


class StrictParsePolicy:
    """Malformed fields raise MalformedField and abort the parse."""

    strict = True


def read_csv_rows(csv_content: bytes) -> List[List[str]]:
    """Decode CSV bytes into rows of string fields. Blank lines are skipped."""
    try:
        csv_text = csv_content.decode('utf-8-sig')
        return [row for row in csv.reader(StringIO(csv_text, newline='')) if row]
    except UnicodeDecodeError as e:
        raise ValueError(f"CSV file is not valid UTF-8: {e}") from e
    except csv.Error as e:
        raise ValueError(f"CSV parsing error: {e}") from e


class RecordParser:
    """Parses a tabular dataset whose first row is a header.

    Columns are positional: id, date (YYYY-MM-DD), amount. Extra columns are
    ignored. Under the default lenient policy no data row is ever dropped.
    """

    def __init__(self, policy=LenientParsePolicy):
        self.policy = policy
        self.malformed_fields: List[MalformedField] = []

    def parse_rows(self, data: Sequence[Sequence[str]]) -> List[TransactionRecord]:
        """Convert rows into transaction records, preserving input order."""
        self.malformed_fields = []
        transactions = []

        for row_number, row in enumerate(data[1:], start=1):
            transactions.append(self._parse_row(row, row_number))

        if self.malformed_fields:
            logger.warning(f"Dataset has {len(self.malformed_fields)} malformed fields")

        logger.info(f"Parsed {len(transactions)} transactions")
        return transactions

    def _parse_row(self, row: Sequence[str], row_number: int) -> TransactionRecord:
        fields = list(row[:3]) + [None] * (3 - len(row[:3]))

        return TransactionRecord(
            id=fields[0] or '',
            date=self._parse_date(fields[1], row_number),
            amount=self._parse_amount(fields[2], row_number),
        )

    def _parse_date(self, value: str, row_number: int) -> str:
        """Parse a YYYY-MM-DD date and normalize it back to ISO form."""
        try:
            if not DATE_PATTERN.fullmatch(value):
                raise ValueError(f"Expected YYYY-MM-DD: {value}")
            return datetime.strptime(value, DATE_FORMAT).date().isoformat()
        except (ValueError, TypeError):
            return self._fallback(MalformedField('date', value, row_number), ZERO_DATE)

    def _parse_amount(self, value: str, row_number: int) -> Decimal:
        try:
            if not AMOUNT_PATTERN.fullmatch(value):
                raise InvalidOperation(f"Not a decimal number: {value}")
            amount = Decimal(value)
        except (InvalidOperation, TypeError):
            return self._fallback(MalformedField('amount', value, row_number), ZERO_AMOUNT)

        return amount

    def _fallback(self, error: MalformedField, zero_value):
        if self.policy.strict:
            raise error

        self.malformed_fields.append(error)
        logger.warning(f"{error} - using {zero_value}")
        return zero_value
