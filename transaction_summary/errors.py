"""
Error taxonomy for the summary pipeline.
"""

from typing import Optional


class SummaryError(Exception):
    """Base class for pipeline errors."""


class MalformedField(SummaryError):
    """A CSV field could not be parsed into its typed value."""

    def __init__(self, field: str, value: str, row_number: Optional[int] = None):
        self.field = field
        self.value = value
        self.row_number = row_number
        location = f"Row {row_number}: " if row_number is not None else ""
        super().__init__(f"{location}Invalid {field}: '{value}'")


class NoDataForAggregate(SummaryError):
    """An average was requested over an empty subset of transactions."""

    DEBIT = "debit"
    CREDIT = "credit"

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"No {kind} transactions to average")


class CollaboratorFailure(SummaryError):
    """Wraps a failure raised by storage, template or transport collaborators."""

    def __init__(self, collaborator: str, operation: str, cause: Exception):
        self.collaborator = collaborator
        self.operation = operation
        self.cause = cause
        super().__init__(f"{collaborator} failed to {operation}: {cause}")
