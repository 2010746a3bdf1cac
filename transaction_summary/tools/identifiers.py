"""
Identifier and timestamp helpers.
"""

import uuid
from datetime import date, datetime
from typing import Union

import pytz


def new_file_identifier() -> str:
    """Generate a unique identifier for an uploaded transactions file."""
    return uuid.uuid4().hex


def format_utc_timestamp(value: Union[date, datetime]) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC.

    Dates are taken as midnight UTC, naive datetimes as UTC.
    """
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)

    if value.tzinfo is None:
        value = pytz.UTC.localize(value)
    else:
        value = value.astimezone(pytz.UTC)

    return value.replace(tzinfo=None).isoformat(timespec='milliseconds') + 'Z'


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)
