"""
Transaction Summary Pipeline

Parses a CSV of bank-account transactions, computes descriptive statistics
and delivers them, together with the original file, as a multipart email.
"""

__version__ = "0.1.0"
