"""Utility functions for moneyquest."""

from moneyquest.utils.date_parser import parse_date, parse_statement_date
from moneyquest.utils.amount_parser import parse_amount

__all__ = ["parse_date", "parse_statement_date", "parse_amount"]
