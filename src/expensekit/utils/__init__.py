"""Utility functions for expensekit."""

from expensekit.utils.date_parser import parse_date
from expensekit.utils.amount_parser import parse_amount, to_decimal

__all__ = ["parse_date", "parse_amount", "to_decimal"]
