"""Utility functions for lexbill."""

from lexbill.utils.date_parser import parse_date, parse_datetime, get_date_range
from lexbill.utils.amount_parser import parse_amount, parse_hours

__all__ = ["parse_date", "parse_datetime", "get_date_range", "parse_amount", "parse_hours"]
