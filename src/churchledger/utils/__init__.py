"""Utility functions for churchledger."""

from churchledger.utils.date_parser import parse_date
from churchledger.utils.amount_parser import parse_amount
from churchledger.utils.memo import clean_memo, name_tokens

__all__ = ["parse_date", "parse_amount", "clean_memo", "name_tokens"]
