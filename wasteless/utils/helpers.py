"""
General helper utilities
"""
import json
from decimal import Decimal
from typing import Any, Union


def format_currency(amount: Union[Decimal, float]) -> str:
    """Format amount as Israeli Shekel"""
    return f"₪{amount:,.2f}"


def safe_json_parse(text: Any, default: Any = None) -> Any:
    """Parse a stored JSON column, returning ``default`` for plain text"""
    if text is None:
        return default
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return default
