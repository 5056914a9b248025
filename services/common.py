"""
Common utilities and shared types.
Result types for fail-soft operations, symbol normalization, and id helpers.
"""

import logging
import time
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type


@dataclass(frozen=True)
class Success(Generic[T]):
    """Represents a successful operation result."""
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure(Generic[E]):
    """Represents a failed operation result."""
    error: E

    @property
    def ok(self) -> bool:
        return False


Result = Union[Success[T], Failure[E]]


def normalize_symbol(symbol: str, suffix: str = ".IS") -> str:
    """
    Convert an exchange ticker to yfinance format.

    Args:
        symbol: Ticker code (e.g., "THYAO", "ASELS.IS")
        suffix: Exchange suffix yfinance expects

    Returns:
        Properly formatted yfinance symbol

    Examples:
        >>> normalize_symbol("THYAO")
        'THYAO.IS'
        >>> normalize_symbol("ASELS.IS")
        'ASELS.IS'
        >>> normalize_symbol("AAPL", "")
        'AAPL'
    """
    symbol = symbol.strip().upper()
    if not suffix or symbol.endswith(suffix.upper()):
        return symbol
    return f"{symbol}{suffix.upper()}"


_last_token = 0


def new_transaction_id() -> str:
    """
    Time-based unique id (epoch milliseconds as a string).
    Bumps past the previous value when called twice in the same millisecond.
    """
    global _last_token
    token = int(time.time() * 1000)
    if token <= _last_token:
        token = _last_token + 1
    _last_token = token
    return str(token)
