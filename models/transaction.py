"""
Transaction model - represents a buy/sell event for an asset.
Wire format uses camelCase field names (symbolName, assetType, createdAt).
"""

import math
from enum import Enum
from typing import Any, Dict, Optional
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class AssetType(str, Enum):
    """Asset classes a position can belong to."""
    STOCK = "stock"
    CURRENCY = "currency"
    GOLD = "gold"
    BANK = "bank"
    CRYPTO = "crypto"


class TransactionType(str, Enum):
    BUY = "buy"
    SELL = "sell"


def _require_number(value: Any) -> Any:
    # Finite JSON numbers only; "10", true or NaN must not sneak in as quantities
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    if not math.isfinite(value):
        raise ValueError("must be a finite number")
    return value


class Transaction(BaseModel):
    """Immutable record of one buy or sell. Corrections are new transactions."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str = Field(min_length=1)
    symbol: str = Field(min_length=1)  # e.g., "THYAO", "USD", "gram-altin", "BTC"
    symbol_name: str = Field(min_length=1)  # e.g., "TURK HAVA YOLLARI", "BTCUSDT"
    symbol_details: Optional[Dict[str, Any]] = None  # equities only (sector, issuer)
    asset_type: AssetType
    quantity: float
    price: float  # Unit price in local currency at transaction time
    transaction_date: date = Field(alias="date")
    transaction_type: TransactionType = Field(alias="type")
    created_at: Optional[datetime] = None

    @field_validator("quantity", "price", mode="before")
    @classmethod
    def check_numbers(cls, value: Any) -> Any:
        return _require_number(value)

    @property
    def position_key(self) -> tuple:
        """Transactions sharing this key belong to the same position."""
        return (self.symbol, self.asset_type)

    @property
    def is_buy(self) -> bool:
        return self.transaction_type == TransactionType.BUY

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the camelCase JSON-compatible dict used for storage and sharing."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TransactionDraft(BaseModel):
    """
    User-entered transaction before the ledger assigns id and timestamps.
    Quantity and price must be positive.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    symbol: str = Field(min_length=1)
    symbol_name: str = Field(min_length=1)
    symbol_details: Optional[Dict[str, Any]] = None
    asset_type: AssetType
    quantity: float = Field(gt=0)
    price: float = Field(gt=0)
    transaction_type: TransactionType = Field(alias="type")

    @field_validator("quantity", "price", mode="before")
    @classmethod
    def check_numbers(cls, value: Any) -> Any:
        return _require_number(value)
