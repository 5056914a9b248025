"""
Snapshot model - a point-in-time {owner, transactions} pair for sharing.
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from models.transaction import Transaction


class Snapshot(BaseModel):
    """Export/import payload. The owner is written as `user`; `ownerId` is also accepted."""

    model_config = ConfigDict(populate_by_name=True)

    user: str = Field(min_length=1, validation_alias=AliasChoices("user", "ownerId"))
    transactions: List[Transaction]
    timestamp: Optional[int] = None  # epoch milliseconds

    def to_wire(self) -> Dict[str, Any]:
        return {
            "user": self.user,
            "transactions": [tx.to_wire() for tx in self.transactions],
            **({"timestamp": self.timestamp} if self.timestamp is not None else {}),
        }
