"""
Profile model - a named transaction log bound to an owner identity.
"""

from typing import Any, Dict, List
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.transaction import Transaction


class Profile(BaseModel):
    """
    One switchable view of a transaction log.
    The owner profile (id == local user id) can never be removed.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str = Field(min_length=1)
    label: str
    transactions: List[Transaction] = Field(default_factory=list)
    is_owner: bool = False
    last_updated: datetime = Field(default_factory=datetime.now)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
