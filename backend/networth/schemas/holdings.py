# backend/networth/schemas/holdings.py
"""
Pydantic schemas for holdings.

The wire format is the collaborator's camelCase blob. Field names are
snake_case in Python with camelCase aliases; either spelling is accepted
on input and responses are written with the aliases. Fields the engine
does not know about are kept and returned unchanged.
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from networth.services.holdings import Holding, HoldingKind


class HoldingSchema(BaseModel):
    """One asset or liability, as exchanged with the UI."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = Field(
        default=None,
        description="Collaborator-assigned identifier (generated when missing)"
    )
    kind: HoldingKind = Field(
        default=HoldingKind.ASSET,
        alias="type",
        description="asset or liability"
    )
    category: str = Field(default="", description="Grouping such as Stock, Bitcoin, Mortgage")
    name: str = Field(default="", description="Display name; used as the ticker when none is set")
    ticker: str | None = None
    quantity: Decimal = Field(
        default=Decimal("1"),
        ge=0,
        description="Units held"
    )
    purchase_date: dt.date | None = Field(default=None, alias="purchaseDate")
    purchase_value: Decimal | None = Field(
        default=None,
        alias="purchaseValue",
        description="Price per unit at purchase"
    )
    auto_update: bool = Field(
        default=False,
        alias="autoUpdate",
        description="Fetch market prices for this holding"
    )
    current_value: Decimal | None = Field(
        default=None,
        alias="currentValue",
        description="Latest total value in the display currency"
    )
    last_updated: dt.datetime | None = Field(default=None, alias="lastUpdated")

    def to_holding(self) -> Holding:
        return Holding.from_dict(self.model_dump(mode="json", by_alias=True, exclude_none=True))

    @classmethod
    def from_holding(cls, holding: Holding) -> "HoldingSchema":
        return cls.model_validate(holding.to_dict())
