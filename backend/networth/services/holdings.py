# backend/networth/services/holdings.py
"""
Holding model and holdings helpers.

Holdings are owned by the collaborator (UI, import tools) and arrive as
JSON blobs with camelCase keys:

    {
        "id": "h-1", "type": "asset", "category": "Stock", "name": "AAPL",
        "ticker": "AAPL", "quantity": 10, "purchaseDate": "2024-01-02",
        "purchaseValue": 185.64, "autoUpdate": true,
        "currentValue": 1920.10, "lastUpdated": "2024-03-01T12:00:00+00:00"
    }

The engines read quantity, purchase date, ticker, auto-update flag,
category, name and purchase value, and only ever write current value and
last-updated timestamp. Holding is frozen: updates produce copies via
``with_current_value`` so collaborator inputs are never mutated.

Unknown keys are preserved in ``extra`` and written back unchanged.
"""

import logging
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from networth.services.constants import BITCOIN_CATEGORY, BTC_TICKER
from networth.utils.date_utils import parse_iso_date
from networth.utils.decimal_utils import to_decimal

logger = logging.getLogger(__name__)

_ONE = Decimal("1")
_ZERO = Decimal("0")

# Serialized key -> attribute
_FIELD_KEYS: dict[str, str] = {
    "id": "id",
    "type": "kind",
    "category": "category",
    "name": "name",
    "ticker": "ticker",
    "quantity": "quantity",
    "purchaseDate": "purchase_date",
    "purchaseValue": "purchase_value",
    "autoUpdate": "auto_update",
    "currentValue": "current_value",
    "lastUpdated": "last_updated",
}

# Also accepted on input
_SNAKE_KEYS: dict[str, str] = {attr: key for key, attr in _FIELD_KEYS.items()}


class HoldingKind(str, Enum):
    ASSET = "asset"
    LIABILITY = "liability"


@dataclass(frozen=True)
class Holding:
    """
    One asset or liability position.

    Attributes:
        id: Collaborator-assigned identifier
        kind: asset or liability
        category: Free-form grouping ("Stock", "Bitcoin", "Mortgage", ...)
        name: Display name; doubles as the ticker when ``ticker`` is absent
        ticker: Explicit ticker symbol (optional)
        quantity: Units held (defaults to 1)
        purchase_date: Date acquired or originated
        purchase_value: Price PER UNIT at purchase
        auto_update: Whether prices are fetched for this holding
        current_value: Latest total value (price x quantity)
        last_updated: When current_value was last written
        extra: Collaborator fields the engine does not interpret
    """

    id: str
    kind: HoldingKind
    category: str = ""
    name: str = ""
    ticker: str | None = None
    quantity: Decimal = _ONE
    purchase_date: date | None = None
    purchase_value: Decimal | None = None
    auto_update: bool = False
    current_value: Decimal | None = None
    last_updated: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_asset(self) -> bool:
        return self.kind is HoldingKind.ASSET

    @property
    def is_liability(self) -> bool:
        return self.kind is HoldingKind.LIABILITY

    @property
    def total_cost(self) -> Decimal:
        """Value at purchase: per-unit purchase value times quantity."""
        return (self.purchase_value or _ZERO) * self.quantity

    @property
    def value(self) -> Decimal:
        """Current value when known, otherwise value at purchase."""
        if self.current_value is not None:
            return self.current_value
        return self.total_cost

    def held_on(self, day: date) -> bool:
        """True when the holding existed on ``day`` (undated holdings always do)."""
        return self.purchase_date is None or self.purchase_date <= day

    def with_current_value(self, value: Decimal, updated_at: datetime) -> "Holding":
        return replace(self, current_value=value, last_updated=updated_at)

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Holding":
        """
        Build a Holding from a collaborator blob (camelCase or snake_case keys).

        Raises:
            ValueError: If ``type`` is not asset/liability or a date is invalid
        """
        values: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, raw in data.items():
            if key in _FIELD_KEYS:
                values[_FIELD_KEYS[key]] = raw
            elif key in _SNAKE_KEYS:
                values[_FIELD_KEYS[_SNAKE_KEYS[key]]] = raw
            else:
                extra[key] = raw

        quantity = to_decimal(values.get("quantity"))
        purchase_date = values.get("purchase_date")
        last_updated = values.get("last_updated")
        ticker = values.get("ticker")

        return cls(
            id=str(values.get("id") or uuid.uuid4()),
            kind=HoldingKind(str(values.get("kind", HoldingKind.ASSET.value)).lower()),
            category=str(values.get("category") or ""),
            name=str(values.get("name") or ""),
            ticker=(str(ticker).strip() or None) if ticker else None,
            quantity=quantity if quantity is not None else _ONE,
            purchase_date=parse_iso_date(purchase_date) if purchase_date else None,
            purchase_value=to_decimal(values.get("purchase_value")),
            auto_update=bool(values.get("auto_update", False)),
            current_value=to_decimal(values.get("current_value")),
            last_updated=_parse_datetime(last_updated) if last_updated else None,
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the collaborator's camelCase shape."""
        data: dict[str, Any] = dict(self.extra)
        data.update({
            "id": self.id,
            "type": self.kind.value,
            "category": self.category,
            "name": self.name,
            "quantity": str(self.quantity),
            "autoUpdate": self.auto_update,
        })
        if self.ticker is not None:
            data["ticker"] = self.ticker
        if self.purchase_date is not None:
            data["purchaseDate"] = self.purchase_date.isoformat()
        if self.purchase_value is not None:
            data["purchaseValue"] = str(self.purchase_value)
        if self.current_value is not None:
            data["currentValue"] = str(self.current_value)
        if self.last_updated is not None:
            data["lastUpdated"] = self.last_updated.isoformat()
        return data


def _parse_datetime(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


# =============================================================================
# HELPERS
# =============================================================================

def parse_holdings(items: Iterable[Mapping[str, Any]] | None) -> list[Holding]:
    """Parse collaborator blobs, skipping (and logging) malformed entries."""
    holdings: list[Holding] = []
    for index, item in enumerate(items or []):
        try:
            holdings.append(Holding.from_dict(item))
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed holding at index {index}: {e}")
    return holdings


def dump_holdings(holdings: Iterable[Holding]) -> list[dict[str, Any]]:
    return [holding.to_dict() for holding in holdings]


def resolve_ticker(holding: Holding) -> str | None:
    """
    Ticker whose prices value this holding, or None.

    Rules (first match wins):
    1. auto-update disabled -> None
    2. explicit ticker -> uppercased ticker
    3. Bitcoin category -> BTC
    4. name BTC or BITCOIN (any case) -> BTC
    5. non-empty name -> uppercased name
    """
    if not holding.auto_update:
        return None
    if holding.ticker and holding.ticker.strip():
        return holding.ticker.strip().upper()
    if holding.category == BITCOIN_CATEGORY:
        return BTC_TICKER
    name = holding.name.strip().upper()
    if name in ("BTC", "BITCOIN"):
        return BTC_TICKER
    return name or None


def group_by_ticker(holdings: Iterable[Holding]) -> dict[str, list[Holding]]:
    """Resolvable holdings grouped by ticker, tickers in first-seen order."""
    groups: dict[str, list[Holding]] = {}
    for holding in holdings:
        ticker = resolve_ticker(holding)
        if ticker is not None:
            groups.setdefault(ticker, []).append(holding)
    return groups


def get_earliest_purchase_date(holdings: Iterable[Holding]) -> date | None:
    dates = [h.purchase_date for h in holdings if h.purchase_date is not None]
    return min(dates) if dates else None


def get_default_date_range(holdings: Iterable[Holding], today: date) -> tuple[date, date]:
    """
    Default chart range: earliest purchase date (or today) through today.

    A purchase date in the future collapses the range to today.
    """
    earliest = get_earliest_purchase_date(holdings)
    start = earliest if earliest is not None and earliest <= today else today
    return start, today
