# backend/networth/services/preferences_service.py
"""
Preferences Service for user-level engine settings.

This service handles:
- Reading the preferences blob, filling defaults from Settings
- Partial updates (only provided fields change)
- Currency code validation

Stored preferences take precedence over environment configuration, so a
user can enter API keys and pick a display currency without redeploying.

Default Preferences:
- display_currency: Settings.display_currency (USD)
- finnhub_api_key / alpha_vantage_api_key: Settings values (may be None)
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any

from networth.config import Settings
from networth.services.constants import PREFERENCES_KEY
from networth.services.exceptions import ValidationError
from networth.services.protocols import KeyValueStore

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("display_currency", "finnhub_api_key", "alpha_vantage_api_key")


@dataclass(frozen=True)
class Preferences:
    display_currency: str
    finnhub_api_key: str | None = None
    alpha_vantage_api_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PreferencesService:
    """Reads and updates the "preferences" blob in the key-value store."""

    def __init__(self, store: KeyValueStore, settings: Settings) -> None:
        self._store = store
        self._settings = settings

    def get_preferences(self) -> Preferences:
        stored = self._store.get(PREFERENCES_KEY) or {}
        return Preferences(
            display_currency=str(
                stored.get("display_currency") or self._settings.display_currency
            ).upper(),
            finnhub_api_key=stored.get("finnhub_api_key") or self._settings.finnhub_api_key,
            alpha_vantage_api_key=(
                stored.get("alpha_vantage_api_key") or self._settings.alpha_vantage_api_key
            ),
        )

    def update_preferences(self, updates: dict[str, Any]) -> Preferences:
        """
        Apply a partial update. None values are ignored; an empty string
        clears a stored API key (falling back to the environment value).

        Raises:
            ValidationError: Unknown field or invalid currency code
        """
        unknown = set(updates) - set(_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown preference fields: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        stored = dict(self._store.get(PREFERENCES_KEY) or {})
        for key, value in updates.items():
            if value is None:
                continue
            if key == "display_currency":
                value = str(value).strip().upper()
                if len(value) != 3 or not value.isalpha():
                    raise ValidationError(
                        f"Invalid currency code '{value}'", field="display_currency"
                    )
            elif not str(value).strip():
                stored.pop(key, None)
                continue
            stored[key] = value

        self._store.set(PREFERENCES_KEY, stored)
        logger.info(f"Updated preferences: {', '.join(sorted(k for k, v in updates.items() if v is not None))}")
        return self.get_preferences()
