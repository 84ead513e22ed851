# backend/networth/schemas/preferences.py
"""Pydantic schemas for user preferences."""

from pydantic import BaseModel, ConfigDict, Field

from networth.services.preferences_service import Preferences


class PreferencesResponse(BaseModel):
    """
    Current preferences.

    API keys are never echoed back; only whether one is configured.
    """

    display_currency: str
    finnhub_configured: bool
    alpha_vantage_configured: bool

    @classmethod
    def from_preferences(cls, preferences: Preferences) -> "PreferencesResponse":
        return cls(
            display_currency=preferences.display_currency,
            finnhub_configured=bool(preferences.finnhub_api_key),
            alpha_vantage_configured=bool(preferences.alpha_vantage_api_key),
        )


class PreferencesUpdate(BaseModel):
    """Partial update. Omitted fields are unchanged; an empty key clears it."""

    model_config = ConfigDict(extra="forbid")

    display_currency: str | None = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="ISO 4217 code, e.g. USD, CAD, EUR"
    )
    finnhub_api_key: str | None = None
    alpha_vantage_api_key: str | None = None
