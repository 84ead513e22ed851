# backend/networth/services/valuation/__init__.py
"""
Valuation package.

- ValuationGenerator (service.py): day-by-day chart series
- Calculators (calculators.py): per-day values, current values, summaries
- Types (types.py): series points and summaries

Usage:
    from networth.services.valuation import ValuationGenerator, SeriesKind
"""

from networth.services.valuation.calculators import (
    AssetValueCalculator,
    BTCHoldingsCalculator,
    CategorySummaryCalculator,
    CurrentValueCalculator,
    LiabilityValueCalculator,
    PriceLookup,
)
from networth.services.valuation.service import ValuationGenerator, parse_series_kind
from networth.services.valuation.types import (
    BTCEquivalentPoint,
    BTCHoldingsPoint,
    CategorySummary,
    FiatValuationPoint,
    NetWorthSummary,
    SeriesKind,
    ValuationPoint,
    ValuationSeries,
)

__all__ = [
    # Generator
    "ValuationGenerator",
    "parse_series_kind",
    # Calculators
    "PriceLookup",
    "AssetValueCalculator",
    "LiabilityValueCalculator",
    "BTCHoldingsCalculator",
    "CurrentValueCalculator",
    "CategorySummaryCalculator",
    # Types
    "SeriesKind",
    "FiatValuationPoint",
    "BTCEquivalentPoint",
    "BTCHoldingsPoint",
    "ValuationPoint",
    "ValuationSeries",
    "CategorySummary",
    "NetWorthSummary",
]
