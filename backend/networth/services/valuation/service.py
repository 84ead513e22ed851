# backend/networth/services/valuation/service.py
"""
ValuationGenerator - day-by-day chart series from the stored price history.

Series:
- fiat-total: assets, liabilities and net worth per day
- btc-equivalent: net worth divided by the BTC price per day
- btc-holdings: BTC held per day

Every series covers each calendar day of the requested range, inclusive.
Empty holdings produce an empty series. btc-equivalent omits days with no
BTC price rather than imputing one.

Design Principles:
- No network access: exchange rates are resolved by the caller and passed
  in as a {native currency -> rate} map
- No HTTP Knowledge: raises ValidationError, not HTTPException
- Composable: per-day work is delegated to the calculators

Usage:
    generator = ValuationGenerator(history)
    points = generator.series(SeriesKind.FIAT_TOTAL, holdings, start, end, rates={"CAD": Decimal("0.73")})
"""

import logging
from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal

from networth.services.exceptions import ValidationError
from networth.services.history_store import PriceHistoryStore
from networth.services.holdings import Holding
from networth.services.valuation.calculators import (
    AssetValueCalculator,
    BTCHoldingsCalculator,
    BTCPriceLookup,
    LiabilityValueCalculator,
    PriceLookup,
    quantize_btc,
    quantize_money,
)
from networth.services.valuation.types import (
    BTCEquivalentPoint,
    BTCHoldingsPoint,
    FiatValuationPoint,
    SeriesKind,
    ValuationPoint,
)
from networth.utils.date_utils import iter_calendar_days

logger = logging.getLogger(__name__)


def parse_series_kind(kind: SeriesKind | str) -> SeriesKind:
    """
    Raises:
        ValidationError: Unknown series kind
    """
    try:
        return SeriesKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in SeriesKind)
        raise ValidationError(f"Unknown series kind '{kind}'. Expected one of: {valid}", field="kind") from None


class ValuationGenerator:
    """Builds valuation series from holdings and the persisted price history."""

    def __init__(self, history: PriceHistoryStore) -> None:
        self._history = history

    def series(
            self,
            kind: SeriesKind | str,
            holdings: Sequence[Holding],
            start_date: date,
            end_date: date,
            rates: Mapping[str, Decimal] | None = None,
    ) -> list[ValuationPoint]:
        """
        Generate one series.

        Args:
            kind: Series to build
            holdings: Holdings to value
            start_date / end_date: Inclusive day range
            rates: Native currency -> display currency rate. Series in a
                   currency missing from the map are used unconverted

        Raises:
            ValidationError: Unknown kind or start_date after end_date
        """
        kind = parse_series_kind(kind)
        if start_date > end_date:
            raise ValidationError(
                f"start_date {start_date} is after end_date {end_date}",
                field="start_date",
            )
        if not holdings:
            return []

        prices = PriceLookup(self._history, rates)
        if kind is SeriesKind.FIAT_TOTAL:
            points = self._fiat_total(holdings, start_date, end_date, prices)
        elif kind is SeriesKind.BTC_EQUIVALENT:
            points = self._btc_equivalent(holdings, start_date, end_date, prices)
        else:
            points = self._btc_holdings(holdings, start_date, end_date)

        logger.debug(f"Generated {len(points)} {kind.value} points for {start_date}..{end_date}")
        return points

    def fiat_total(self, holdings, start_date, end_date, rates=None) -> list[ValuationPoint]:
        return self.series(SeriesKind.FIAT_TOTAL, holdings, start_date, end_date, rates)

    def btc_equivalent(self, holdings, start_date, end_date, rates=None) -> list[ValuationPoint]:
        return self.series(SeriesKind.BTC_EQUIVALENT, holdings, start_date, end_date, rates)

    def btc_holdings(self, holdings, start_date, end_date) -> list[ValuationPoint]:
        return self.series(SeriesKind.BTC_HOLDINGS, holdings, start_date, end_date)

    # =========================================================================
    # SERIES BUILDERS
    # =========================================================================

    @staticmethod
    def _fiat_total(holdings, start_date, end_date, prices) -> list[ValuationPoint]:
        assets = AssetValueCalculator(prices)
        points: list[ValuationPoint] = []
        for day in iter_calendar_days(start_date, end_date):
            asset_value = assets.value_on(holdings, day)
            liability_value = LiabilityValueCalculator.value_on(holdings, day)
            points.append(FiatValuationPoint(
                date=day,
                asset_value=quantize_money(asset_value),
                liability_value=quantize_money(liability_value),
                net_value=quantize_money(asset_value - liability_value),
            ))
        return points

    @staticmethod
    def _btc_equivalent(holdings, start_date, end_date, prices) -> list[ValuationPoint]:
        assets = AssetValueCalculator(prices)
        btc = BTCPriceLookup(prices)
        points: list[ValuationPoint] = []
        skipped = 0
        for day in iter_calendar_days(start_date, end_date):
            btc_price = btc.price_on(day)
            if btc_price is None:
                skipped += 1
                continue
            net = assets.value_on(holdings, day) - LiabilityValueCalculator.value_on(holdings, day)
            points.append(BTCEquivalentPoint(date=day, btc_equivalent=quantize_btc(net / btc_price)))
        if skipped:
            logger.info(f"Omitted {skipped} days without a BTC price from btc-equivalent series")
        return points

    @staticmethod
    def _btc_holdings(holdings, start_date, end_date) -> list[ValuationPoint]:
        return [
            BTCHoldingsPoint(date=day, btc_amount=BTCHoldingsCalculator.amount_on(holdings, day))
            for day in iter_calendar_days(start_date, end_date)
        ]
