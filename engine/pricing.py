"""
Dynamic Pricing Engine.

Derives a price per 1000 records for a data asset:

    price = base(category) x freshness x exclusivity x granularity
            x quality_adjustment x demand_adjustment

    quality_adjustment = 0.7 + quality_score / 100 * 0.6
    demand_adjustment  = 0.8 + demand_score / 100 * 0.4

and, when a volume is requested, a volume-discounted total cost. The
computation is pure: no I/O and no error path beyond configuration
validation. Unknown categories and option values fall back to defaults.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from core.config import PricingConfig
from schema.asset import DataAsset


logger = logging.getLogger(__name__)


def round_money(value: float) -> float:
    """Round half up to 2 decimals."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _clamp_score(value: Optional[float]) -> float:
    if value is None:
        return 0.0
    return min(100.0, max(0.0, float(value)))


@dataclass
class PricingOptions:
    """Commercial terms requested by the buyer."""
    exclusivity: Optional[str] = None  # exclusive, limited, shared, open
    granularity: Optional[str] = None  # record, segment, aggregate, summary
    volume: Optional[int] = None  # Records to purchase

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricingOptions":
        volume = data.get("volume")
        return cls(
            exclusivity=data.get("exclusivity"),
            granularity=data.get("granularity"),
            volume=int(volume) if volume is not None else None,
        )


@dataclass
class PriceQuote:
    """Price of one asset under given commercial terms."""
    asset_id: str
    base_price: float
    freshness_tier: str
    freshness_multiplier: float
    exclusivity_multiplier: float
    granularity_multiplier: float
    quality_adjustment: float
    demand_adjustment: float
    computed_price_per_1000: float
    volume: Optional[int] = None
    volume_discount: Optional[float] = None
    total_cost: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary; volume fields only when a volume was priced."""
        result = {
            "asset_id": self.asset_id,
            "base_price": self.base_price,
            "freshness_tier": self.freshness_tier,
            "freshness_multiplier": self.freshness_multiplier,
            "exclusivity_multiplier": self.exclusivity_multiplier,
            "granularity_multiplier": self.granularity_multiplier,
            "quality_adjustment": self.quality_adjustment,
            "demand_adjustment": self.demand_adjustment,
            "computed_price_per_1000": self.computed_price_per_1000,
        }
        if self.volume is not None:
            result["volume"] = self.volume
            result["volume_discount"] = self.volume_discount
            result["total_cost"] = self.total_cost
        return result


class PricingEngine:
    """Computes price quotes from a pricing table."""

    def __init__(self, config: Optional[PricingConfig] = None):
        """
        Args:
            config: Price tables (defaults to the standard tables)
        """
        self.config = config or PricingConfig()
        self.config.validate()

    def base_price(self, category: Optional[str]) -> float:
        """Base price per 1000 records for a category."""
        if category in self.config.base_per_1000:
            return self.config.base_per_1000[category]
        logger.warning(
            f"No base price for category '{category}', using default {self.config.default_base_price:.2f}"
        )
        return self.config.default_base_price

    def freshness_tier(self, freshness_hours: Optional[float]) -> str:
        """Freshness tier for the age of an asset, in hours."""
        if freshness_hours is None:
            return self.config.fallback_freshness_tier
        for tier, max_hours in self.config.freshness_thresholds:
            if freshness_hours <= max_hours:
                return tier
        return self.config.fallback_freshness_tier

    def _option_multiplier(self, table: Dict[str, float], value: Optional[str], default: str, name: str) -> float:
        if value is None:
            return table[default]
        if value not in table:
            logger.warning(f"Unknown {name} '{value}', using default '{default}'")
            return table[default]
        return table[value]

    def volume_discount(self, volume: int) -> float:
        """Discount fraction for a purchase volume."""
        for threshold, discount in self.config.volume_discounts:
            if volume >= threshold:
                return discount
        return 0.0

    def quote(self, asset: DataAsset, options: Optional[PricingOptions] = None) -> PriceQuote:
        """
        Price one asset.

        Args:
            asset: Data asset to price (not modified)
            options: Commercial terms; defaults to shared exclusivity and aggregate granularity

        Returns:
            PriceQuote
        """
        options = options or PricingOptions()

        base = self.base_price(asset.category_key)
        tier = self.freshness_tier(asset.freshness_hours)
        freshness = self.config.freshness_multiplier[tier]
        exclusivity = self._option_multiplier(
            self.config.exclusivity_multiplier, options.exclusivity,
            self.config.default_exclusivity, "exclusivity"
        )
        granularity = self._option_multiplier(
            self.config.granularity_multiplier, options.granularity,
            self.config.default_granularity, "granularity"
        )

        quality_adjustment = 0.7 + (_clamp_score(asset.quality_score) / 100) * 0.6
        demand_adjustment = 0.8 + (_clamp_score(asset.demand_score) / 100) * 0.4

        price_per_1000 = round_money(
            base * freshness * exclusivity * granularity * quality_adjustment * demand_adjustment
        )

        quote = PriceQuote(
            asset_id=asset.id,
            base_price=base,
            freshness_tier=tier,
            freshness_multiplier=freshness,
            exclusivity_multiplier=exclusivity,
            granularity_multiplier=granularity,
            quality_adjustment=round_money(quality_adjustment),
            demand_adjustment=round_money(demand_adjustment),
            computed_price_per_1000=price_per_1000,
        )

        if options.volume is not None:
            if options.volume > 0:
                discount = self.volume_discount(options.volume)
                quote.volume = options.volume
                quote.volume_discount = discount
                quote.total_cost = round_money((options.volume / 1000) * price_per_1000 * (1 - discount))
            else:
                logger.warning(f"Ignoring non-positive volume {options.volume} for asset {asset.id}")

        logger.debug(
            f"Priced asset {asset.id}: {price_per_1000:.2f}/1000 "
            f"(base={base:.2f}, tier={tier}, excl={exclusivity}, gran={granularity})"
        )
        return quote

    def quote_portfolio(self, assets: List[DataAsset], options: Optional[PricingOptions] = None) -> List[PriceQuote]:
        """Price several assets under the same terms, in input order."""
        quotes = [self.quote(asset, options) for asset in assets]
        logger.info(f"Priced {len(quotes)} assets")
        return quotes


def calculate_dynamic_price(
    asset: DataAsset,
    options: Optional[PricingOptions] = None,
    config: Optional[PricingConfig] = None
) -> PriceQuote:
    """Price one asset with the given (or default) pricing tables."""
    return PricingEngine(config).quote(asset, options)


def price_portfolio(
    assets: List[DataAsset],
    options: Optional[PricingOptions] = None,
    config: Optional[PricingConfig] = None
) -> List[PriceQuote]:
    """Price several assets with the given (or default) pricing tables."""
    return PricingEngine(config).quote_portfolio(assets, options)
