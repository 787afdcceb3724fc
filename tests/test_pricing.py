"""
Dynamic pricing tests.

The engine is a pure function of the asset, the commercial terms and the
price tables, so every expected price here is computed by hand.
"""

import pytest

from core.config import PricingConfig
from engine.pricing import (
    PricingEngine,
    PricingOptions,
    calculate_dynamic_price,
    price_portfolio,
    round_money,
)
from schema.asset import AssetCategory, DataAsset


def make_asset(**overrides) -> DataAsset:
    params = dict(
        id="asset-1",
        category=AssetCategory.BEHAVIORAL,
        quality_score=50,
        demand_score=50,
        freshness_hours=12,
    )
    params.update(overrides)
    return DataAsset(**params)


def test_reference_price():
    asset = make_asset(freshness_hours=1, quality_score=100, demand_score=100)
    options = PricingOptions(exclusivity="exclusive", granularity="record")

    quote = calculate_dynamic_price(asset, options)

    # 8.00 x 3.0 x 5.0 x 2.0 x 1.3 x 1.2
    assert quote.computed_price_per_1000 == 374.40
    assert quote.base_price == 8.00
    assert quote.freshness_tier == "realtime"
    assert quote.freshness_multiplier == 3.0
    assert quote.exclusivity_multiplier == 5.0
    assert quote.granularity_multiplier == 2.0
    assert quote.quality_adjustment == 1.3
    assert quote.demand_adjustment == 1.2


def test_defaults_are_shared_and_aggregate():
    quote = calculate_dynamic_price(make_asset())

    # 8.00 x 2.0 (daily) x 1.5 (shared) x 1.0 (aggregate) x 1.0 x 1.0
    assert quote.exclusivity_multiplier == 1.5
    assert quote.granularity_multiplier == 1.0
    assert quote.computed_price_per_1000 == 24.00


def test_price_never_decreases_with_quality():
    engine = PricingEngine()
    prices = [
        engine.quote(make_asset(quality_score=q)).computed_price_per_1000
        for q in range(0, 101, 5)
    ]
    assert prices == sorted(prices)
    assert prices[0] < prices[-1]


def test_price_never_decreases_with_demand():
    engine = PricingEngine()
    prices = [
        engine.quote(make_asset(demand_score=d)).computed_price_per_1000
        for d in range(0, 101, 10)
    ]
    assert prices == sorted(prices)


def test_scores_are_clamped():
    engine = PricingEngine()
    over = engine.quote(make_asset(quality_score=150, demand_score=-20))
    bounds = engine.quote(make_asset(quality_score=100, demand_score=0))

    assert over.computed_price_per_1000 == bounds.computed_price_per_1000
    assert over.computed_price_per_1000 >= 0


@pytest.mark.parametrize("hours,tier", [
    (0, "realtime"),
    (1, "realtime"),
    (1.5, "hourly"),
    (6, "hourly"),
    (24, "daily"),
    (168, "weekly"),
    (169, "monthly"),
    (None, "monthly"),
])
def test_freshness_tiers(hours, tier):
    assert PricingEngine().freshness_tier(hours) == tier


def test_unknown_category_uses_default_base_price():
    quote = calculate_dynamic_price(make_asset(category="satellite_imagery"))
    assert quote.base_price == 5.00
    assert quote.computed_price_per_1000 == 15.00


def test_unknown_options_fall_back_to_defaults():
    quote = calculate_dynamic_price(
        make_asset(),
        PricingOptions(exclusivity="platinum", granularity="pixel")
    )
    assert quote.exclusivity_multiplier == 1.5
    assert quote.granularity_multiplier == 1.0


@pytest.mark.parametrize("volume,discount,total", [
    (5_000, 0.0, 120.00),
    (9_999, 0.0, 239.98),
    (10_000, 0.10, 216.00),
    (100_000, 0.20, 1920.00),
    (1_000_000, 0.35, 15600.00),
])
def test_volume_discount_tiers(volume, discount, total):
    quote = calculate_dynamic_price(make_asset(), PricingOptions(volume=volume))

    assert quote.volume == volume
    assert quote.volume_discount == discount
    assert quote.total_cost == total


def test_volume_fields_only_when_volume_given():
    without = calculate_dynamic_price(make_asset()).to_dict()
    with_volume = calculate_dynamic_price(make_asset(), PricingOptions(volume=20_000)).to_dict()

    assert "total_cost" not in without
    assert "volume_discount" not in without
    assert with_volume["total_cost"] == 432.00


def test_non_positive_volume_is_ignored():
    quote = calculate_dynamic_price(make_asset(), PricingOptions(volume=0))
    assert quote.total_cost is None
    assert "total_cost" not in quote.to_dict()


def test_price_portfolio_keeps_input_order():
    assets = [
        make_asset(id="a", category=AssetCategory.PREDICTIVE),
        make_asset(id="b", category=AssetCategory.OPERATIONAL),
        make_asset(id="c", category="unknown"),
    ]

    quotes = price_portfolio(assets, PricingOptions(exclusivity="open"))

    assert [q.asset_id for q in quotes] == ["a", "b", "c"]
    assert [q.base_price for q in quotes] == [20.00, 2.50, 5.00]


def test_custom_price_table():
    config = PricingConfig(base_per_1000={"behavioral": 10.0}, default_base_price=1.0)
    quote = calculate_dynamic_price(make_asset(), config=config)
    assert quote.computed_price_per_1000 == 30.00


def test_invalid_price_table_is_rejected():
    with pytest.raises(ValueError):
        PricingEngine(PricingConfig(exclusivity_multiplier={"shared": -1.0}))
    with pytest.raises(ValueError):
        PricingEngine(PricingConfig(default_granularity="pixel"))
    with pytest.raises(ValueError):
        PricingEngine(PricingConfig(volume_discounts=[(10_000, 1.5)]))


def test_round_money_rounds_half_up():
    assert round_money(2.675) == 2.68
    assert round_money(0.125) == 0.13
    assert round_money(10) == 10.0


def test_pricing_options_from_dict():
    options = PricingOptions.from_dict({"exclusivity": "limited", "volume": "25000"})
    assert options.exclusivity == "limited"
    assert options.granularity is None
    assert options.volume == 25_000
