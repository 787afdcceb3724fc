#!/usr/bin/env python3
"""
Quick Test - Small Scale
========================
Runs the three engines on generated sample data to verify everything works.

Usage:
    python examples/quick_test.py
"""

import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def main():
    print("╔════════════════════════════════════════════════════════════╗")
    print("║               Data Engine - Quick Test                     ║")
    print("╚════════════════════════════════════════════════════════════╝")
    print(f"\nStarted at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    try:
        from examples.generate_sample_data import generate_sample_records, generate_sample_assets
        from core.config import AnonymizationConfig
        from core.keys import StaticSecretProvider
        from core.pipeline import AnonymizationPipeline
        from engine.clustering import ClusteringEngine
        from engine.pricing import PricingEngine, PricingOptions
        from schema.asset import DataAsset

        records = generate_sample_records(num_records=2000, seed=42)
        assets = [DataAsset.from_dict(a) for a in generate_sample_assets(num_assets=20, seed=42)]

        # Step 1: Anonymize
        print("\n" + "=" * 50)
        print("Step 1: Anonymizing 2K bookings (fully_anonymous, k=5)...")
        print("=" * 50)

        pipeline = AnonymizationPipeline(StaticSecretProvider("quick-test-key"), rng=42)
        result = pipeline.run(records, AnonymizationConfig(
            target_level="fully_anonymous",
            quasi_identifiers=["age", "postal_code", "check_in"],
            sensitive_attributes=["amount", "nights"],
            k_value=5,
            epsilon=1.0,
            max_suppression_rate=0.2,
        ))
        print(result.summary())

        # Step 2: Price
        print("\n" + "=" * 50)
        print("Step 2: Pricing assets (exclusive, 50K records)...")
        print("=" * 50)

        options = PricingOptions(exclusivity="exclusive", granularity="record", volume=50_000)
        for quote in PricingEngine().quote_portfolio(assets[:5], options):
            print(f"   {quote.asset_id}: {quote.computed_price_per_1000:>8.2f} / 1000, "
                  f"total {quote.total_cost:>10.2f} (discount {quote.volume_discount:.0%})")

        # Step 3: Cluster
        print("\n" + "=" * 50)
        print("Step 3: Clustering the portfolio (k=4)...")
        print("=" * 50)

        report = ClusteringEngine(rng=7).run(assets, k=4)
        print(report.summary())

        print("\n✅ Quick test passed! The system is working correctly.")
        return 0

    except ImportError as e:
        print(f"\n❌ Import Error: {e}")
        print("   Please install dependencies: pip install -e .")
        return 1
    except Exception as e:
        print(f"\n❌ Error: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
