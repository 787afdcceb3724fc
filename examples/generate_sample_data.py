#!/usr/bin/env python3
"""
Generate Sample Booking Data
============================
Creates sample guest/booking records and a sample asset portfolio for
trying the Data Engine end to end.

Usage:
    python examples/generate_sample_data.py

    # Or with custom parameters:
    python examples/generate_sample_data.py --num-records 5000 --output data/bookings.json
"""

import argparse
import json
import random
import os
from datetime import date, timedelta
from typing import Any, Dict, List


CITIES = [
    ('Paris', '75001'), ('Paris', '75011'), ('Paris', '75018'),
    ('Lyon', '69002'), ('Lyon', '69007'),
    ('Nice', '06000'), ('Marseille', '13001'), ('Bordeaux', '33000'),
]

FIRST_NAMES = ['Camille', 'Louis', 'Emma', 'Hugo', 'Chloe', 'Lucas', 'Lea', 'Nathan']
LAST_NAMES = ['Martin', 'Bernard', 'Dubois', 'Thomas', 'Robert', 'Petit', 'Durand']

CATEGORIES = ['operational', 'behavioral', 'market', 'predictive', 'financial', 'geographic']


def generate_sample_records(num_records: int = 1000, seed: int = 42) -> List[Dict[str, Any]]:
    """
    Generate guest booking records.

    Args:
        num_records: Number of bookings
        seed: Random seed

    Returns:
        List of booking records with direct identifiers, quasi-identifiers
        (age, postal_code, check_in) and numeric sensitive attributes
    """
    rnd = random.Random(seed)
    start = date(2024, 1, 1)
    records = []

    for i in range(num_records):
        first = rnd.choice(FIRST_NAMES)
        last = rnd.choice(LAST_NAMES)
        city, postal_code = rnd.choice(CITIES)
        nights = rnd.randint(1, 14)
        records.append({
            'booking_id': f'B{i:06d}',
            'first_name': first,
            'last_name': last,
            'email': f'{first.lower()}.{last.lower()}{i}@example.com',
            'phone': f'06{rnd.randint(10000000, 99999999)}',
            'age': rnd.randint(18, 80),
            'city': city,
            'postal_code': postal_code,
            'check_in': (start + timedelta(days=rnd.randint(0, 364))).isoformat(),
            'nights': nights,
            'amount': round(nights * rnd.uniform(60, 240), 2),
        })

    return records


def generate_sample_assets(num_assets: int = 20, seed: int = 42) -> List[Dict[str, Any]]:
    """Generate a portfolio of scored data assets."""
    rnd = random.Random(seed)
    assets = []

    for i in range(num_assets):
        assets.append({
            'id': f'asset-{i:03d}',
            'name': f'Sample asset {i}',
            'category': rnd.choice(CATEGORIES),
            'sensitivity': rnd.randint(1, 5),
            'pii_types': rnd.sample(['email', 'phone', 'name', 'location'], rnd.randint(0, 2)),
            'quality_score': rnd.randint(30, 100),
            'uniqueness_score': rnd.randint(10, 100),
            'demand_score': rnd.randint(10, 100),
            'freshness_score': rnd.randint(0, 100),
            'freshness_hours': rnd.choice([0.5, 4, 12, 72, 720]),
            'monetization_score': rnd.randint(0, 100),
            'volume_records': rnd.randint(1_000, 2_000_000),
        })

    return assets


def main():
    parser = argparse.ArgumentParser(description="Generate sample Data Engine inputs")
    parser.add_argument('--num-records', type=int, default=1000, help='Number of booking records')
    parser.add_argument('--num-assets', type=int, default=20, help='Number of assets')
    parser.add_argument('--output', type=str, default='data/bookings.json', help='Records output path')
    parser.add_argument('--assets-output', type=str, default='data/assets.json', help='Assets output path')
    parser.add_argument('--seed', type=int, default=42, help='Random seed')
    args = parser.parse_args()

    for path in (args.output, args.assets_output):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    with open(args.output, 'w', encoding='utf-8') as f:
        json.dump(generate_sample_records(args.num_records, args.seed), f, indent=2)
    with open(args.assets_output, 'w', encoding='utf-8') as f:
        json.dump(generate_sample_assets(args.num_assets, args.seed), f, indent=2)

    print(f"Wrote {args.num_records:,} records to {args.output}")
    print(f"Wrote {args.num_assets:,} assets to {args.assets_output}")


if __name__ == '__main__':
    main()
