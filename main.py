#!/usr/bin/env python3
"""
Data Engine - Main Entry Point
==============================
Command-line interface for anonymizing record batches, pricing data
assets and clustering asset portfolios.

Usage:
    python main.py anonymize --input data/bookings.csv --level k_anonymous --qi age,postal_code
    python main.py price --assets data/assets.json --exclusivity exclusive --volume 50000
    python main.py cluster --assets data/assets.json --k 4 --seed 7
"""

import argparse
import json
import logging
import logging.handlers
import sys
import os
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from core.config import AnonymizationConfig, Config
from core.generalization import is_postal_field
from core.keys import EnvSecretProvider
from core.pipeline import AnonymizationPipeline
from engine.clustering import ClusteringEngine
from engine.pricing import PricingEngine, PricingOptions
from schema.asset import DataAsset


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: Optional[str] = "logs"
) -> logging.Logger:
    """
    Set up logging with console and optional file output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file name. If None, auto-generated.
        log_dir: Directory for log files (None disables file logging)

    Returns:
        Configured root logger
    """
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, log_level.upper()))

    # Console handler; stdout carries the JSON output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, log_level.upper()))
    console_format = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%H:%M:%S'
    )
    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)

    # File handler (rotating)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        if log_file is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file = f"data_engine_{timestamp}.log"

        log_path = os.path.join(log_dir, log_file)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_format = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s'
        )
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)
        logger.info(f"Logging to file: {log_path}")

    return logger


def _split(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [x.strip() for x in value.split(',') if x.strip()]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Data Engine - anonymize, price and cluster data assets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # k-anonymize bookings on age and postal code
    ANONYMIZATION_HMAC_SECRET=... python main.py anonymize \\
        --input data/bookings.csv --level k_anonymous --qi age,postal_code --k 5

    # Price every asset of a portfolio for an exclusive 50k-record deal
    python main.py price --assets data/assets.json --exclusivity exclusive --volume 50000

    # Cluster a portfolio reproducibly
    python main.py cluster --assets data/assets.json --k 4 --seed 7
        """
    )

    parser.add_argument("--config", "-c", default=None, help="Path to configuration INI file")
    parser.add_argument("--output", "-o", default=None, help="Write JSON output here instead of stdout")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Directory for rotating log files (default: console only)"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    anonymize = sub.add_parser("anonymize", help="Anonymize a record batch (JSON or CSV)")
    anonymize.add_argument("--input", "-i", required=True, help="Records file (.json or .csv)")
    anonymize.add_argument("--level", default=None,
                           choices=["pseudonymized", "k_anonymous", "fully_anonymous", "aggregated"],
                           help="Target anonymization level")
    anonymize.add_argument("--qi", default=None, help="Comma-separated quasi-identifiers")
    anonymize.add_argument("--sensitive", default=None, help="Comma-separated sensitive attributes")
    anonymize.add_argument("--k", type=int, default=None, help="Minimum group size")
    anonymize.add_argument("--epsilon", type=float, default=None, help="Differential privacy budget")
    anonymize.add_argument("--max-suppression", type=float, default=None,
                           help="Suppression rate above which a warning is raised")
    anonymize.add_argument("--seed", type=int, default=None, help="Seed for noise injection")
    anonymize.add_argument("--no-data", action="store_true", help="Only output metrics, not the rows")

    price = sub.add_parser("price", help="Price one or more data assets")
    price.add_argument("--assets", "-a", required=True, help="Asset JSON file (object or list)")
    price.add_argument("--exclusivity", default=None, help="exclusive, limited, shared or open")
    price.add_argument("--granularity", default=None, help="record, segment, aggregate or summary")
    price.add_argument("--volume", type=int, default=None, help="Number of records to purchase")

    cluster = sub.add_parser("cluster", help="Cluster a portfolio of data assets")
    cluster.add_argument("--assets", "-a", required=True, help="Asset JSON file (list)")
    cluster.add_argument("--k", type=int, default=None, help="Number of clusters")
    cluster.add_argument("--seed", type=int, default=None, help="Seed for k-means++ initialization")

    return parser.parse_args(argv)


def load_records(path: str, text_fields: Sequence[str] = ()) -> List[Dict[str, Any]]:
    """
    Load a record batch from JSON (list or {"records": [...]}) or CSV.

    Args:
        path: Input file
        text_fields: CSV columns read as text; postal/zip columns always are,
                     so leading zeros survive

    Returns:
        List of records
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input file not found: {path}")

    if path.lower().endswith(".csv"):
        import pandas as pd
        columns = pd.read_csv(path, nrows=0).columns
        text_columns = {c: str for c in columns if c in set(text_fields) or is_postal_field(c)}
        df = pd.read_csv(path, dtype=text_columns)
        # Round-trip through JSON so NaN becomes None and numpy scalars become Python ones
        return json.loads(df.to_json(orient="records", date_format="iso"))

    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("records", [])
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of records in {path}")
    return data


def load_assets(path: str) -> List[DataAsset]:
    """Load assets from a JSON object or list."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Asset file not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("assets", [data])

    assets = [DataAsset.from_dict(item) for item in data]
    for asset in assets:
        asset.validate()
    return assets


def build_anonymization_config(config: Config, args: argparse.Namespace) -> AnonymizationConfig:
    """Apply command-line overrides to the configured anonymization defaults."""
    overrides = {
        "target_level": args.level,
        "quasi_identifiers": _split(args.qi),
        "sensitive_attributes": _split(args.sensitive),
        "k_value": args.k,
        "epsilon": args.epsilon,
        "max_suppression_rate": args.max_suppression,
    }
    return AnonymizationConfig.from_dict(
        {key: value for key, value in overrides.items() if value is not None},
        defaults=config.anonymization
    )


def run_command(config: Config, args: argparse.Namespace, logger: logging.Logger) -> Any:
    """Dispatch a subcommand and return its JSON-serializable output."""
    if args.command == "anonymize":
        anon_config = build_anonymization_config(config, args)
        anon_config.validate()
        records = load_records(args.input, config.pseudonymization.pii_fields)
        logger.info(f"Loaded {len(records):,} records from {args.input}")

        pipeline = AnonymizationPipeline(
            EnvSecretProvider(config.pseudonymization.secret_env),
            config.pseudonymization,
            rng=args.seed
        )
        result = pipeline.run(records, anon_config)
        logger.info("\n" + result.summary())
        return result.to_dict(include_data=not args.no_data)

    if args.command == "price":
        assets = load_assets(args.assets)
        options = PricingOptions(
            exclusivity=args.exclusivity,
            granularity=args.granularity,
            volume=args.volume
        )
        quotes = PricingEngine(config.pricing).quote_portfolio(assets, options)
        return [q.to_dict() for q in quotes]

    if args.command == "cluster":
        assets = load_assets(args.assets)
        engine = ClusteringEngine(config.clustering, rng=args.seed)
        return engine.run(assets, args.k).to_dict()

    raise ValueError(f"Unknown command: {args.command}")


def write_output(payload: Any, output_path: Optional[str]) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(text + "\n")
    else:
        print(text)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    args = parse_args(argv)

    logger = setup_logging(
        log_level=args.log_level,
        log_dir=args.log_dir
    )

    try:
        if args.config:
            logger.info(f"Loading configuration from: {args.config}")
            config = Config.from_ini(args.config)
        else:
            config = Config()

        config.validate()

        payload = run_command(config, args, logger)
        write_output(payload, args.output)
        if args.output:
            logger.info(f"Output written to {args.output}")

        return 0

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
