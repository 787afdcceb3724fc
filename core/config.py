"""
Configuration management for the Data Engine.
Handles loading, validation, and access to configuration parameters.
"""

import configparser
import os
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from schema.asset import AnonymizationLevel


logger = logging.getLogger(__name__)


DEFAULT_PII_FIELDS = [
    "email", "phone", "name", "first_name", "last_name",
    "address", "ip", "device_id", "national_id",
]


@dataclass
class AnonymizationConfig:
    """Input contract of the anonymization pipeline."""

    target_level: AnonymizationLevel = AnonymizationLevel.K_ANONYMOUS
    quasi_identifiers: List[str] = field(default_factory=list)  # Order matters for grouping keys
    sensitive_attributes: List[str] = field(default_factory=list)
    k_value: int = 5  # Minimum group size
    epsilon: float = 1.0  # DP budget, smaller = more noise
    max_suppression_rate: float = 0.1  # Above this a warning is raised

    def __post_init__(self):
        if isinstance(self.target_level, str):
            try:
                self.target_level = AnonymizationLevel(self.target_level)
            except ValueError:
                raise ValueError(
                    f"target_level must be one of "
                    f"{[level.value for level in AnonymizationLevel]}, got {self.target_level!r}"
                ) from None

    def validate(self) -> None:
        """Validate anonymization configuration."""
        if not isinstance(self.target_level, AnonymizationLevel):
            raise ValueError(f"target_level must be an AnonymizationLevel, got {self.target_level!r}")

        if isinstance(self.k_value, bool) or not isinstance(self.k_value, int):
            raise ValueError(f"k_value must be an integer, got {self.k_value!r}")

        if self.k_value < 1:
            raise ValueError(f"k_value must be >= 1, got {self.k_value}")

        if not self.epsilon > 0:
            raise ValueError(f"epsilon must be > 0, got {self.epsilon}")

        if not 0 <= self.max_suppression_rate <= 1:
            raise ValueError(f"max_suppression_rate must be in [0, 1], got {self.max_suppression_rate}")

        if self.target_level.requires_quasi_identifiers:
            if not self.quasi_identifiers:
                raise ValueError(
                    f"quasi_identifiers are required for target_level '{self.target_level.value}'"
                )

            # Noise or averaging on a grouping column would break the group sizes
            overlap = set(self.quasi_identifiers) & set(self.sensitive_attributes)
            if overlap:
                raise ValueError(
                    f"fields cannot be both quasi-identifier and sensitive attribute: {sorted(overlap)}"
                )

    @classmethod
    def from_dict(cls, data: Dict[str, Any], defaults: Optional["AnonymizationConfig"] = None) -> "AnonymizationConfig":
        """Build a config from a JSON-shaped object, falling back to ``defaults``."""
        base = defaults or cls()
        return cls(
            target_level=data.get("target_level", base.target_level),
            quasi_identifiers=list(data.get("quasi_identifiers", base.quasi_identifiers)),
            sensitive_attributes=list(data.get("sensitive_attributes", base.sensitive_attributes)),
            k_value=data.get("k_value", base.k_value),
            epsilon=data.get("epsilon", base.epsilon),
            max_suppression_rate=data.get("max_suppression_rate", base.max_suppression_rate),
        )


@dataclass
class PseudonymizationConfig:
    """Keyed pseudonymization settings."""
    secret_env: str = "ANONYMIZATION_HMAC_SECRET"  # Environment variable holding the HMAC key
    digest_length: int = 16  # Hex characters kept from the digest
    pii_fields: List[str] = field(default_factory=lambda: list(DEFAULT_PII_FIELDS))

    def validate(self) -> None:
        """Validate pseudonymization configuration."""
        if not self.secret_env:
            raise ValueError("secret_env must be specified")
        if not 8 <= self.digest_length <= 64:
            raise ValueError(f"digest_length must be in [8, 64], got {self.digest_length}")
        if not self.pii_fields:
            raise ValueError("pii_fields must not be empty")


@dataclass
class PricingConfig:
    """Price tables for the dynamic pricing engine (monetary units per 1000 records)."""

    base_per_1000: Dict[str, float] = field(default_factory=lambda: {
        "operational": 2.50,
        "behavioral": 8.00,
        "market": 12.00,
        "predictive": 20.00,
        "financial": 15.00,
        "geographic": 5.00,
    })
    default_base_price: float = 5.00  # Used for unknown categories

    # (tier, max freshness_hours); assets older than the last threshold are monthly
    freshness_thresholds: List[Tuple[str, float]] = field(default_factory=lambda: [
        ("realtime", 1),
        ("hourly", 6),
        ("daily", 24),
        ("weekly", 168),
    ])
    fallback_freshness_tier: str = "monthly"
    freshness_multiplier: Dict[str, float] = field(default_factory=lambda: {
        "realtime": 3.0,
        "hourly": 2.5,
        "daily": 2.0,
        "weekly": 1.5,
        "monthly": 1.0,
    })

    exclusivity_multiplier: Dict[str, float] = field(default_factory=lambda: {
        "exclusive": 5.0,
        "limited": 3.0,
        "shared": 1.5,
        "open": 1.0,
    })
    default_exclusivity: str = "shared"

    granularity_multiplier: Dict[str, float] = field(default_factory=lambda: {
        "record": 2.0,
        "segment": 1.5,
        "aggregate": 1.0,
        "summary": 0.5,
    })
    default_granularity: str = "aggregate"

    # (minimum volume, discount), checked from the largest threshold down
    volume_discounts: List[Tuple[int, float]] = field(default_factory=lambda: [
        (1_000_000, 0.35),
        (100_000, 0.20),
        (10_000, 0.10),
    ])

    def validate(self) -> None:
        """Validate pricing configuration."""
        if self.default_base_price < 0:
            raise ValueError(f"default_base_price must be >= 0, got {self.default_base_price}")

        for table_name in ("base_per_1000", "freshness_multiplier",
                           "exclusivity_multiplier", "granularity_multiplier"):
            for key, value in getattr(self, table_name).items():
                if value < 0:
                    raise ValueError(f"{table_name}[{key}] must be >= 0, got {value}")

        tiers = [tier for tier, _ in self.freshness_thresholds] + [self.fallback_freshness_tier]
        missing = [tier for tier in tiers if tier not in self.freshness_multiplier]
        if missing:
            raise ValueError(f"freshness_multiplier is missing tiers: {missing}")

        hours = [h for _, h in self.freshness_thresholds]
        if hours != sorted(hours):
            raise ValueError(f"freshness_thresholds must be increasing, got {hours}")

        if self.default_exclusivity not in self.exclusivity_multiplier:
            raise ValueError(f"default_exclusivity '{self.default_exclusivity}' not in exclusivity_multiplier")
        if self.default_granularity not in self.granularity_multiplier:
            raise ValueError(f"default_granularity '{self.default_granularity}' not in granularity_multiplier")

        for threshold, discount in self.volume_discounts:
            if threshold < 0:
                raise ValueError(f"volume discount threshold must be >= 0, got {threshold}")
            if not 0 <= discount < 1:
                raise ValueError(f"volume discount must be in [0, 1), got {discount}")


@dataclass
class ClusteringConfig:
    """K-means settings for portfolio clustering."""
    default_k: int = 4
    max_iterations: int = 100
    seed: Optional[int] = None  # Set for reproducible seeding

    def validate(self) -> None:
        """Validate clustering configuration."""
        if self.default_k < 1:
            raise ValueError(f"default_k must be >= 1, got {self.default_k}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")


def _parse_mapping(text: str) -> Dict[str, float]:
    """Parse ``"key1:value1,key2:value2"`` into a dict of floats."""
    result = {}
    for item in text.strip().split(','):
        if not item.strip():
            continue
        key, value = item.split(':')
        result[key.strip()] = float(value.strip())
    return result


def _format_mapping(mapping: Dict[Any, Any]) -> str:
    return ','.join(f'{k}:{v}' for k, v in mapping.items())


@dataclass
class Config:
    """Main configuration container."""
    anonymization: AnonymizationConfig = field(default_factory=AnonymizationConfig)
    pseudonymization: PseudonymizationConfig = field(default_factory=PseudonymizationConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)

    def validate(self) -> None:
        """Validate entire configuration.

        Anonymization defaults are only checked for their numeric ranges here;
        quasi-identifiers are supplied per request.
        """
        anon = self.anonymization
        if anon.k_value < 1:
            raise ValueError(f"k_value must be >= 1, got {anon.k_value}")
        if not anon.epsilon > 0:
            raise ValueError(f"epsilon must be > 0, got {anon.epsilon}")
        if not 0 <= anon.max_suppression_rate <= 1:
            raise ValueError(f"max_suppression_rate must be in [0, 1], got {anon.max_suppression_rate}")

        self.pseudonymization.validate()
        self.pricing.validate()
        self.clustering.validate()
        logger.info("Configuration validated successfully")

    @classmethod
    def from_ini(cls, config_path: str) -> "Config":
        """Load configuration from INI file."""
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Config file not found: {config_path}")

        parser = configparser.ConfigParser()
        parser.read(config_path, encoding='utf-8')

        config = cls()

        if 'anonymization' in parser:
            sec = parser['anonymization']
            if 'target_level' in sec:
                config.anonymization.target_level = AnonymizationLevel(sec['target_level'].strip())
            if 'quasi_identifiers' in sec:
                config.anonymization.quasi_identifiers = [
                    x.strip() for x in sec['quasi_identifiers'].split(',') if x.strip()
                ]
            if 'sensitive_attributes' in sec:
                config.anonymization.sensitive_attributes = [
                    x.strip() for x in sec['sensitive_attributes'].split(',') if x.strip()
                ]
            if 'k_value' in sec:
                config.anonymization.k_value = int(sec['k_value'])
            if 'epsilon' in sec:
                config.anonymization.epsilon = float(sec['epsilon'])
            if 'max_suppression_rate' in sec:
                config.anonymization.max_suppression_rate = float(sec['max_suppression_rate'])

        if 'pseudonymization' in parser:
            sec = parser['pseudonymization']
            config.pseudonymization.secret_env = sec.get('secret_env', config.pseudonymization.secret_env)
            if 'digest_length' in sec:
                config.pseudonymization.digest_length = int(sec['digest_length'])
            if 'pii_fields' in sec:
                config.pseudonymization.pii_fields = [
                    x.strip() for x in sec['pii_fields'].split(',') if x.strip()
                ]

        if 'pricing' in parser:
            sec = parser['pricing']
            if 'base_per_1000' in sec:
                config.pricing.base_per_1000 = _parse_mapping(sec['base_per_1000'])
            if 'default_base_price' in sec:
                config.pricing.default_base_price = float(sec['default_base_price'])
            if 'freshness_thresholds' in sec:
                thresholds = _parse_mapping(sec['freshness_thresholds'])
                config.pricing.freshness_thresholds = sorted(thresholds.items(), key=lambda t: t[1])
            if 'freshness_multiplier' in sec:
                config.pricing.freshness_multiplier = _parse_mapping(sec['freshness_multiplier'])
            if 'fallback_freshness_tier' in sec:
                config.pricing.fallback_freshness_tier = sec['fallback_freshness_tier'].strip()
            if 'exclusivity_multiplier' in sec:
                config.pricing.exclusivity_multiplier = _parse_mapping(sec['exclusivity_multiplier'])
            if 'default_exclusivity' in sec:
                config.pricing.default_exclusivity = sec['default_exclusivity'].strip()
            if 'granularity_multiplier' in sec:
                config.pricing.granularity_multiplier = _parse_mapping(sec['granularity_multiplier'])
            if 'default_granularity' in sec:
                config.pricing.default_granularity = sec['default_granularity'].strip()
            if 'volume_discounts' in sec:
                discounts = _parse_mapping(sec['volume_discounts'])
                config.pricing.volume_discounts = sorted(
                    ((int(float(k)), v) for k, v in discounts.items()),
                    reverse=True
                )

        if 'clustering' in parser:
            sec = parser['clustering']
            if 'default_k' in sec:
                config.clustering.default_k = int(sec['default_k'])
            if 'max_iterations' in sec:
                config.clustering.max_iterations = int(sec['max_iterations'])
            seed = sec.get('seed', '').strip()
            if seed:
                config.clustering.seed = int(seed)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    def to_ini(self, config_path: str) -> None:
        """Save configuration to INI file."""
        parser = configparser.ConfigParser()

        parser['anonymization'] = {
            'target_level': self.anonymization.target_level.value,
            'quasi_identifiers': ','.join(self.anonymization.quasi_identifiers),
            'sensitive_attributes': ','.join(self.anonymization.sensitive_attributes),
            'k_value': str(self.anonymization.k_value),
            'epsilon': str(self.anonymization.epsilon),
            'max_suppression_rate': str(self.anonymization.max_suppression_rate),
        }

        parser['pseudonymization'] = {
            'secret_env': self.pseudonymization.secret_env,
            'digest_length': str(self.pseudonymization.digest_length),
            'pii_fields': ','.join(self.pseudonymization.pii_fields),
        }

        parser['pricing'] = {
            'base_per_1000': _format_mapping(self.pricing.base_per_1000),
            'default_base_price': str(self.pricing.default_base_price),
            'freshness_thresholds': _format_mapping(dict(self.pricing.freshness_thresholds)),
            'freshness_multiplier': _format_mapping(self.pricing.freshness_multiplier),
            'fallback_freshness_tier': self.pricing.fallback_freshness_tier,
            'exclusivity_multiplier': _format_mapping(self.pricing.exclusivity_multiplier),
            'default_exclusivity': self.pricing.default_exclusivity,
            'granularity_multiplier': _format_mapping(self.pricing.granularity_multiplier),
            'default_granularity': self.pricing.default_granularity,
            'volume_discounts': _format_mapping(dict(self.pricing.volume_discounts)),
        }

        parser['clustering'] = {
            'default_k': str(self.clustering.default_k),
            'max_iterations': str(self.clustering.max_iterations),
            'seed': '' if self.clustering.seed is None else str(self.clustering.seed),
        }

        with open(config_path, 'w', encoding='utf-8') as f:
            parser.write(f)

        logger.info(f"Configuration saved to {config_path}")
