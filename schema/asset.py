"""
Data Asset Model.

Defines the monetizable data product shared by the anonymization,
pricing and clustering engines, plus the enumerations that describe it.

Assets are created and scored by the external classification step.
The engines only read them.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Set, Union


logger = logging.getLogger(__name__)


class AssetCategory(Enum):
    """Commercial category of a data asset."""
    OPERATIONAL = "operational"
    BEHAVIORAL = "behavioral"
    MARKET = "market"
    PREDICTIVE = "predictive"
    FINANCIAL = "financial"
    GEOGRAPHIC = "geographic"


class PiiType(Enum):
    """Kinds of personal data the classifier can detect."""
    EMAIL = "email"
    PHONE = "phone"
    NAME = "name"
    ADDRESS = "address"
    PAYMENT_INFO = "payment_info"
    DEVICE_ID = "device_id"
    NATIONAL_ID = "national_id"
    IP_ADDRESS = "ip_address"
    LOCATION = "location"


class AnonymizationLevel(Enum):
    """Transformation levels, ordered by increasing information loss."""
    PSEUDONYMIZED = "pseudonymized"
    K_ANONYMOUS = "k_anonymous"
    FULLY_ANONYMOUS = "fully_anonymous"
    AGGREGATED = "aggregated"

    @property
    def requires_quasi_identifiers(self) -> bool:
        return self is not AnonymizationLevel.PSEUDONYMIZED


SCORE_FIELDS = (
    "quality_score",
    "uniqueness_score",
    "demand_score",
    "freshness_score",
    "monetization_score",
)


def _parse_category(value: Union[str, AssetCategory, None]) -> Union[AssetCategory, str, None]:
    """Map a raw category to the enum, keeping unknown strings as-is."""
    if value is None or isinstance(value, AssetCategory):
        return value
    try:
        return AssetCategory(str(value).lower())
    except ValueError:
        logger.warning(f"Unknown asset category '{value}', keeping raw value")
        return str(value)


@dataclass
class DataAsset:
    """
    One monetizable data product.

    Scores are on a 0-100 scale. ``freshness_hours`` expresses recency in
    hours and drives the pricing freshness tier; ``freshness_score`` is the
    normalized counterpart used for clustering.

    ``category`` may hold a raw string when the classifier produced a value
    outside the known vocabulary; pricing then falls back to its default
    base price.
    """
    id: str
    category: Union[AssetCategory, str, None] = None
    sensitivity: int = 1
    pii_types: Set[PiiType] = field(default_factory=set)
    quality_score: float = 0.0
    uniqueness_score: float = 0.0
    demand_score: float = 0.0
    freshness_score: float = 0.0
    freshness_hours: Optional[float] = None
    monetization_score: float = 0.0
    volume_records: int = 0
    contains_pii: bool = False
    anonymization_level: Optional[AnonymizationLevel] = None
    name: str = ""
    description: str = ""

    @property
    def category_key(self) -> Optional[str]:
        """Category as a plain string, whatever form it is stored in."""
        if isinstance(self.category, AssetCategory):
            return self.category.value
        return self.category

    def validate(self) -> None:
        """Validate asset fields."""
        if not self.id:
            raise ValueError("asset id must be non-empty")

        if not 1 <= self.sensitivity <= 5:
            raise ValueError(f"sensitivity must be in [1, 5], got {self.sensitivity}")

        for name in SCORE_FIELDS:
            value = getattr(self, name)
            if value is not None and not 0 <= value <= 100:
                raise ValueError(f"{name} must be in [0, 100], got {value}")

        if self.freshness_hours is not None and self.freshness_hours < 0:
            raise ValueError(f"freshness_hours must be >= 0, got {self.freshness_hours}")

        if self.volume_records < 0:
            raise ValueError(f"volume_records must be >= 0, got {self.volume_records}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataAsset":
        """Build an asset from a JSON-shaped object."""
        if "id" not in data:
            raise ValueError("asset is missing required field 'id'")

        pii_types = set()
        for raw in data.get("pii_types") or []:
            try:
                pii_types.add(PiiType(raw))
            except ValueError:
                logger.warning(f"Ignoring unknown PII type '{raw}' on asset {data['id']}")

        level = data.get("anonymization_level")
        freshness_hours = data.get("freshness_hours")

        return cls(
            id=str(data["id"]),
            category=_parse_category(data.get("category")),
            sensitivity=int(data.get("sensitivity", 1)),
            pii_types=pii_types,
            quality_score=float(data.get("quality_score") or 0.0),
            uniqueness_score=float(data.get("uniqueness_score") or 0.0),
            demand_score=float(data.get("demand_score") or 0.0),
            freshness_score=float(data.get("freshness_score") or 0.0),
            freshness_hours=float(freshness_hours) if freshness_hours is not None else None,
            monetization_score=float(data.get("monetization_score") or 0.0),
            volume_records=int(data.get("volume_records") or 0),
            contains_pii=bool(data.get("contains_pii", bool(pii_types))),
            anonymization_level=AnonymizationLevel(level) if level else None,
            name=data.get("name", ""),
            description=data.get("description", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category_key,
            "sensitivity": self.sensitivity,
            "pii_types": sorted(p.value for p in self.pii_types),
            "quality_score": self.quality_score,
            "uniqueness_score": self.uniqueness_score,
            "demand_score": self.demand_score,
            "freshness_score": self.freshness_score,
            "freshness_hours": self.freshness_hours,
            "monetization_score": self.monetization_score,
            "volume_records": self.volume_records,
            "contains_pii": self.contains_pii,
            "anonymization_level": (
                self.anonymization_level.value if self.anonymization_level else None
            ),
        }
