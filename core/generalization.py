"""
Quasi-identifier Generalization for k-Anonymity.

Each quasi-identifier value is coarsened according to its field kind.
The coarsening rules live in a table of ladders: one strategy per
generalization level (0 = finest, 4 = coarsest) for every field kind.
Adding a new kind of quasi-identifier means adding a classifier rule and
a ladder; the k-anonymity loop in the pipeline does not change.

Ladders:

    numeric      bucket width 1 -> 5 -> 10 -> 50 -> 100, rendered "lo-hi"
    date         day -> month -> year -> year -> year
    postal       first 5 -> 4 -> 3 -> 2 -> 2 characters
    categorical  kept -> kept -> "*" -> "*" -> "*"

Every level is computed from the original value, never from the output
of the previous level.
"""

import math
import re
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple


logger = logging.getLogger(__name__)


class FieldKind(Enum):
    """How a quasi-identifier value is generalized."""
    NUMERIC = "numeric"
    DATE = "date"
    POSTAL = "postal"
    CATEGORICAL = "categorical"


Strategy = Callable[[Any], Any]

NUMERIC_BUCKET_WIDTHS = (1, 5, 10, 50, 100)
SUPPRESSED_VALUE = "*"

_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}')
_POSTAL_HINTS = ('postal', 'zip')


def _bucket(width: int) -> Strategy:
    def strategy(value):
        low = math.floor(value / width) * width
        return f"{low}-{low + width - 1}"
    return strategy


def _date_prefix(length: int) -> Strategy:
    # 10 -> YYYY-MM-DD, 7 -> YYYY-MM, 4 -> YYYY
    def strategy(value):
        text = value.isoformat() if isinstance(value, (date, datetime)) else str(value)
        return text[:length]
    return strategy


def _prefix(length: int) -> Strategy:
    def strategy(value):
        return str(value)[:length]
    return strategy


def _keep(value):
    return value


def _mask(value):
    return SUPPRESSED_VALUE


GENERALIZATION_LADDERS: Dict[FieldKind, Tuple[Strategy, ...]] = {
    FieldKind.NUMERIC: tuple(_bucket(width) for width in NUMERIC_BUCKET_WIDTHS),
    FieldKind.DATE: (_date_prefix(10), _date_prefix(7), _date_prefix(4), _date_prefix(4), _date_prefix(4)),
    FieldKind.POSTAL: tuple(_prefix(max(2, 5 - level)) for level in range(5)),
    FieldKind.CATEGORICAL: (_keep, _keep, _mask, _mask, _mask),
}


def is_postal_field(field: str) -> bool:
    """Postal fields are recognized by name."""
    lowered = field.lower()
    return any(hint in lowered for hint in _POSTAL_HINTS)


def classify_value(field: str, value: Any) -> Optional[FieldKind]:
    """
    Decide which ladder applies to a value.

    Postal fields are recognized by name and win over the value type, so a
    postal code stored as an integer is still truncated, not bucketed.

    Returns:
        The field kind, or None for missing values (left as-is)
    """
    if value is None:
        return None

    if is_postal_field(field):
        return FieldKind.POSTAL

    if isinstance(value, bool):
        return FieldKind.CATEGORICAL

    if isinstance(value, (int, float)):
        return FieldKind.NUMERIC if math.isfinite(value) else FieldKind.CATEGORICAL

    if isinstance(value, (date, datetime)):
        return FieldKind.DATE

    if isinstance(value, str) and _DATE_PATTERN.match(value):
        return FieldKind.DATE

    return FieldKind.CATEGORICAL


def group_key(record: Dict[str, Any], quasi_identifiers: Sequence[str]) -> Tuple[str, ...]:
    """Grouping key of a record: its quasi-identifier values as strings."""
    return tuple('' if record.get(f) is None else str(record.get(f)) for f in quasi_identifiers)


class Generalizer:
    """Applies ladder strategies to the quasi-identifiers of records."""

    def __init__(
        self,
        quasi_identifiers: Sequence[str],
        ladders: Optional[Dict[FieldKind, Tuple[Strategy, ...]]] = None
    ):
        self.quasi_identifiers = list(quasi_identifiers)
        self.ladders = ladders if ladders is not None else GENERALIZATION_LADDERS

        lengths = {len(ladder) for ladder in self.ladders.values()}
        if len(lengths) != 1:
            raise ValueError(f"all generalization ladders must have the same length, got {sorted(lengths)}")
        self.num_levels = lengths.pop()

    @property
    def max_level(self) -> int:
        return self.num_levels - 1

    def generalize_value(self, field: str, value: Any, level: int) -> Any:
        """Generalize one value at the given level."""
        if not 0 <= level < self.num_levels:
            raise ValueError(f"level must be in [0, {self.max_level}], got {level}")

        kind = classify_value(field, value)
        if kind is None:
            return None
        return self.ladders[kind][level](value)

    def generalize_record(self, record: Dict[str, Any], level: int) -> Dict[str, Any]:
        """Copy of ``record`` with its quasi-identifiers generalized."""
        result = dict(record)
        for field in self.quasi_identifiers:
            if field in record:
                result[field] = self.generalize_value(field, record[field], level)
        return result

    def generalize(self, records: List[Dict[str, Any]], level: int) -> List[Dict[str, Any]]:
        """Generalize a batch at one level."""
        generalized = [self.generalize_record(r, level) for r in records]
        logger.debug(f"Generalized {len(records):,} records at level {level}")
        return generalized
