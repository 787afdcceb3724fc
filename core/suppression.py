"""
Suppression Manager for k-Anonymity.

Records whose quasi-identifier combination is shared by fewer than k
records are removed once generalization has run out of levels. This is
the last resort after generalization, not a replacement for it.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Set, Tuple

from core.generalization import group_key


logger = logging.getLogger(__name__)


@dataclass
class SuppressionStats:
    """Outcome of one suppression pass."""
    threshold: int
    total_count: int
    suppressed_count: int
    suppressed_groups: int

    @property
    def suppression_rate(self) -> float:
        return self.suppressed_count / self.total_count if self.total_count > 0 else 0.0


class SuppressionManager:
    """
    Counts quasi-identifier groups and suppresses the undersized ones.

    A group is undersized when fewer than ``threshold`` records share its
    key. Suppressed records are dropped from the batch.
    """

    def __init__(self, threshold: int, quasi_identifiers: Sequence[str]):
        """
        Args:
            threshold: Minimum group size (the k of k-anonymity)
            quasi_identifiers: Fields forming the group key, in order
        """
        if threshold < 1:
            raise ValueError("Suppression threshold must be >= 1")

        self.threshold = threshold
        self.quasi_identifiers = list(quasi_identifiers)

    def group_sizes(self, records: List[Dict[str, Any]]) -> Counter:
        """Size of every quasi-identifier group."""
        return Counter(group_key(r, self.quasi_identifiers) for r in records)

    def undersized_groups(self, records: List[Dict[str, Any]]) -> Set[Tuple[str, ...]]:
        """Keys of groups smaller than the threshold."""
        return {key for key, size in self.group_sizes(records).items() if size < self.threshold}

    def apply(self, records: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], SuppressionStats]:
        """
        Drop every record that belongs to an undersized group.

        Returns:
            (kept records, suppression statistics)
        """
        undersized = self.undersized_groups(records)
        kept = [r for r in records if group_key(r, self.quasi_identifiers) not in undersized]

        stats = SuppressionStats(
            threshold=self.threshold,
            total_count=len(records),
            suppressed_count=len(records) - len(kept),
            suppressed_groups=len(undersized),
        )

        logger.info(
            f"Suppression complete: {stats.suppressed_count}/{stats.total_count} records "
            f"in {stats.suppressed_groups} groups suppressed ({stats.suppression_rate:.2%})"
        )

        return kept, stats
