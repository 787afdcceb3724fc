"""
Group aggregation for the ``aggregated`` anonymization level.

Records are grouped by quasi-identifier tuple and each group of at least
k records becomes one row: the quasi-identifier values, the group size
under ``_count``, and the mean of every numeric sensitive attribute.
Nothing else from the individual rows is released.
"""

import logging
from typing import Any, Dict, List, Sequence, Tuple

from core.generalization import group_key


logger = logging.getLogger(__name__)


COUNT_FIELD = "_count"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def aggregate_records(
    records: List[Dict[str, Any]],
    quasi_identifiers: Sequence[str],
    sensitive_attributes: Sequence[str],
    k: int
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Collapse records into one row per quasi-identifier group.

    Means are taken over the numeric values present in the group; an
    attribute with no numeric value in a group is left out of its row.

    Args:
        records: Input rows (not modified)
        quasi_identifiers: Grouping fields, in order
        sensitive_attributes: Fields to average
        k: Minimum group size; smaller groups are dropped

    Returns:
        (aggregate rows, number of input records dropped with small groups)
    """
    groups: Dict[Tuple[str, ...], List[Dict[str, Any]]] = {}
    for row in records:
        groups.setdefault(group_key(row, quasi_identifiers), []).append(row)

    output = []
    dropped = 0
    for rows in groups.values():
        if len(rows) < k:
            dropped += len(rows)
            continue

        first = rows[0]
        aggregate = {field: first.get(field) for field in quasi_identifiers}
        aggregate[COUNT_FIELD] = len(rows)

        for attr in sensitive_attributes:
            values = [r[attr] for r in rows if _is_number(r.get(attr))]
            if values:
                aggregate[attr] = sum(values) / len(values)

        output.append(aggregate)

    logger.info(
        f"Aggregated {len(records):,} records into {len(output):,} groups "
        f"({dropped:,} records in groups below k={k} dropped)"
    )

    return output, dropped
