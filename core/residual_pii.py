"""
Residual PII scan.

A best-effort linter run on pipeline output: it samples the first rows
and flags string values that still look like personal data. It never
blocks or alters the output.
"""

import re
import logging
from typing import Any, Dict, List, Pattern, Tuple


logger = logging.getLogger(__name__)


SAMPLE_SIZE = 100

PII_PATTERNS: List[Tuple[str, Pattern]] = [
    ("email", re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}')),
    ("phone_fr", re.compile(r'(?:\+33|0)\s*[1-9](?:[\s.-]*\d{2}){4}')),
    ("iban", re.compile(r'[A-Z]{2}\d{2}[A-Z0-9]{4}\d{7}(?:[A-Z0-9]?){0,16}')),
    ("nir", re.compile(r'[12]\s?\d{2}\s?\d{2}\s?\d{2}\s?\d{3}\s?\d{3}\s?\d{2}')),
]


def detect_pii(value: str) -> List[str]:
    """Names of the patterns matching a string."""
    return [name for name, pattern in PII_PATTERNS if pattern.search(value)]


def scan_for_residual_pii(records: List[Dict[str, Any]], sample_size: int = SAMPLE_SIZE) -> List[str]:
    """
    Scan the first ``sample_size`` rows for PII-looking strings.

    Returns:
        One warning per pattern kind found, in pattern order
    """
    found = {}
    for row in records[:sample_size]:
        for field, value in row.items():
            if not isinstance(value, str):
                continue
            for name in detect_pii(value):
                found.setdefault(name, field)

    warnings = []
    for name, _ in PII_PATTERNS:
        if name in found:
            warnings.append(
                f"Residual PII detected ({name}) in anonymized output, e.g. field '{found[name]}'"
            )

    if warnings:
        logger.warning(f"Residual PII scan flagged {len(warnings)} pattern(s): {sorted(found)}")
    return warnings
