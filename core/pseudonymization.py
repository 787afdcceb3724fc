"""
Deterministic keyed pseudonymization.

Identifying values are replaced by a truncated HMAC-SHA256 digest of
``"{field}:{value}"``. The same (key, field, value) always maps to the
same token, so datasets stay joinable without exposing the raw value.
Prefixing the field name keeps an email and a phone number with the same
text from colliding.
"""

import hmac
import hashlib
import logging
from typing import Any, Dict, List, Optional, Sequence

from core.config import DEFAULT_PII_FIELDS
from core.keys import SecretProvider


logger = logging.getLogger(__name__)


class Pseudonymizer:
    """Replaces PII fields of records with HMAC tokens."""

    def __init__(
        self,
        secret_provider: SecretProvider,
        pii_fields: Optional[Sequence[str]] = None,
        digest_length: int = 16
    ):
        """
        Args:
            secret_provider: Source of the HMAC key (read once, here)
            pii_fields: Field names to pseudonymize
            digest_length: Number of hex characters kept from the digest
        """
        self._key = secret_provider.get_secret()
        self.pii_fields = list(pii_fields) if pii_fields is not None else list(DEFAULT_PII_FIELDS)
        self.digest_length = digest_length

    def pseudonymize(self, value: str, field: str) -> str:
        """Token for one (field, value) pair."""
        message = f"{field}:{value}".encode('utf-8')
        digest = hmac.new(self._key, message, hashlib.sha256).hexdigest()
        return digest[:self.digest_length]

    def non_string_fields(self, records: List[Dict[str, Any]]) -> List[str]:
        """PII fields holding values that ``apply`` leaves as-is (numbers, nested data)."""
        found = []
        for field in self.pii_fields:
            if any(row.get(field) is not None and not isinstance(row.get(field), str) for row in records):
                found.append(field)
        return found

    def apply(self, records: List[Dict[str, Any]]) -> int:
        """
        Pseudonymize PII fields in place.

        Only non-empty string values are replaced; numbers, None and
        nested structures are left untouched.

        Args:
            records: Rows owned by the caller of this method (already copied)

        Returns:
            Number of values replaced
        """
        replaced = 0
        for row in records:
            for field in self.pii_fields:
                value = row.get(field)
                if isinstance(value, str) and value:
                    row[field] = self.pseudonymize(value, field)
                    replaced += 1

        logger.info(f"Pseudonymized {replaced:,} values across {len(records):,} records")
        return replaced
