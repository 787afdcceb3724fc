"""
HMAC key providers for pseudonymization.

The key is loaded once and then treated as immutable: pseudonyms are only
joinable across calls while the key stays the same.
"""

import os
import logging
from typing import Optional, Union


logger = logging.getLogger(__name__)


class SecretProvider:
    """Supplies the HMAC key used for pseudonymization."""

    def get_secret(self) -> bytes:
        raise NotImplementedError


class StaticSecretProvider(SecretProvider):
    """Wraps a key handed over by the caller (tests, injected vault lookups)."""

    def __init__(self, secret: Union[str, bytes]):
        if not secret:
            raise ValueError("HMAC secret must not be empty")
        self._secret = secret.encode('utf-8') if isinstance(secret, str) else bytes(secret)

    def get_secret(self) -> bytes:
        return self._secret


class EnvSecretProvider(SecretProvider):
    """
    Reads the key from an environment variable on first use and caches it.

    There is no fallback key. A missing variable is a configuration error.
    """

    def __init__(self, env_var: str = "ANONYMIZATION_HMAC_SECRET"):
        self.env_var = env_var
        self._secret: Optional[bytes] = None

    def get_secret(self) -> bytes:
        if self._secret is None:
            value = os.environ.get(self.env_var)
            if not value:
                raise ValueError(
                    f"HMAC secret not configured: environment variable {self.env_var} is unset or empty"
                )
            self._secret = value.encode('utf-8')
            logger.info(f"Loaded pseudonymization key from ${self.env_var}")
        return self._secret
