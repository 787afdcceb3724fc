"""
Data Engine Core
================
Anonymization of raw record batches into privacy-bounded datasets.

Supports:
- Deterministic keyed pseudonymization (HMAC-SHA256)
- k-anonymity by quasi-identifier generalization and suppression
- Differential privacy with the Laplace mechanism
- Group aggregation with minimum group size
- Residual PII scanning of the output
"""

__version__ = "3.0.0"
__author__ = "Data Engine Team"

from .config import (
    Config, AnonymizationConfig, PseudonymizationConfig, PricingConfig, ClusteringConfig
)
from .keys import SecretProvider, EnvSecretProvider, StaticSecretProvider
from .pipeline import AnonymizationPipeline, PipelineResult, run_anonymization_pipeline

__all__ = [
    # Config
    "Config", "AnonymizationConfig", "PseudonymizationConfig", "PricingConfig", "ClusteringConfig",
    # Keys
    "SecretProvider", "EnvSecretProvider", "StaticSecretProvider",
    # Pipeline
    "AnonymizationPipeline", "PipelineResult", "run_anonymization_pipeline",
]
