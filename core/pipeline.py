"""
Anonymization Pipeline Orchestration.

This module coordinates the anonymization workflow for one record batch:
1. Pseudonymize direct identifiers (keyed HMAC)
2. Generalize quasi-identifiers until every group has k records, then suppress
3. Add Laplace noise to sensitive attributes (fully_anonymous)
4. Aggregate groups into count/mean rows (aggregated)
5. Scan the output for residual PII

Configuration errors raise before any record is touched. Everything
after that is reported through ``PipelineResult.warnings``; a valid
configuration always produces a result.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from core.aggregation import aggregate_records
from core.config import AnonymizationConfig, PseudonymizationConfig
from core.generalization import Generalizer
from core.keys import EnvSecretProvider, SecretProvider
from core.primitives import (
    DEFAULT_SENSITIVITY,
    LaplaceMechanism,
    RandomSource,
    expected_absolute_noise,
    get_rng,
    laplace_confidence_halfwidth,
)
from core.pseudonymization import Pseudonymizer
from core.residual_pii import scan_for_residual_pii
from core.suppression import SuppressionManager, SuppressionStats
from schema.asset import AnonymizationLevel


logger = logging.getLogger(__name__)


# Heuristic estimates, not derived from an attack model
REIDENTIFICATION_RISK = {
    AnonymizationLevel.FULLY_ANONYMOUS: 0.01,
    AnonymizationLevel.PSEUDONYMIZED: 0.4,
    AnonymizationLevel.AGGREGATED: 0.4,
}


def reidentification_risk(level: AnonymizationLevel, k_value: int) -> float:
    """Re-identification risk estimate for a transformation level."""
    if level is AnonymizationLevel.K_ANONYMOUS:
        return 1 / k_value
    return REIDENTIFICATION_RISK[level]


@dataclass
class PipelineResult:
    """Result of a pipeline execution."""
    target_level: AnonymizationLevel
    original_records: int
    output_records: int
    suppressed_records: int = 0
    suppression_rate: float = 0.0
    achieved_k: int = 1
    generalization_level: Optional[int] = None
    information_loss: float = 0.0
    reidentification_risk: float = 0.0
    processing_time_ms: float = 0.0
    data: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self, include_data: bool = True) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = {
            "target_level": self.target_level.value,
            "original_records": self.original_records,
            "output_records": self.output_records,
            "suppressed_records": self.suppressed_records,
            "suppression_rate": self.suppression_rate,
            "achieved_k": self.achieved_k,
            "generalization_level": self.generalization_level,
            "information_loss": self.information_loss,
            "reidentification_risk": self.reidentification_risk,
            "processing_time_ms": self.processing_time_ms,
            "warnings": list(self.warnings),
        }
        if include_data:
            result["data"] = self.data
        return result

    def to_dataframe(self):
        """
        Convert the transformed rows to a pandas DataFrame.

        Returns:
            pandas DataFrame, one row per output record
        """
        try:
            import pandas as pd
        except ImportError:
            raise ImportError("pandas required for to_dataframe()")

        return pd.DataFrame.from_records(self.data)

    def summary(self) -> str:
        """Generate a human-readable summary."""
        lines = [
            "=" * 60,
            f"Anonymization Result ({self.target_level.value})",
            "=" * 60,
            f"Records:                {self.original_records:,} -> {self.output_records:,}",
            f"Suppressed:             {self.suppressed_records:,} ({self.suppression_rate:.2%})",
            f"Achieved k:             {self.achieved_k}",
            f"Generalization level:   {self.generalization_level}",
            f"Information loss:       {self.information_loss:.4f}",
            f"Re-identification risk: {self.reidentification_risk:.4f}",
            f"Processing time:        {self.processing_time_ms:.1f} ms",
            f"Warnings:               {len(self.warnings)}",
        ]
        for warning in self.warnings:
            lines.append(f"  - {warning}")
        lines.append("=" * 60)
        return "\n".join(lines)


class AnonymizationPipeline:
    """
    Anonymization pipeline for raw record batches.

    The HMAC key is read from the secret provider once, when the pipeline
    is created; reuse one pipeline per process to keep pseudonyms stable.
    The random generator is used for Laplace noise only.
    """

    def __init__(
        self,
        secret_provider: SecretProvider,
        pseudonymization: Optional[PseudonymizationConfig] = None,
        rng: RandomSource = None
    ):
        """
        Initialize pipeline.

        Args:
            secret_provider: Source of the HMAC key
            pseudonymization: Pseudonymization settings (PII fields, digest length)
            rng: Random generator or seed for noise injection
        """
        self.pseudonymization = pseudonymization or PseudonymizationConfig()
        self.pseudonymization.validate()

        self._pseudonymizer = Pseudonymizer(
            secret_provider,
            pii_fields=self.pseudonymization.pii_fields,
            digest_length=self.pseudonymization.digest_length
        )
        self._rng = get_rng(rng)

    def run(self, records: List[Dict[str, Any]], config: AnonymizationConfig) -> PipelineResult:
        """
        Execute the pipeline on one batch.

        Args:
            records: Raw rows; never modified
            config: Anonymization settings

        Returns:
            PipelineResult with the transformed rows and metrics
        """
        config.validate()

        start = time.perf_counter()
        level = config.target_level
        warnings: List[str] = []
        original_count = len(records)

        logger.info(
            f"Anonymizing {original_count:,} records to '{level.value}' "
            f"(k={config.k_value}, epsilon={config.epsilon})"
        )

        output = [dict(r) for r in records]

        # Stage 1: pseudonymization
        for pii_field in self._pseudonymizer.non_string_fields(output):
            warnings.append(
                f"PII field '{pii_field}' holds non-string values that were not pseudonymized"
            )
        self._pseudonymizer.apply(output)

        if level is AnonymizationLevel.PSEUDONYMIZED:
            return self._build_result(
                config, original_count, output, start, warnings,
                suppressed=0, generalization_level=None
            )

        # Stage 2: generalization and suppression
        output, generalization_level, stats = self._enforce_k_anonymity(output, config)
        suppressed = 0
        if stats is not None:
            suppressed = stats.suppressed_count
            if stats.suppression_rate > config.max_suppression_rate:
                warnings.append(
                    f"High suppression rate: {stats.suppression_rate:.1%} of records suppressed "
                    f"(max {config.max_suppression_rate:.1%})"
                )

        # Stage 3: differential privacy
        if level is AnonymizationLevel.FULLY_ANONYMOUS:
            self._add_noise(output, config)

        # Stage 4: aggregation
        if level is AnonymizationLevel.AGGREGATED:
            output, dropped = aggregate_records(
                output, config.quasi_identifiers, config.sensitive_attributes, config.k_value
            )
            suppressed += dropped
            if dropped:
                warnings.append(f"Aggregation dropped {dropped:,} records in groups smaller than k={config.k_value}")

        if original_count > 0 and not output:
            warnings.append(
                f"All {original_count:,} records were suppressed: k={config.k_value} "
                f"could not be reached on quasi-identifiers {config.quasi_identifiers}"
            )

        return self._build_result(
            config, original_count, output, start, warnings,
            suppressed=suppressed, generalization_level=generalization_level
        )

    def _enforce_k_anonymity(
        self,
        records: List[Dict[str, Any]],
        config: AnonymizationConfig
    ) -> Tuple[List[Dict[str, Any]], int, Optional[SuppressionStats]]:
        """
        Generalize level by level until every group has k records.

        Returns:
            (records, level reached, suppression stats or None if no suppression ran)
        """
        generalizer = Generalizer(config.quasi_identifiers)
        suppression = SuppressionManager(config.k_value, config.quasi_identifiers)

        candidate = records
        for level in range(generalizer.num_levels):
            candidate = generalizer.generalize(records, level)
            undersized = suppression.undersized_groups(candidate)
            if not undersized:
                logger.info(f"k={config.k_value} reached at generalization level {level}")
                return candidate, level, None
            logger.debug(f"Level {level}: {len(undersized)} groups below k={config.k_value}")

        logger.info(f"k={config.k_value} not reached at level {generalizer.max_level}, suppressing")
        kept, stats = suppression.apply(candidate)
        return kept, generalizer.max_level, stats

    def _add_noise(self, records: List[Dict[str, Any]], config: AnonymizationConfig) -> None:
        """Add Laplace noise in place to every numeric sensitive attribute."""
        for attr in config.sensitive_attributes:
            positions = [
                i for i, row in enumerate(records)
                if isinstance(row.get(attr), (int, float)) and not isinstance(row.get(attr), bool)
            ]
            if not positions:
                continue

            mechanism = LaplaceMechanism(
                [records[i][attr] for i in positions],
                epsilon=config.epsilon,
                sensitivity=DEFAULT_SENSITIVITY,
                rng=self._rng
            )
            for i, value in zip(positions, mechanism.protected_answer):
                records[i][attr] = float(value)

            logger.info(
                f"Laplace noise on '{attr}': {len(positions):,} values, b={mechanism.scale:.4f}, "
                f"mean |noise| {expected_absolute_noise(config.epsilon):.4f}, "
                f"95% within +/-{laplace_confidence_halfwidth(config.epsilon):.2f}"
            )

    def _build_result(
        self,
        config: AnonymizationConfig,
        original_count: int,
        output: List[Dict[str, Any]],
        start: float,
        warnings: List[str],
        suppressed: int,
        generalization_level: Optional[int]
    ) -> PipelineResult:
        level = config.target_level

        if level is AnonymizationLevel.PSEUDONYMIZED:
            achieved_k = 1
        elif original_count > 0 and not output:
            achieved_k = 0
        else:
            achieved_k = config.k_value

        if original_count > 0:
            suppression_rate = suppressed / original_count
            information_loss = min(1.0, max(0.0, 1 - len(output) / original_count))
        else:
            suppression_rate = 0.0
            information_loss = 0.0

        # Stage 5: residual PII scan
        warnings.extend(scan_for_residual_pii(output))

        result = PipelineResult(
            target_level=level,
            original_records=original_count,
            output_records=len(output),
            suppressed_records=suppressed,
            suppression_rate=suppression_rate,
            achieved_k=achieved_k,
            generalization_level=generalization_level,
            information_loss=information_loss,
            reidentification_risk=reidentification_risk(level, config.k_value),
            processing_time_ms=(time.perf_counter() - start) * 1000,
            data=output,
            warnings=warnings,
        )

        for warning in warnings:
            logger.warning(warning)
        logger.info(
            f"Anonymization complete: {result.original_records:,} -> {result.output_records:,} records "
            f"in {result.processing_time_ms:.1f} ms"
        )

        return result


def run_anonymization_pipeline(
    records: List[Dict[str, Any]],
    config: AnonymizationConfig,
    secret_provider: Optional[SecretProvider] = None,
    rng: RandomSource = None,
    pseudonymization: Optional[PseudonymizationConfig] = None
) -> PipelineResult:
    """
    Run the anonymization pipeline once.

    Without ``secret_provider`` the key is read from the environment on
    every call, so a key rotated between calls changes the pseudonyms.
    Callers that need pseudonyms to stay joinable across batches should
    hold one ``AnonymizationPipeline``, or pass a provider whose key is
    already loaded.

    Args:
        records: Raw rows (not modified)
        config: Anonymization settings
        secret_provider: HMAC key source; defaults to a fresh provider reading
                         the environment variable named in
                         ``pseudonymization.secret_env``
        rng: Random generator or seed for noise injection
        pseudonymization: Pseudonymization settings

    Returns:
        PipelineResult
    """
    config.validate()
    pseudonymization = pseudonymization or PseudonymizationConfig()
    if secret_provider is None:
        secret_provider = EnvSecretProvider(pseudonymization.secret_env)

    pipeline = AnonymizationPipeline(secret_provider, pseudonymization, rng)
    return pipeline.run(records, config)
