"""
Differential Privacy Primitives.

This module implements the Laplace mechanism used by the anonymization
pipeline. Noise is drawn by inverse-CDF sampling:

    u ~ Uniform(-0.5, 0.5)
    noise = -b * sign(u) * ln(1 - 2|u|)

with scale ``b = sensitivity / epsilon``. Each record contributes at most
one value per attribute, so the sensitivity is 1.
"""

import math
import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np


logger = logging.getLogger(__name__)


# Sensitivity of a single per-record numeric value
DEFAULT_SENSITIVITY = 1.0


# ============================================================================
# Random Number Generation
# ============================================================================

RandomSource = Union[np.random.Generator, int, None]


def get_rng(source: RandomSource = None) -> np.random.Generator:
    """
    Get a random generator.

    Args:
        source: An existing Generator (returned as-is), an integer seed,
                or None for OS entropy

    Returns:
        numpy Generator
    """
    if isinstance(source, np.random.Generator):
        return source
    return np.random.default_rng(source)


# ============================================================================
# Laplace Sampling
# ============================================================================

def laplace_scale(sensitivity: float, epsilon: float) -> float:
    """Scale b of the Laplace distribution for a given budget."""
    if epsilon <= 0:
        raise ValueError(f"epsilon must be > 0, got {epsilon}")
    if sensitivity < 0:
        raise ValueError(f"sensitivity must be >= 0, got {sensitivity}")
    return sensitivity / epsilon


def sample_laplace(scale: float, size: int, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Sample Laplace(0, scale) noise by inverse CDF.

    Args:
        scale: Laplace scale b
        size: Number of samples
        rng: Random generator (optional)

    Returns:
        Array of ``size`` noise values
    """
    rng = get_rng(rng)
    u = rng.uniform(-0.5, 0.5, size)

    # |u| = 0.5 gives ln(0); uniform() can return the lower bound
    edge = np.abs(u) >= 0.5
    while np.any(edge):
        u[edge] = rng.uniform(-0.5, 0.5, int(edge.sum()))
        edge = np.abs(u) >= 0.5

    return -scale * np.sign(u) * np.log(1 - 2 * np.abs(u))


def round_half_up(values: np.ndarray, decimals: int = 2) -> np.ndarray:
    """Round half up (np.round rounds half to even)."""
    factor = 10 ** decimals
    return np.floor(np.asarray(values, dtype=float) * factor + 0.5) / factor


# ============================================================================
# DP Mechanism Classes
# ============================================================================

@dataclass
class DPMechanism:
    """Base class for DP mechanisms."""
    protected_answer: np.ndarray
    variance: float
    epsilon: float

    def __repr__(self) -> str:
        return f"DPMechanism(epsilon={self.epsilon}, variance={self.variance:.4f})"


class LaplaceMechanism(DPMechanism):
    """
    Laplace mechanism for pure epsilon-DP.

    For a query with L1-sensitivity Delta and budget epsilon:
        b = Delta / epsilon,  variance = 2 * b^2
    """

    def __init__(
        self,
        true_answer: np.ndarray,
        epsilon: float,
        sensitivity: float = DEFAULT_SENSITIVITY,
        rng: Optional[np.random.Generator] = None,
        decimals: Optional[int] = 2
    ):
        """
        Initialize Laplace mechanism.

        Args:
            true_answer: True values (float array)
            epsilon: Privacy budget
            sensitivity: L1 sensitivity of one value
            rng: Random generator (optional)
            decimals: Round the protected values to this many decimals (None to skip)
        """
        self.scale = laplace_scale(sensitivity, epsilon)
        self.sensitivity = sensitivity

        true_answer = np.asarray(true_answer, dtype=float)
        noise = sample_laplace(self.scale, true_answer.size, rng).reshape(true_answer.shape)
        protected = true_answer + noise
        if decimals is not None:
            protected = round_half_up(protected, decimals)

        logger.debug(f"Laplace noise on {true_answer.size:,} values (b={self.scale:.4f})")

        super().__init__(
            protected_answer=protected,
            variance=2 * self.scale ** 2,
            epsilon=epsilon
        )

    def __repr__(self) -> str:
        return (f"LaplaceMechanism(epsilon={self.epsilon}, "
                f"b={self.scale:.4f}, "
                f"variance={self.variance:.4f})")


# ============================================================================
# Convenience Functions
# ============================================================================

def add_laplace_noise(
    value: float,
    epsilon: float,
    sensitivity: float = DEFAULT_SENSITIVITY,
    rng: Optional[np.random.Generator] = None
) -> float:
    """
    Add Laplace noise to a single value, rounded to 2 decimals.

    Args:
        value: True value
        epsilon: Privacy budget
        sensitivity: L1 sensitivity
        rng: Random generator (optional)

    Returns:
        Noisy value
    """
    mechanism = LaplaceMechanism(np.array([value]), epsilon, sensitivity, rng)
    return float(mechanism.protected_answer[0])


def expected_absolute_noise(epsilon: float, sensitivity: float = DEFAULT_SENSITIVITY) -> float:
    """Mean absolute deviation of Laplace noise, equal to its scale."""
    return laplace_scale(sensitivity, epsilon)


def laplace_confidence_halfwidth(epsilon: float, confidence: float = 0.95,
                                 sensitivity: float = DEFAULT_SENSITIVITY) -> float:
    """
    Half-width of the symmetric interval holding the noise with given probability.

    P(|X| <= t) = 1 - exp(-t / b)  =>  t = -b * ln(1 - confidence)
    """
    if not 0 < confidence < 1:
        raise ValueError(f"confidence must be in (0, 1), got {confidence}")
    return -laplace_scale(sensitivity, epsilon) * math.log(1 - confidence)
