#!/usr/bin/env python3
"""
Laplace Mechanism Tests
=======================
Statistical checks of the noise used by the fully_anonymous level:

1. Noise follows Laplace(0, b) with b = sensitivity / epsilon (KS test)
2. Mean absolute noise matches b
3. Rounding and variance bookkeeping of LaplaceMechanism

Run with:
    pytest tests/test_primitives.py
"""

import math

import numpy as np
import pytest
from scipy import stats as scipy_stats

from core.primitives import (
    LaplaceMechanism,
    add_laplace_noise,
    expected_absolute_noise,
    get_rng,
    laplace_confidence_halfwidth,
    laplace_scale,
    round_half_up,
    sample_laplace,
)


def test_laplace_scale():
    assert laplace_scale(1.0, 0.5) == 2.0
    assert laplace_scale(2.0, 4.0) == 0.5

    with pytest.raises(ValueError):
        laplace_scale(1.0, 0.0)
    with pytest.raises(ValueError):
        laplace_scale(1.0, -1.0)
    with pytest.raises(ValueError):
        laplace_scale(-1.0, 1.0)


@pytest.mark.parametrize("scale", [0.1, 1.0, 10.0])
def test_noise_follows_laplace_distribution(scale):
    """KS test against scipy's Laplace with the same scale."""
    samples = sample_laplace(scale, 20_000, get_rng(2024))

    statistic, p_value = scipy_stats.kstest(samples, scipy_stats.laplace(loc=0, scale=scale).cdf)

    assert p_value > 0.001, f"KS test rejected Laplace(0, {scale}): D={statistic:.4f}, p={p_value:.5f}"


def test_mean_absolute_noise_matches_scale():
    rng = get_rng(7)
    for epsilon in [0.1, 0.5, 1.0, 2.0]:
        samples = sample_laplace(laplace_scale(1.0, epsilon), 50_000, rng)
        expected = expected_absolute_noise(epsilon)

        assert abs(np.mean(np.abs(samples)) - expected) / expected < 0.05
        assert abs(np.mean(samples)) < 0.05 * expected * 3


def test_noise_is_symmetric():
    samples = sample_laplace(1.0, 40_000, get_rng(11))
    positive_share = np.mean(samples > 0)
    assert 0.48 < positive_share < 0.52


def test_mechanism_rounds_and_reports_variance():
    mechanism = LaplaceMechanism(np.array([10.0, 20.0, 30.0]), epsilon=0.5, rng=get_rng(3))

    assert mechanism.scale == 2.0
    assert mechanism.variance == 8.0
    assert mechanism.protected_answer.shape == (3,)
    for value in mechanism.protected_answer:
        assert abs(value * 100 - round(value * 100)) < 1e-6


def test_mechanism_without_rounding_keeps_full_precision():
    mechanism = LaplaceMechanism(np.zeros(100), epsilon=1.0, rng=get_rng(5), decimals=None)
    assert any(abs(v * 100 - round(v * 100)) > 1e-6 for v in mechanism.protected_answer)


def test_add_laplace_noise_is_reproducible_with_seed():
    a = add_laplace_noise(100.0, epsilon=1.0, rng=get_rng(99))
    b = add_laplace_noise(100.0, epsilon=1.0, rng=get_rng(99))

    assert isinstance(a, float)
    assert a == b


def test_round_half_up():
    result = round_half_up(np.array([0.125, 0.135, -0.125, 2.5]), decimals=2)
    assert result[0] == pytest.approx(0.13)
    assert result[1] == pytest.approx(0.14)
    assert result[2] == pytest.approx(-0.12)
    assert round_half_up(np.array([2.5]), decimals=0)[0] == 3.0


def test_confidence_halfwidth():
    # P(|X| <= t) = 1 - exp(-t / b)
    assert laplace_confidence_halfwidth(1.0, 0.95) == pytest.approx(-math.log(0.05))
    assert laplace_confidence_halfwidth(0.5, 0.95) == pytest.approx(-2 * math.log(0.05))

    samples = sample_laplace(1.0, 50_000, get_rng(17))
    coverage = np.mean(np.abs(samples) <= laplace_confidence_halfwidth(1.0, 0.9))
    assert abs(coverage - 0.9) < 0.01

    with pytest.raises(ValueError):
        laplace_confidence_halfwidth(1.0, 1.0)


def test_get_rng_accepts_generator_or_seed():
    rng = np.random.default_rng(1)
    assert get_rng(rng) is rng
    assert get_rng(42).uniform() == get_rng(42).uniform()
