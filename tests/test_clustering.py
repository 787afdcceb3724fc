"""
Portfolio clustering tests.

Seeding is random, so structural properties (every asset in exactly one
cluster, clusters bounded by k) are checked over many seeds, and exact
partitions only where the data leaves k-means no choice.
"""

import random

import numpy as np
import pytest

from core.config import ClusteringConfig
from engine.clustering import (
    DEFAULT_CHARACTERISTIC,
    ClusteringEngine,
    characteristics_for,
    cluster_assets,
    kmeans_plus_plus,
)
from engine.normalizer import FeatureNormalizer
from schema.asset import DataAsset


def make_asset(asset_id: str, score: float, **overrides) -> DataAsset:
    params = dict(
        id=asset_id,
        monetization_score=score,
        quality_score=score,
        uniqueness_score=score,
        demand_score=score,
        freshness_score=score,
    )
    params.update(overrides)
    return DataAsset(**params)


def random_portfolio(n: int, seed: int):
    rnd = random.Random(seed)
    return [
        DataAsset(
            id=f"asset-{i}",
            monetization_score=rnd.uniform(0, 100),
            quality_score=rnd.uniform(0, 100),
            uniqueness_score=rnd.uniform(0, 100),
            demand_score=rnd.uniform(0, 100),
            freshness_score=rnd.uniform(0, 100),
        )
        for i in range(n)
    ]


def separated_portfolio():
    high = [make_asset(f"high-{i}", 95) for i in range(10)]
    low = [make_asset(f"low-{i}", 5) for i in range(10)]
    return high + low


def partition(clusters):
    return {frozenset(c.asset_ids) for c in clusters}


@pytest.mark.parametrize("seed", range(10))
def test_every_asset_in_exactly_one_cluster(seed):
    assets = random_portfolio(30, seed)

    clusters = cluster_assets(assets, k=4, rng=seed)

    ids = [asset_id for c in clusters for asset_id in c.asset_ids]
    assert sorted(ids) == sorted(a.id for a in assets)
    assert len(ids) == len(set(ids))
    assert 1 <= len(clusters) <= 4
    assert all(c.asset_ids for c in clusters)


def test_structure_holds_without_seed():
    assets = random_portfolio(25, 99)
    for _ in range(5):
        clusters = cluster_assets(assets, k=3)
        assert sum(len(c.asset_ids) for c in clusters) == 25


def test_empty_portfolio_returns_no_clusters():
    assert cluster_assets([], k=4) == []


@pytest.mark.parametrize("k", [0, -1])
def test_non_positive_k_is_rejected(k):
    with pytest.raises(ValueError):
        cluster_assets(random_portfolio(5, 0), k=k)


@pytest.mark.parametrize("k", [2.5, float("nan"), "3", True])
def test_non_integral_k_is_rejected(k):
    with pytest.raises(ValueError):
        cluster_assets(random_portfolio(5, 0), k=k)


def test_integral_float_k_is_accepted():
    report = ClusteringEngine(rng=0).run(random_portfolio(10, 0), k=2.0)

    assert report.k_used == 2
    assert sum(len(c.asset_ids) for c in report.clusters) == 10


def test_iterations_are_bounded_by_max_iterations():
    assets = random_portfolio(40, 6)

    report = ClusteringEngine(ClusteringConfig(max_iterations=1), rng=0).run(assets, k=4)

    assert report.iterations == 1
    assert not report.converged
    assert sum(len(c.asset_ids) for c in report.clusters) == 40


def test_k_is_clamped_to_portfolio_size():
    assets = random_portfolio(3, 1)

    report = ClusteringEngine(rng=0).run(assets, k=10)

    assert report.k_requested == 10
    assert report.k_used == 3
    assert len(report.clusters) <= 3
    assert sum(len(c.asset_ids) for c in report.clusters) == 3


def test_identical_assets_collapse_into_one_cluster():
    assets = [make_asset(f"same-{i}", 50) for i in range(5)]

    report = ClusteringEngine(rng=3).run(assets, k=3)

    assert len(report.clusters) == 1
    assert set(report.clusters[0].asset_ids) == {a.id for a in assets}
    assert report.silhouette is None
    # Constant columns normalize to 0
    assert set(report.clusters[0].centroid.values()) == {0}


def test_well_separated_groups_are_recovered():
    assets = separated_portfolio()

    report = ClusteringEngine(rng=5).run(assets, k=2)

    assert partition(report.clusters) == {
        frozenset(f"high-{i}" for i in range(10)),
        frozenset(f"low-{i}" for i in range(10)),
    }
    assert report.converged
    assert report.inertia == pytest.approx(0.0)
    assert report.silhouette == pytest.approx(1.0)

    by_first = {c.asset_ids[0].split('-')[0]: c for c in report.clusters}
    assert by_first["high"].centroid == {
        "monetization_score": 100,
        "quality_score": 100,
        "uniqueness_score": 100,
        "demand_score": 100,
        "freshness_score": 100,
    }
    assert by_first["high"].characteristics == [
        "High monetary value", "Premium quality", "Unique data",
        "Strong market demand", "Very fresh data",
    ]
    assert by_first["low"].characteristics == [DEFAULT_CHARACTERISTIC]


def test_seeded_runs_are_reproducible():
    assets = random_portfolio(40, 2)

    first = cluster_assets(assets, k=4, rng=123)
    second = cluster_assets(assets, k=4, rng=123)

    assert partition(first) == partition(second)
    assert [c.centroid for c in first] == [c.centroid for c in second]


def test_config_seed_is_used_when_no_rng_given():
    assets = random_portfolio(40, 3)
    config = ClusteringConfig(seed=77)

    first = ClusteringEngine(config).cluster(assets, k=4)
    second = ClusteringEngine(config).cluster(assets, k=4)

    assert partition(first) == partition(second)


def test_centroids_and_labels():
    report = ClusteringEngine(rng=8).run(random_portfolio(30, 4), k=4)

    for cluster in report.clusters:
        assert cluster.label == f"Cluster {cluster.cluster_id + 1}"
        assert all(isinstance(v, int) and 0 <= v <= 100 for v in cluster.centroid.values())
        assert cluster.characteristics
    assert 1 <= report.iterations <= ClusteringConfig().max_iterations
    assert "Asset Clustering Summary" in report.summary()
    assert report.to_dict()["k_used"] == 4


def test_characteristic_thresholds_are_strict():
    assert characteristics_for({"monetization_score": 75}) == [DEFAULT_CHARACTERISTIC]
    assert characteristics_for({"monetization_score": 76}) == ["High monetary value"]
    assert characteristics_for({"quality_score": 80, "demand_score": 81}) == ["Strong market demand"]


def test_kmeans_plus_plus_picks_distinct_points_when_possible():
    data = np.array([[0.0, 0.0]] * 5 + [[1.0, 1.0]] * 5)
    for seed in range(10):
        centroids = kmeans_plus_plus(data, 2, np.random.default_rng(seed))
        assert not np.array_equal(centroids[0], centroids[1])


def test_normalizer_scales_columns_to_unit_range():
    features = np.array([[0.0, 10.0, 5.0], [50.0, 20.0, 5.0], [100.0, 30.0, 5.0]])

    normalized = FeatureNormalizer().fit_transform(features)

    assert normalized[:, 0].tolist() == pytest.approx([0.0, 0.5, 1.0])
    assert normalized[:, 1].tolist() == pytest.approx([0.0, 0.5, 1.0])
    assert normalized[:, 2].tolist() == [0.0, 0.0, 0.0]


def test_normalizer_must_be_fitted():
    with pytest.raises(RuntimeError):
        FeatureNormalizer().transform(np.zeros((2, 2)))
    with pytest.raises(ValueError):
        FeatureNormalizer().fit(np.zeros((0, 5)))
