"""
Portfolio Clustering of Data Assets.

Groups assets by similarity of five scores (monetization, quality,
uniqueness, demand, freshness) with k-means:

1. Min-max normalize each score column across the portfolio
2. Seed centroids with k-means++ (D^2 weighting)
3. Lloyd iterations until assignments stop changing, bounded by max_iterations
4. Describe each non-empty cluster by its centroid on a 0-100 scale

Seeding is random. Without an injected seed or generator, repeated calls
on the same portfolio can return different (but structurally valid)
partitions.
"""

import math
import numbers
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
from scipy.spatial.distance import cdist
from sklearn.metrics import silhouette_score

from core.config import ClusteringConfig
from core.primitives import RandomSource, get_rng
from engine.normalizer import FeatureNormalizer
from schema.asset import DataAsset


logger = logging.getLogger(__name__)


FEATURES = (
    "monetization_score",
    "quality_score",
    "uniqueness_score",
    "demand_score",
    "freshness_score",
)

# (feature, threshold on the 0-100 centroid, tag)
CHARACTERISTIC_RULES = [
    ("monetization_score", 75, "High monetary value"),
    ("quality_score", 80, "Premium quality"),
    ("uniqueness_score", 80, "Unique data"),
    ("demand_score", 80, "Strong market demand"),
    ("freshness_score", 80, "Very fresh data"),
]
DEFAULT_CHARACTERISTIC = "Standard profile"


@dataclass
class ClusterResult:
    """One cluster of assets."""
    cluster_id: int
    label: str
    asset_ids: List[str]
    centroid: Dict[str, int]  # Feature -> member mean on a 0-100 scale
    characteristics: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cluster_id": self.cluster_id,
            "label": self.label,
            "asset_ids": list(self.asset_ids),
            "centroid": dict(self.centroid),
            "characteristics": list(self.characteristics),
        }


@dataclass
class ClusteringReport:
    """Clusters plus diagnostics of the k-means run."""
    clusters: List[ClusterResult] = field(default_factory=list)
    k_requested: int = 0
    k_used: int = 0
    iterations: int = 0
    converged: bool = True
    inertia: float = 0.0  # Sum of squared distances to member means, normalized space
    silhouette: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clusters": [c.to_dict() for c in self.clusters],
            "k_requested": self.k_requested,
            "k_used": self.k_used,
            "iterations": self.iterations,
            "converged": self.converged,
            "inertia": self.inertia,
            "silhouette": self.silhouette,
        }

    def summary(self) -> str:
        """Generate summary of the clustering."""
        silhouette = f"{self.silhouette:.3f}" if self.silhouette is not None else "n/a"
        lines = [
            "=" * 70,
            "Asset Clustering Summary",
            "=" * 70,
            f"Clusters: {len(self.clusters)} (k requested={self.k_requested}, used={self.k_used})",
            f"Iterations: {self.iterations} (converged={self.converged})",
            f"Inertia: {self.inertia:.4f}, silhouette: {silhouette}",
            "",
        ]
        for cluster in self.clusters:
            lines.append(
                f"  {cluster.label}: {len(cluster.asset_ids)} assets, "
                f"{', '.join(cluster.characteristics)}"
            )
        lines.append("=" * 70)
        return "\n".join(lines)


@dataclass
class KMeansResult:
    assignments: np.ndarray
    centroids: np.ndarray
    iterations: int
    converged: bool


def characteristics_for(centroid: Dict[str, float]) -> List[str]:
    """Descriptive tags for a centroid on the 0-100 scale."""
    tags = [tag for feature, threshold, tag in CHARACTERISTIC_RULES if centroid.get(feature, 0) > threshold]
    return tags or [DEFAULT_CHARACTERISTIC]


def kmeans_plus_plus(data: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """
    Choose k initial centroids with k-means++.

    The first centroid is uniform; each next one is drawn with probability
    proportional to the squared distance to the nearest chosen centroid.
    When every point coincides with a chosen centroid the draw is uniform.
    """
    n = data.shape[0]
    centroids = [data[rng.integers(n)]]

    while len(centroids) < k:
        d2 = cdist(data, np.array(centroids), "sqeuclidean").min(axis=1)
        total = d2.sum()
        if total <= 0:
            index = rng.integers(n)
        else:
            index = rng.choice(n, p=d2 / total)
        centroids.append(data[index])

    return np.array(centroids, dtype=float)


def kmeans(data: np.ndarray, k: int, max_iterations: int, rng: np.random.Generator) -> KMeansResult:
    """
    Lloyd's k-means with k-means++ seeding.

    Centroids of empty clusters keep their previous position.
    """
    centroids = kmeans_plus_plus(data, k, rng)
    assignments = None
    converged = False
    iterations = 0

    for iteration in range(max_iterations):
        iterations = iteration + 1
        new_assignments = cdist(data, centroids).argmin(axis=1)

        if assignments is not None and np.array_equal(new_assignments, assignments):
            converged = True
            break
        assignments = new_assignments

        for ci in range(k):
            members = data[assignments == ci]
            if len(members) > 0:
                centroids[ci] = members.mean(axis=0)

    if not converged:
        logger.warning(f"k-means did not converge within {max_iterations} iterations")

    return KMeansResult(assignments=assignments, centroids=centroids,
                        iterations=iterations, converged=converged)


class ClusteringEngine:
    """Clusters data assets by score similarity."""

    def __init__(self, config: Optional[ClusteringConfig] = None, rng: RandomSource = None):
        """
        Args:
            config: Clustering settings
            rng: Random generator or seed; falls back to ``config.seed``
        """
        self.config = config or ClusteringConfig()
        self.config.validate()
        self._rng = get_rng(rng if rng is not None else self.config.seed)

    def feature_matrix(self, assets: List[DataAsset]) -> np.ndarray:
        """Raw score matrix, one row per asset, missing scores as 0."""
        return np.array(
            [[float(getattr(asset, f, 0) or 0) for f in FEATURES] for asset in assets],
            dtype=float
        )

    def run(self, assets: List[DataAsset], k: Optional[int] = None) -> ClusteringReport:
        """
        Cluster assets and report diagnostics.

        Args:
            assets: Assets to cluster (not modified)
            k: Number of clusters, clamped to the number of assets

        Returns:
            ClusteringReport
        """
        if k is None:
            k = self.config.default_k
        # Integral floats such as 2.0 are accepted
        if isinstance(k, bool) or not isinstance(k, numbers.Real) or not float(k).is_integer():
            raise ValueError(f"k must be an integer, got {k!r}")
        k = int(k)
        if k <= 0:
            raise ValueError(f"k must be >= 1, got {k}")

        if not assets:
            logger.info("No assets to cluster")
            return ClusteringReport(k_requested=k)

        k_used = min(k, len(assets))
        normalized = FeatureNormalizer().fit_transform(self.feature_matrix(assets))

        logger.info(f"Clustering {len(assets)} assets into k={k_used} clusters")
        result = kmeans(normalized, k_used, self.config.max_iterations, self._rng)

        clusters = []
        inertia = 0.0
        for ci in range(k_used):
            members = np.flatnonzero(result.assignments == ci)
            if members.size == 0:
                continue

            mean = normalized[members].mean(axis=0)
            inertia += float(((normalized[members] - mean) ** 2).sum())

            centroid = {f: int(math.floor(v * 100 + 0.5)) for f, v in zip(FEATURES, mean)}
            clusters.append(ClusterResult(
                cluster_id=ci,
                label=f"Cluster {ci + 1}",
                asset_ids=[assets[i].id for i in members],
                centroid=centroid,
                characteristics=characteristics_for(centroid),
            ))

        silhouette = None
        if 2 <= len(clusters) <= len(assets) - 1:
            silhouette = float(silhouette_score(normalized, result.assignments))

        report = ClusteringReport(
            clusters=clusters,
            k_requested=k,
            k_used=k_used,
            iterations=result.iterations,
            converged=result.converged,
            inertia=inertia,
            silhouette=silhouette,
        )
        logger.info(report.summary())
        return report

    def cluster(self, assets: List[DataAsset], k: Optional[int] = None) -> List[ClusterResult]:
        """Cluster assets; non-empty clusters only."""
        return self.run(assets, k).clusters


def cluster_assets(
    assets: List[DataAsset],
    k: int = 4,
    rng: RandomSource = None,
    config: Optional[ClusteringConfig] = None
) -> List[ClusterResult]:
    """Cluster assets into at most k groups."""
    return ClusteringEngine(config, rng).cluster(assets, k)
