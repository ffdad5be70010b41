"""
Density clustering of numeric column pairs.

For each pair of numeric columns the points (x, y) are clustered with DBSCAN.
Epsilon adapts to the data: it is the mean distance from each point to its
k = max(1, floor(sqrt(n) / 2)) nearest neighbours. A core point needs at
least ``cluster_min_size`` neighbours within epsilon besides itself.
A pair is reported only when it splits into more than one cluster.
"""

import logging
import math
from itertools import combinations
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
from sklearn.cluster import DBSCAN
from sklearn.neighbors import NearestNeighbors

from viz_advisor.core.cancellation import CancellationToken
from viz_advisor.core.constants import (
    DEFAULT_CLUSTER_MIN_SIZE,
    DEFAULT_MAX_CLUSTER_POINTS,
    DEFAULT_RANDOM_SEED,
)
from viz_advisor.patterns.pattern_result import ClusterPattern
from viz_advisor.profiler.column_profiler import column_values
from viz_advisor.profiler.profile_result import ColumnProfile
from viz_advisor.profiler.statistics_calculator import aligned_numeric_array

logger = logging.getLogger(__name__)


def neighbour_count(point_count: int) -> int:
    return max(1, int(math.sqrt(point_count) / 2))


def estimate_epsilon(points: np.ndarray) -> float:
    """Mean distance from each point to its k nearest neighbours (self excluded)."""
    k = min(neighbour_count(len(points)), len(points) - 1)
    nn = NearestNeighbors(n_neighbors=k + 1)
    nn.fit(points)
    distances, _ = nn.kneighbors(points)
    return float(distances[:, 1:].mean())


class DensityClusterAnalyzer:
    """
    DBSCAN clustering over every pair of numeric columns.

    Large pairs are reduced to ``max_points`` rows by seeded sampling, since
    neighbour search and DBSCAN grow quadratically in the worst case.
    """

    def __init__(
        self,
        cluster_min_size: int = DEFAULT_CLUSTER_MIN_SIZE,
        max_points: int = DEFAULT_MAX_CLUSTER_POINTS,
        random_seed: Optional[int] = DEFAULT_RANDOM_SEED
    ):
        """
        Args:
            cluster_min_size: Neighbours a core point needs within epsilon (default: 3)
            max_points: Points clustered per pair before sampling (default: 5000)
            random_seed: Seed for point sampling
        """
        self.cluster_min_size = cluster_min_size
        self.max_points = max_points
        self.random_seed = random_seed

    def analyze(
        self,
        records: Sequence[Mapping],
        profiles: Dict[str, ColumnProfile],
        cancel_token: Optional[CancellationToken] = None
    ) -> List[ClusterPattern]:
        numeric_columns = [name for name, p in profiles.items() if p.is_numeric]
        arrays = {name: aligned_numeric_array(column_values(records, name)) for name in numeric_columns}

        patterns = []
        for a, b in combinations(numeric_columns, 2):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled("clusters")
            mask = ~(np.isnan(arrays[a]) | np.isnan(arrays[b]))
            points = np.column_stack([arrays[a][mask], arrays[b][mask]])
            pattern = self.cluster_pair(a, b, points)
            if pattern is not None:
                patterns.append(pattern)
        return patterns

    def cluster_pair(self, a: str, b: str, points: np.ndarray) -> Optional[ClusterPattern]:
        """
        Cluster one set of 2-D points.

        Returns:
            ClusterPattern when more than one cluster is found, else None
        """
        if len(points) < 2 * self.cluster_min_size:
            return None

        if len(points) > self.max_points:
            rng = np.random.default_rng(self.random_seed)
            keep = np.sort(rng.choice(len(points), size=self.max_points, replace=False))
            points = points[keep]

        epsilon = estimate_epsilon(points)
        if epsilon <= 0:
            return None

        labels = DBSCAN(eps=epsilon, min_samples=self.cluster_min_size + 1).fit_predict(points)
        cluster_ids = sorted(set(labels) - {-1})
        if len(cluster_ids) <= 1:
            return None

        clusters = tuple(
            tuple((float(x), float(y)) for x, y in points[labels == cluster_id])
            for cluster_id in cluster_ids
        )
        noise_count = int((labels == -1).sum())
        logger.debug(f"Found {len(clusters)} clusters in {a}/{b} (eps={epsilon:.4g}, noise={noise_count})")

        return ClusterPattern(
            columns=(a, b),
            clusters=clusters,
            confidence=1.0 - noise_count / len(points),
            epsilon=epsilon,
            noise_count=noise_count,
        )
