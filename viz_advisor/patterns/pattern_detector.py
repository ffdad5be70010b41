"""
Pattern Detector - runs the independent pattern analyses over one dataset.

Architecture:
    Each analysis (correlations, time series, distributions, outliers,
    categories, clusters) reads the same records and profiles and writes
    only its own slot of the PatternSet, so they run concurrently on a
    thread pool and are joined before the PatternSet is built.

Design Decisions:
    - A failing analysis is downgraded to an empty result and recorded in
      ``failed_steps``; the rest of the pass continues
    - Cancellation is not a failure: AnalysisCancelledError propagates
    - Clustering is optional (the most expensive analysis)

Usage:
    detector = PatternDetector.from_settings(AnalysisSettings())
    patterns = detector.detect(records, profiles)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from viz_advisor.core.cancellation import CancellationToken
from viz_advisor.core.config import AnalysisSettings
from viz_advisor.core.exceptions import AnalysisCancelledError, AnalysisStepFailure
from viz_advisor.patterns.categorical_analysis import CategoricalAnalyzer
from viz_advisor.patterns.clustering import DensityClusterAnalyzer
from viz_advisor.patterns.correlation import CorrelationAnalyzer
from viz_advisor.patterns.distribution_analysis import DistributionAnalyzer
from viz_advisor.patterns.pattern_result import PatternSet
from viz_advisor.patterns.temporal_analysis import TemporalAnalyzer
from viz_advisor.profiler.profile_result import ColumnProfile

logger = logging.getLogger(__name__)

StepFailureHandler = Callable[[str, Exception], None]


class PatternDetector:
    """Run every pattern analysis and collect the results into a PatternSet."""

    def __init__(
        self,
        correlation_analyzer: Optional[CorrelationAnalyzer] = None,
        temporal_analyzer: Optional[TemporalAnalyzer] = None,
        distribution_analyzer: Optional[DistributionAnalyzer] = None,
        categorical_analyzer: Optional[CategoricalAnalyzer] = None,
        cluster_analyzer: Optional[DensityClusterAnalyzer] = None,
        enable_clustering: bool = True,
        max_workers: int = 4,
        on_step_failed: Optional[StepFailureHandler] = None
    ):
        self.correlation_analyzer = correlation_analyzer or CorrelationAnalyzer()
        self.temporal_analyzer = temporal_analyzer or TemporalAnalyzer()
        self.distribution_analyzer = distribution_analyzer or DistributionAnalyzer()
        self.categorical_analyzer = categorical_analyzer or CategoricalAnalyzer()
        self.cluster_analyzer = cluster_analyzer or DensityClusterAnalyzer()
        self.enable_clustering = enable_clustering
        self.max_workers = max_workers
        self.on_step_failed = on_step_failed

    @classmethod
    def from_settings(
        cls,
        settings: AnalysisSettings,
        on_step_failed: Optional[StepFailureHandler] = None
    ) -> "PatternDetector":
        return cls(
            correlation_analyzer=CorrelationAnalyzer(correlation_threshold=settings.correlation_threshold),
            temporal_analyzer=TemporalAnalyzer(seasonality_threshold=settings.seasonality_threshold),
            distribution_analyzer=DistributionAnalyzer(outlier_threshold=settings.outlier_threshold),
            categorical_analyzer=CategoricalAnalyzer(),
            cluster_analyzer=DensityClusterAnalyzer(
                cluster_min_size=settings.cluster_min_size,
                max_points=settings.max_cluster_points,
                random_seed=settings.random_seed,
            ),
            enable_clustering=settings.enable_clustering,
            max_workers=settings.max_workers,
            on_step_failed=on_step_failed,
        )

    def _steps(self) -> List[Tuple[str, Callable[..., List[Any]]]]:
        steps = [
            ("correlations", self.correlation_analyzer.analyze),
            ("time_series", self.temporal_analyzer.analyze),
            ("distributions", self.distribution_analyzer.analyze_distributions),
            ("outliers", self.distribution_analyzer.detect_outliers),
            ("categories", self.categorical_analyzer.analyze),
        ]
        if self.enable_clustering:
            steps.append(("clusters", self.cluster_analyzer.analyze))
        return steps

    def detect(
        self,
        records: Sequence[Mapping],
        profiles: Dict[str, ColumnProfile],
        cancel_token: Optional[CancellationToken] = None
    ) -> PatternSet:
        """
        Detect patterns in a profiled dataset.

        Args:
            records: Dataset records
            profiles: Column profiles of the same records
            cancel_token: Optional token checked inside each analysis

        Returns:
            PatternSet; failed analyses contribute empty tuples

        Raises:
            AnalysisCancelledError: If the token is cancelled during detection
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled("patterns")

        steps = self._steps()
        results: Dict[str, Tuple[Any, ...]] = {}
        failed: List[str] = []

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="pattern") as executor:
            futures = {
                name: executor.submit(self._run_step, name, step, records, profiles, cancel_token)
                for name, step in steps
            }
            for name, _ in steps:
                try:
                    results[name] = tuple(futures[name].result())
                except AnalysisStepFailure as failure:
                    logger.warning(f"Pattern analysis '{name}' failed: {failure.message}")
                    failed.append(name)
                    results[name] = ()
                    if self.on_step_failed is not None:
                        self.on_step_failed(name, failure)

        return PatternSet(
            correlations=results.get("correlations", ()),
            time_series=results.get("time_series", ()),
            distributions=results.get("distributions", ()),
            outliers=results.get("outliers", ()),
            categories=results.get("categories", ()),
            clusters=results.get("clusters", ()),
            data_size=len(records),
            processed_columns=len(profiles),
            failed_steps=tuple(failed),
        )

    @staticmethod
    def _run_step(
        name: str,
        step: Callable[..., List[Any]],
        records: Sequence[Mapping],
        profiles: Dict[str, ColumnProfile],
        cancel_token: Optional[CancellationToken]
    ) -> List[Any]:
        try:
            return step(records, profiles, cancel_token)
        except AnalysisCancelledError:
            raise
        except Exception as e:
            raise AnalysisStepFailure(f"{name} analysis failed: {e}", step=name, original_exception=e)
