"""
Memory guard - decides whether a dataset must be sampled before analysis.

The in-memory size is extrapolated from a handful of evenly spaced records
(serialized length x 2 bytes per character) and compared with the memory
psutil reports as available.
"""

import json
import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Sequence

import psutil

from viz_advisor.core.constants import (
    DEFAULT_MAX_DATA_POINTS,
    DEFAULT_MAX_MEMORY_FRACTION,
    DEFAULT_RECOMMENDED_SAMPLE_SIZE,
    MEMORY_BYTES_PER_CHAR,
    MEMORY_ESTIMATE_SAMPLE_RECORDS,
)
from viz_advisor.core.exceptions import MemoryPressure

logger = logging.getLogger(__name__)


def system_available_memory() -> Optional[int]:
    """Available system memory in bytes, or None if it cannot be read."""
    try:
        return int(psutil.virtual_memory().available)
    except (psutil.Error, OSError) as e:
        logger.debug(f"Could not check system memory: {e}")
        return None


@dataclass(frozen=True)
class MemoryStatus:
    row_count: int
    estimated_bytes: int
    available_bytes: Optional[int]
    budget_bytes: Optional[int]

    @property
    def sufficient(self) -> bool:
        return self.budget_bytes is None or self.estimated_bytes < self.budget_bytes


class MemoryGuard:
    """
    Estimate dataset size and flag datasets that need sampling.

    Example:
        >>> guard = MemoryGuard(max_memory_fraction=0.8, recommended_rows=100_000)
        >>> try:
        ...     guard.check(records)
        ... except MemoryPressure as pressure:
        ...     records = sample_records(records, pressure.recommended_rows)
    """

    def __init__(
        self,
        max_memory_fraction: float = DEFAULT_MAX_MEMORY_FRACTION,
        recommended_rows: int = DEFAULT_RECOMMENDED_SAMPLE_SIZE,
        max_rows: int = DEFAULT_MAX_DATA_POINTS,
        memory_probe: Optional[Callable[[], Optional[int]]] = None
    ):
        """
        Args:
            max_memory_fraction: Share of available memory the dataset may use (default: 0.8)
            recommended_rows: Rows to sample down to under pressure (default: 100,000)
            max_rows: Row count above which the dataset is always sampled (default: 100,000)
            memory_probe: Returns available bytes (default: psutil)
        """
        self.max_memory_fraction = max_memory_fraction
        self.recommended_rows = min(recommended_rows, max_rows)
        self.max_rows = max_rows
        self.memory_probe = memory_probe or system_available_memory

    @staticmethod
    def estimate_size(records: Sequence[Mapping]) -> int:
        """Extrapolated byte size of the dataset."""
        n = len(records)
        if n == 0:
            return 0
        step = max(1, n // MEMORY_ESTIMATE_SAMPLE_RECORDS)
        probes = [records[i] for i in range(0, n, step)][:MEMORY_ESTIMATE_SAMPLE_RECORDS]
        mean_chars = sum(len(json.dumps(dict(r), default=str)) for r in probes) / len(probes)
        return int(mean_chars * MEMORY_BYTES_PER_CHAR * n)

    def status(self, records: Sequence[Mapping]) -> MemoryStatus:
        available = self.memory_probe()
        return MemoryStatus(
            row_count=len(records),
            estimated_bytes=self.estimate_size(records),
            available_bytes=available,
            budget_bytes=int(available * self.max_memory_fraction) if available is not None else None,
        )

    def check(self, records: Sequence[Mapping]) -> MemoryStatus:
        """
        Check whether the dataset can be analyzed as-is.

        Returns:
            MemoryStatus when the dataset fits

        Raises:
            MemoryPressure: If the estimate reaches the memory budget or the
                dataset has more than ``max_rows`` rows
        """
        status = self.status(records)
        if status.sufficient and status.row_count <= self.max_rows:
            return status

        logger.warning(
            f"Dataset of {status.row_count:,} rows (~{status.estimated_bytes:,} bytes) exceeds limits; "
            f"sampling to {self.recommended_rows:,} rows"
        )
        raise MemoryPressure(
            estimated_bytes=status.estimated_bytes,
            available_bytes=status.available_bytes or 0,
            recommended_rows=self.recommended_rows,
        )
