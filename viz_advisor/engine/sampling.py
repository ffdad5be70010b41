"""
Uniform row sampling for datasets that exceed the memory budget.
"""

import random
from typing import Any, List, Optional, Sequence, Tuple

from viz_advisor.core.constants import DEFAULT_RANDOM_SEED


class ReservoirSampler:
    """
    Reservoir sampling (Algorithm R, Vitter 1985).

    Every item seen has the same probability of ending up in the reservoir.
    Items are kept with their stream position so the sample can be returned
    in original order. The sampler owns its random generator; the global
    ``random`` state is never touched.
    """

    def __init__(self, reservoir_size: int, random_seed: Optional[int] = DEFAULT_RANDOM_SEED):
        """
        Args:
            reservoir_size: Maximum number of samples to retain
            random_seed: Seed for reproducibility (None for nondeterministic)
        """
        if reservoir_size < 1:
            raise ValueError(f"reservoir_size must be positive, got {reservoir_size}")
        self.reservoir_size = reservoir_size
        self.reservoir: List[Tuple[int, Any]] = []
        self.items_seen = 0
        self._rng = random.Random(random_seed)

    def add(self, item: Any) -> None:
        """
        Offer an item to the reservoir.

        The first k items fill the reservoir; afterwards item n replaces a
        random slot with probability k/n.
        """
        position = self.items_seen
        self.items_seen += 1

        if len(self.reservoir) < self.reservoir_size:
            self.reservoir.append((position, item))
        else:
            j = self._rng.randint(0, self.items_seen - 1)
            if j < self.reservoir_size:
                self.reservoir[j] = (position, item)

    def add_batch(self, items: Sequence[Any]) -> None:
        for item in items:
            self.add(item)

    def get_sample(self) -> List[Any]:
        """Sampled items in their original stream order."""
        return [item for _, item in sorted(self.reservoir, key=lambda entry: entry[0])]


def sample_records(
    records: Sequence[Any],
    sample_size: int,
    random_seed: Optional[int] = DEFAULT_RANDOM_SEED
) -> Sequence[Any]:
    """
    Uniform random sample of ``sample_size`` records, in original order.

    When the dataset already fits, the dataset itself is returned unchanged.
    """
    if len(records) <= sample_size:
        return records

    sampler = ReservoirSampler(sample_size, random_seed)
    sampler.add_batch(records)
    return sampler.get_sample()
