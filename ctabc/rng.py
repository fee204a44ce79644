from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import numpy as np


@dataclass
class RNGManager:
    seed: int | None = None
    sequence: np.random.SeedSequence = field(init=False)

    def __post_init__(self) -> None:
        self.sequence = np.random.SeedSequence(self.seed)
        self.numpy = np.random.default_rng(self.sequence.spawn(1)[0])

    def spawn(self, n: int) -> List[np.random.SeedSequence]:
        """Independent child sequences, one per task or worker."""
        return self.sequence.spawn(n)


def as_generator(rng: np.random.Generator | np.random.SeedSequence | int | None) -> np.random.Generator:
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)
