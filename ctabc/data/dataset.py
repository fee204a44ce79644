"""
Frequency Dataset
=================
Observed variant counts for a sequence of sampling phases.

Rows are phases, columns are variants. Each phase carries the last time step
it covers (its timestamp) and, for every phase after the first, the number of
preceding time steps its sample averages over (its duration).

The summary statistic used for inference is the relative frequency of the
variants observed in the first phase at every later phase, in variant-major
order: for each first-phase variant, its frequency at phase 2, phase 3, ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from ctabc.errors import DatasetValidationError


def _as_int_array(values, name: str, ndim: int) -> np.ndarray:
    try:
        arr = np.asarray(values, dtype=float)
    except (TypeError, ValueError) as exc:
        raise DatasetValidationError(f"{name} must be numeric") from exc
    if arr.ndim != ndim:
        raise DatasetValidationError(f"{name} must be {ndim}-dimensional, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)) or not np.all(arr == np.round(arr)):
        raise DatasetValidationError(f"{name} must contain whole numbers only")
    return arr.astype(np.int64)


@dataclass(frozen=True, eq=False)
class FrequencyDataset:
    counts: np.ndarray
    timestamps: np.ndarray
    durations: np.ndarray
    variants: Tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        rows = self.counts
        if isinstance(rows, (list, tuple)) and len({len(r) for r in rows}) > 1:
            raise DatasetValidationError("every phase must report the same number of variants")
        counts = _as_int_array(rows, "counts", 2)
        timestamps = _as_int_array(self.timestamps, "timestamps", 1)
        durations = _as_int_array(self.durations, "durations", 1)
        n_phases, n_variants = counts.shape

        if n_phases < 2:
            raise DatasetValidationError("at least two phases are required")
        if np.any(counts < 0):
            raise DatasetValidationError("counts must be non-negative")
        if np.any(counts.sum(axis=1) == 0):
            raise DatasetValidationError("every phase needs a positive sample size")
        if timestamps.shape[0] != n_phases:
            raise DatasetValidationError(
                f"expected {n_phases} timestamps, got {timestamps.shape[0]}"
            )
        if timestamps[0] < 1 or np.any(np.diff(timestamps) <= 0):
            raise DatasetValidationError("timestamps must be strictly increasing and start at >= 1")
        if durations.shape[0] != n_phases - 1:
            raise DatasetValidationError(
                f"expected {n_phases - 1} durations, got {durations.shape[0]}"
            )
        gaps = np.diff(timestamps)
        if np.any(durations < 1) or np.any(durations > gaps):
            raise DatasetValidationError(
                "each duration must be >= 1 and no longer than the gap to the previous phase"
            )
        variants = tuple(str(v) for v in self.variants) or tuple(
            f"v{i + 1}" for i in range(n_variants)
        )
        if len(variants) != n_variants:
            raise DatasetValidationError(
                f"expected {n_variants} variant labels, got {len(variants)}"
            )
        if len(set(variants)) != n_variants:
            raise DatasetValidationError("variant labels must be unique")

        for arr in (counts, timestamps, durations):
            arr.setflags(write=False)
        object.__setattr__(self, "counts", counts)
        object.__setattr__(self, "timestamps", timestamps)
        object.__setattr__(self, "durations", durations)
        object.__setattr__(self, "variants", variants)

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        timestamps: Sequence[int],
        durations: Sequence[int],
    ) -> "FrequencyDataset":
        """Build from a frame with one row per phase and one column per variant."""
        return cls(
            counts=frame.to_numpy(),
            timestamps=np.asarray(timestamps),
            durations=np.asarray(durations),
            variants=tuple(frame.columns),
        )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            self.counts,
            columns=list(self.variants),
            index=pd.Index(self.timestamps, name="timestamp"),
        )

    @property
    def n_phases(self) -> int:
        return int(self.counts.shape[0])

    @property
    def n_variants(self) -> int:
        return int(self.counts.shape[1])

    @property
    def max_timestamp(self) -> int:
        return int(self.timestamps[-1])

    @property
    def sample_sizes(self) -> np.ndarray:
        return self.counts.sum(axis=1)

    @property
    def first_phase_variants(self) -> np.ndarray:
        """Column indices of variants present in the first phase."""
        return np.flatnonzero(self.counts[0] > 0)

    @property
    def k(self) -> int:
        return int(self.first_phase_variants.shape[0])

    @property
    def first_phase_counts(self) -> np.ndarray:
        return self.counts[0, self.first_phase_variants]

    @property
    def target_frequencies(self) -> np.ndarray:
        later = self.counts[1:, self.first_phase_variants] / self.sample_sizes[1:, None]
        # (phases - 1, k) -> variant-major
        return later.T.reshape(-1).astype(float)

    @property
    def target_labels(self) -> List[str]:
        return [
            f"{self.variants[col]}@{ts}"
            for col in self.first_phase_variants
            for ts in self.timestamps[1:]
        ]
