"""
Population Composition
======================
Estimates the initial population composition from the first-phase sample
and holds the live composition during a simulation.

The first-phase counts plus one empty "unobserved" bucket update a symmetric
Dirichlet(alpha) prior; one draw from the posterior gives the population
frequencies, which are scaled by the population size and rounded. The
rounded counts are not forced to add up to the population size; the
difference is carried through the simulation as a constant offset.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ctabc.errors import DomainError


def dirichlet_frequencies(
    counts: Sequence[int],
    alpha: float,
    rng: np.random.Generator,
) -> np.ndarray:
    if alpha <= 0:
        raise DomainError(f"Dirichlet concentration must be positive, got {alpha}")
    counts = np.asarray(counts, dtype=float)
    if np.any(counts < 0):
        raise DomainError("counts must be non-negative")
    return rng.dirichlet(counts + alpha)


class VariantComposition:
    """Live variant counts.

    Slots 0..k-1 are the first-phase variants, slot k collects variants
    present in the population but absent from the first sample, and later
    slots are variants minted by innovation. Labels are stable identities;
    slot positions of innovations shift when extinct ones are compacted.
    """

    def __init__(self, counts: Sequence[int], n_tracked: int):
        self.counts = np.asarray(counts, dtype=np.int64).copy()
        if np.any(self.counts < 0):
            raise DomainError("composition counts must be non-negative")
        self.n_tracked = int(n_tracked)
        self.labels = np.arange(self.counts.shape[0], dtype=np.int64)
        self._next_label = int(self.counts.shape[0])

    def __len__(self) -> int:
        return int(self.counts.shape[0])

    @property
    def total(self) -> int:
        return int(self.counts.sum())

    def remove(self, n: int, rng: np.random.Generator) -> None:
        """Remove n individuals at random, without replacement."""
        if n > self.total:
            raise DomainError(f"cannot remove {n} individuals from a population of {self.total}")
        if n <= 0:
            return
        self.counts -= rng.multivariate_hypergeometric(self.counts, n)

    def add(self, selected: np.ndarray) -> None:
        """Add copies per slot; the extra last entry counts innovations."""
        copies, n_new = selected[:-1], int(selected[-1])
        self.counts += copies
        if n_new:
            self.counts = np.concatenate([self.counts, np.ones(n_new, dtype=np.int64)])
            new_labels = np.arange(self._next_label, self._next_label + n_new, dtype=np.int64)
            self.labels = np.concatenate([self.labels, new_labels])
            self._next_label += n_new

    def compact(self) -> None:
        """Drop extinct innovations; tracked slots and the bucket always stay."""
        keep = self.counts > 0
        keep[: self.n_tracked + 1] = True
        if not keep.all():
            self.counts = self.counts[keep]
            self.labels = self.labels[keep]

    def tracked_counts(self) -> np.ndarray:
        return self.counts[: self.n_tracked].copy()

    def frequencies_of(self, slots: Sequence[int]) -> np.ndarray:
        """Relative frequencies of the given slots; zeros for an empty population."""
        total = self.total
        selected = self.counts[np.asarray(slots, dtype=np.int64)]
        if total == 0:
            return np.zeros(selected.shape[0])
        return selected / total


def estimate_initial_composition(
    first_phase_counts: Sequence[int],
    population_size: int,
    alpha: float,
    rng: np.random.Generator,
) -> VariantComposition:
    observed = np.append(np.asarray(first_phase_counts, dtype=np.int64), 0)
    freqs = dirichlet_frequencies(observed, alpha, rng)
    counts = np.rint(freqs * population_size).astype(np.int64)
    return VariantComposition(counts, n_tracked=observed.shape[0] - 1)
