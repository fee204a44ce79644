import numpy as np
import pytest

from ctabc.errors import DomainError
from ctabc.model.composition import (
    VariantComposition,
    dirichlet_frequencies,
    estimate_initial_composition,
)


@pytest.mark.parametrize("counts", [[0, 0, 0], [5, 0, 1, 0], [100, 3], [1]])
@pytest.mark.parametrize("alpha", [0.1, 1.0, 10.0])
def test_dirichlet_frequencies_are_probabilities(counts, alpha):
    freqs = dirichlet_frequencies(counts, alpha, np.random.default_rng(11))
    assert freqs.shape == (len(counts),)
    assert np.all(freqs >= 0)
    assert freqs.sum() == pytest.approx(1.0)


def test_dirichlet_rejects_non_positive_alpha():
    with pytest.raises(DomainError):
        dirichlet_frequencies([1, 2], 0.0, np.random.default_rng(0))


def test_initial_composition_has_unobserved_bucket(example_dataset):
    comp = estimate_initial_composition(
        example_dataset.first_phase_counts, 1500, 1.0, np.random.default_rng(5)
    )
    assert len(comp) == 9
    assert comp.n_tracked == 8
    assert np.all(comp.counts >= 0)
    # rounding may leave the total a few individuals off
    assert abs(comp.total - 1500) <= len(comp)


def test_remove_without_replacement():
    comp = VariantComposition([5, 3, 0, 2], n_tracked=3)
    comp.remove(9, np.random.default_rng(2))
    assert comp.total == 1
    assert np.all(comp.counts >= 0)
    with pytest.raises(DomainError):
        comp.remove(2, np.random.default_rng(2))


def test_add_mints_new_variants_and_compact_keeps_tracked():
    comp = VariantComposition([2, 0, 1], n_tracked=2)
    comp.add(np.array([1, 0, 0, 3]))
    assert comp.counts.tolist() == [3, 0, 1, 1, 1, 1]
    assert comp.labels.tolist() == [0, 1, 2, 3, 4, 5]

    comp.counts[3] = 0
    comp.compact()
    assert comp.labels.tolist() == [0, 1, 2, 4, 5]
    assert comp.counts.tolist() == [3, 0, 1, 1, 1]

    comp.add(np.array([0, 0, 0, 0, 0, 1]))
    assert comp.labels[-1] == 6
    assert comp.tracked_counts().tolist() == [3, 0]


def test_frequencies_of_slots():
    comp = VariantComposition([6, 3, 0, 1], n_tracked=3)
    assert np.allclose(comp.frequencies_of([0, 1]), [0.6, 0.3])
    comp.remove(10, np.random.default_rng(0))
    assert np.all(comp.frequencies_of([0, 1, 2]) == 0)
