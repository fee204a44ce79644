import numpy as np
import pytest

from ctabc.data.dataset import FrequencyDataset

EXAMPLE_COUNTS = [
    [2, 4, 7, 16, 27, 44, 96, 104, 0, 0, 0, 0],
    [3, 2, 2, 19, 10, 27, 73, 62, 1, 1, 0, 0],
    [0, 4, 0, 17, 7, 47, 80, 82, 0, 0, 2, 1],
]


@pytest.fixture
def example_dataset():
    return FrequencyDataset(
        counts=np.array(EXAMPLE_COUNTS),
        timestamps=np.array([1, 30, 60]),
        durations=np.array([10, 10]),
    )


@pytest.fixture
def small_dataset():
    return FrequencyDataset(
        counts=np.array([[10, 6, 4, 0], [8, 5, 3, 4], [9, 2, 6, 3]]),
        timestamps=np.array([1, 8, 15]),
        durations=np.array([3, 2]),
        variants=("a", "b", "c", "d"),
    )
