import numpy as np
import pytest

from ggmsim.synthetic import generate_nonempty


@pytest.fixture
def rng():
    return np.random.default_rng(0)


@pytest.fixture
def simulated():
    return generate_nonempty(8, 200, 0.3, rng=1)


@pytest.fixture
def grid():
    return np.array([0.3, 0.1, 0.03])
