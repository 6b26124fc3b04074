import os

os.environ.setdefault('MPLBACKEND', 'Agg')

import numpy as np
import pytest

import cpals


@pytest.fixture
def tenpy():
    return cpals.get_backend('numpy')


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
