import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from cpals import CP_ALS, ConfigurationError, NormCheck
from cpals.cpd.common_kernels import mode_product
from cpals.cpd.compression import randomized_compression, tucker_compression
from cpals.tensors import synthetic_tensors


def expand(tenpy, core, transforms):
    T = core
    for i, U in enumerate(transforms):
        T = mode_product(tenpy, T, U, i)
    return T


def test_tucker_without_truncation_is_exact(tenpy, rng):
    T = rng.standard_normal((3, 4, 5))
    core, transforms = tucker_compression(tenpy, T, 0.0)
    for U in transforms:
        assert_allclose(U.T @ U, np.eye(U.shape[1]), atol=1e-10)
    assert_allclose(expand(tenpy, core, transforms), T, atol=1e-10)


def test_tucker_truncates_low_rank(tenpy, rng):
    T, _, _ = synthetic_tensors.low_rank_tensor(tenpy, (6, 7, 8), 2, rng)
    core, transforms = tucker_compression(tenpy, T, 1e-6)
    assert core.shape == (2, 2, 2)
    assert_allclose(expand(tenpy, core, transforms), T, atol=1e-8)


def test_tucker_shares_symmetric_transforms(tenpy, rng):
    T, _, _ = synthetic_tensors.low_rank_tensor(tenpy, (4, 5, 5), 2, rng, symmetries=[0, 1, 1])
    _, transforms = tucker_compression(tenpy, T, 1e-6, symmetries=[0, 1, 1])
    assert transforms[1] is transforms[2]


def test_randomized_captures_range(tenpy, rng):
    T, _, _ = synthetic_tensors.low_rank_tensor(tenpy, (10, 11, 12), 3, rng)
    core, transforms = randomized_compression(tenpy, T, 3, rng, oversampl=0, powerit=1)
    assert core.shape == (3, 3, 3)
    assert_allclose(expand(tenpy, core, transforms), T, atol=1e-8)


def test_compression_validation(tenpy, rng):
    T = rng.standard_normal((3, 4, 5))
    with pytest.raises(ConfigurationError):
        tucker_compression(tenpy, T, -1.0)
    with pytest.raises(ConfigurationError):
        randomized_compression(tenpy, T, 0, rng)


def test_compress_compute_tucker(tenpy, rng):
    T, _, _ = synthetic_tensors.low_rank_tensor(tenpy, (6, 7, 8), 2, rng)
    original = T.copy()
    engine = CP_ALS.from_tensor(tenpy, T, seed=0)
    source = engine.source
    engine.compress_compute_tucker(1e-6, NormCheck(1e-10), 2, max_als=500)
    assert [a.shape for a in engine.A[:3]] == [(6, 2), (7, 2), (8, 2)]
    assert engine.source is source
    assert_array_equal(T, original)


def test_compress_compute_rand(tenpy, rng):
    T, _, _ = synthetic_tensors.low_rank_tensor(tenpy, (10, 11, 12), 3, rng)
    engine = CP_ALS.from_tensor(tenpy, T, seed=0)
    engine.compress_compute_rand(3, NormCheck(1e-8), oversampl=0, powerit=1, rank=3,
                                 max_als=200)
    assert [a.shape for a in engine.A[:3]] == [(10, 3), (11, 3), (12, 3)]
    for a in engine.A[:3]:
        assert_allclose(np.linalg.norm(a, axis=0), np.ones(3), atol=1e-10)
    assert engine.source.shape == (10, 11, 12)


def test_compress_restores_source_on_failure(tenpy, rng):
    engine = CP_ALS.from_tensor(tenpy, rng.standard_normal((4, 5, 6)), seed=0)
    source = engine.source

    def exploding(factors):
        raise RuntimeError("stop")

    with pytest.raises(RuntimeError):
        engine.compress_compute_tucker(0.0, exploding, 2)
    assert engine.source is source


def test_compress_missing_rank(tenpy, rng):
    engine = CP_ALS.from_tensor(tenpy, rng.standard_normal((4, 5, 6)))
    with pytest.raises(ConfigurationError):
        engine.compress_compute_rand(3, NormCheck())
