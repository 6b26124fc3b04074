import numpy as np
import pytest
from numpy.testing import assert_allclose

from cpals import CP_ALS, ConfigurationError, DenseSource, DFSource, NormCheck
from cpals.cpd.common_kernels import cp_reconstruct


@pytest.fixture
def pair(rng):
    left = rng.standard_normal((6, 3, 4))
    right = rng.standard_normal((6, 5))
    return left, right


def test_shape_and_materialize(tenpy, pair):
    left, right = pair
    source = DFSource(tenpy, left, right)
    assert source.shape == (3, 4, 5)
    assert source.ndim == 3
    assert source.size == 60
    assert_allclose(source.materialize(), np.einsum('xij,xk->ijk', left, right))


def test_norm_and_gram_without_materializing(tenpy, pair):
    left, right = pair
    source = DFSource(tenpy, left, right)
    dense = DenseSource(tenpy, source.materialize())
    assert source.norm() == pytest.approx(dense.norm())
    for mode in range(3):
        assert_allclose(source.mode_gram(mode), dense.mode_gram(mode), atol=1e-10)


def test_mttkrp_matches_dense(tenpy, rng, pair):
    left, right = pair
    source = DFSource(tenpy, left, right)
    dense = DenseSource(tenpy, source.materialize())
    factors = [rng.standard_normal((n, 2)) for n in source.shape]
    source.begin_sweep()
    # one sweep in order, reusing the cached side product
    for mode in range(3):
        assert_allclose(
            source.mttkrp(mode, factors), dense.mttkrp(mode, factors), atol=1e-10
        )
    # the indirect flag is accepted and gives the same result
    source.begin_sweep()
    assert_allclose(
        source.mttkrp(2, factors, direct=False), dense.mttkrp(2, factors), atol=1e-10
    )


def test_mttkrp_two_modes_per_side(tenpy, rng):
    left = rng.standard_normal((5, 2, 3))
    right = rng.standard_normal((5, 4, 3))
    source = DFSource(tenpy, left, right)
    dense = DenseSource(tenpy, source.materialize())
    factors = [rng.standard_normal((n, 3)) for n in source.shape]
    source.begin_sweep()
    for mode in range(4):
        assert_allclose(
            source.mttkrp(mode, factors), dense.mttkrp(mode, factors), atol=1e-10
        )


def test_side_product_cached_per_sweep(tenpy, monkeypatch, pair):
    left, right = pair
    engine = CP_ALS.from_df(tenpy, left, right, seed=0)
    source = engine.source
    calls = []
    reduce_side = source._reduce_side

    def counting(side, factors):
        calls.append(side.shape)
        return reduce_side(side, factors)

    monkeypatch.setattr(source, '_reduce_side', counting)
    engine.compute_rank_random(2, NormCheck(1e-12), max_als=1)
    # left modes 0, 1 share one reduction of right, mode 2 reduces left
    assert calls == [right.shape, left.shape]
    engine.step()
    assert len(calls) == 4


def test_orthogonal_round_trip(tenpy, rng):
    X, R = 7, 2
    Q = np.linalg.qr(rng.standard_normal((X, R)))[0]
    a = np.linalg.qr(rng.standard_normal((4, R)))[0]
    b = np.linalg.qr(rng.standard_normal((5, R)))[0]
    d = np.linalg.qr(rng.standard_normal((6, R)))[0]
    weights = np.array([3.0, 1.5])
    left = cp_reconstruct(tenpy, [Q, a, b], weights)
    right = cp_reconstruct(tenpy, [Q, d])

    engine = CP_ALS.from_df(tenpy, left, right, seed=0)
    epsilon = engine.compute_rank(
        2, NormCheck(1e-10), SVD_initial_guess=True, SVD_rank=2, calculate_epsilon=True
    )
    assert epsilon < 1e-8
    assert_allclose(engine.reconstruct(), cp_reconstruct(tenpy, [a, b, d], weights), atol=1e-8)
    # the caller's pair is left as it was
    assert left.shape == (X, 4, 5)
    assert right.shape == (X, 6)


def test_df_configuration_errors(tenpy, rng):
    with pytest.raises(ConfigurationError):
        DFSource(tenpy, rng.standard_normal((4, 3)), rng.standard_normal((5, 3)))
    with pytest.raises(ConfigurationError):
        DFSource(tenpy, rng.standard_normal(4), rng.standard_normal((4, 3)))
    engine = CP_ALS.from_df(tenpy, rng.standard_normal((4, 3)), rng.standard_normal((4, 2)))
    with pytest.raises(ConfigurationError):
        engine.compress_compute_tucker(0.1, NormCheck(), 2)
