import argparse

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from cpals import CP_ALS, FitCheck, NormCheck
from cpals.utils import (
    add_als_arguments,
    add_general_arguments,
    add_pals_arguments,
    cosine_similarity,
    factor_match_score,
    generate_converge_test,
    generate_tensor,
    get_file_prefix,
    load_decomposition_results,
    plot_rank_history,
    relative_error,
    save_decomposition_results,
)


def parse(argv):
    parser = argparse.ArgumentParser()
    add_general_arguments(parser)
    add_als_arguments(parser)
    return parser.parse_args(argv)


def test_arguments_and_prefix():
    args = parse(['--tensor', 'orthogonal', '--s', '6', '--R', '2', '--R-app', '3'])
    assert args.R_app == 3
    assert get_file_prefix(args) == 'orthogonal-rank-o3-s6-R2-Rapp3-seed1'


def test_generate_tensor(tenpy):
    args = parse(['--tensor', 'symmetric', '--s', '4', '--R', '2'])
    data = generate_tensor(tenpy, args, np.random.default_rng(0))
    assert data['tensor'].shape == (4, 4, 4)
    assert data['symmetries'] == [0, 1, 1]
    assert_allclose(data["tensor"], np.transpose(data["tensor"], (0, 2, 1)), atol=1e-12)


def test_generate_df_pair(tenpy):
    args = parse(['--tensor', 'df', '--s', '4', '--R', '2'])
    args.left_order, args.right_order, args.X = 2, 1, 5
    data = generate_tensor(tenpy, args, np.random.default_rng(0))
    assert data['tensor'] is None
    assert data['left'].shape == (5, 4, 4)
    assert data['right'].shape == (5, 4)


def test_generate_converge_test():
    args = parse(['--converge', 'norm'])
    assert isinstance(generate_converge_test(args), NormCheck)
    tests = generate_converge_test(parse([]), 3)
    assert len(tests) == 3 and all(isinstance(t, FitCheck) for t in tests)
    # a single panel still gets a list
    assert len(generate_converge_test(parse([]), 1)) == 1


def test_single_panel_build(tenpy, rng):
    parser = argparse.ArgumentParser()
    add_general_arguments(parser)
    add_als_arguments(parser)
    add_pals_arguments(parser)
    args = parser.parse_args(['--panels', '1', '--converge', 'norm'])
    engine = CP_ALS.from_tensor(tenpy, rng.standard_normal((3, 4, 5)), seed=0)
    engine.compute_PALS(generate_converge_test(args, args.panels), panels=args.panels,
                        max_als=10)
    assert engine.rank == 5


def test_factor_match_score_permutation(rng):
    factors = [rng.standard_normal((n, 3)) for n in (4, 5, 6)]
    perm = [2, 0, 1]
    est = [-2.0 * f[:, perm] for f in factors]
    fms, matched = factor_match_score(factors, est, return_permutation=True)
    assert fms == pytest.approx(1.0)
    assert list(est[0][:, matched[0]] / factors[0][:, 0]) == pytest.approx([-2.0] * 4)


def test_save_and_load(tenpy, rng, tmp_path):
    factors = [rng.standard_normal((3, 2)), rng.standard_normal((4, 2)), np.ones(2)]
    save_decomposition_results(None, factors, tenpy, tmp_path / 'run0')
    loaded = load_decomposition_results(tmp_path / 'run0')
    assert len(loaded) == 3
    for a, b in zip(factors, loaded):
        assert_array_equal(a, b)


def test_plot_rank_history(tenpy, rng, tmp_path):
    engine = CP_ALS.from_tensor(tenpy, rng.standard_normal((3, 4, 5)), seed=0)
    engine.compute_rank(3, NormCheck(1e-4), max_als=20, calculate_epsilon=True)
    path = tmp_path / 'history.png'
    plot_rank_history([engine.history], labels=['build'], save_path=path)
    assert path.exists()


def test_cosine_similarity():
    assert cosine_similarity(np.array([1.0, 0.0]), np.array([3.0, 0.0])) == pytest.approx(1.0)
    assert cosine_similarity(np.array([1.0, 0.0]), np.array([0.0, 2.0])) == 0.0
    assert cosine_similarity(np.zeros(2), np.ones(2)) == 0.0


def test_relative_error(tenpy):
    T = np.ones((2, 2))
    assert relative_error(tenpy, T, 0.5 * T) == pytest.approx(0.5)
    assert relative_error(tenpy, np.zeros(3), np.ones(3)) == pytest.approx(np.sqrt(3.0))
