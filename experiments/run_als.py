"""
cp-als experiments on synthetic tensors.
runs one growth strategy of the engine over several seeds and logs every
rank of the build.
"""

import argparse
import csv
import time
from pathlib import Path
from os.path import dirname, join

import numpy as np

import cpals
from cpals import CP_ALS, factor_match_score, save_decomposition_results
from cpals.utils import arg_defs, generate_converge_test, get_file_prefix, relative_error

PARENT_DIR = dirname(__file__)
RESULTS_DIR = join(PARENT_DIR, 'results')

# csv header for experiment logging
CSV_HEADER = [
    'method', 'seed', 'trial_id', 'rank', 'sweeps', 'converged',
    'order', 's', 'R', 'epsilon', 'time',
]


def run_engine(engine, args):
    """run the growth strategy selected by ``args.method``."""
    direct = not args.indirect
    fast_pI = not args.no_fast_pI
    if args.method == 'rank':
        return engine.compute_rank(
            args.R_app, generate_converge_test(args), step=args.step,
            SVD_initial_guess=args.svd_guess, SVD_rank=args.svd_rank,
            max_als=args.max_als, fast_pI=fast_pI, calculate_epsilon=True, direct=direct,
        )
    if args.method == 'random':
        return engine.compute_rank_random(
            args.R_app, generate_converge_test(args), max_als=args.max_als,
            fast_pI=fast_pI, calculate_epsilon=True, direct=direct,
        )
    if args.method == 'error':
        return engine.compute_error(
            generate_converge_test(args), omega=args.omega, max_als=args.max_als,
            fast_pI=fast_pI, direct=direct, step=args.step, max_rank=args.R_app,
        )
    if args.method == 'geometric':
        return engine.compute_geometric(
            args.R_app, generate_converge_test(args), geometric_step=args.geometric_step,
            max_als=args.max_als, fast_pI=fast_pI, calculate_epsilon=True, direct=direct,
        )
    if args.method == 'pals':
        return engine.compute_PALS(
            generate_converge_test(args, args.panels), RankStep=args.rank_step,
            panels=args.panels, max_als=args.max_als, fast_pI=fast_pI,
            calculate_epsilon=True, direct=direct,
        )
    if args.method == 'tucker':
        return engine.compress_compute_tucker(
            args.tcut_svd, generate_converge_test(args), args.R_app, direct=direct,
            calculate_epsilon=True, max_als=args.max_als, fast_pI=fast_pI,
        )
    if args.method == 'rand':
        return engine.compress_compute_rand(
            args.compression_rank, generate_converge_test(args), oversampl=args.oversampl,
            powerit=args.powerit, rank=args.R_app, direct=direct,
            calculate_epsilon=True, max_als=args.max_als, fast_pI=fast_pI,
        )
    raise ValueError(f"[error] unknown method: {args.method}")


def cp_als(tenpy, args, csv_writer=None):
    """
    run the selected strategy ``args.num_runs`` times with different seeds.

    returns:
        dict with the best run's factors and error, and the final relative
        error and factor match score of every run
    """
    final_errors = []
    final_fms = []
    final_factors_list = []

    for run in range(args.num_runs):
        seed = args.seed * 1001 + run
        rng = np.random.default_rng(seed)
        data = cpals.generate_tensor(tenpy, args, rng)
        tensor = data['tensor']
        print(f"[trial {run+1:02d}/{args.num_runs:02d}] starting {args.method} build")

        engine = CP_ALS.from_tensor(
            tenpy, tensor, symmetries=data['symmetries'], rng=rng,
            regularized=args.regularized, regularization=args.regularization,
            verbose=args.verbose,
        )
        t0 = time.time()
        epsilon = run_engine(engine, args)
        elapsed = time.time() - t0

        factors = engine.get_factor_matrices()
        error = relative_error(tenpy, tensor, engine.reconstruct())
        fms = 0.0
        if data['factors_true'] is not None and engine.rank >= data['factors_true'][0].shape[1]:
            fms = factor_match_score(data['factors_true'], factors[:-1])

        tenpy.printf(
            f"[info] rank={engine.rank} | epsilon={epsilon:.3e} | rel error={error:.3e} | "
            f"fms={fms:.4f} | time={elapsed:.2f}s"
        )
        if csv_writer is not None:
            for entry in engine.history:
                csv_writer.writerow([
                    args.method, seed, run, entry['rank'], entry['sweeps'], entry['converged'],
                    args.order, args.s, args.R, entry['epsilon'], elapsed,
                ])

        final_errors.append(error)
        final_fms.append(fms)
        final_factors_list.append(factors)

        if args.save_tensor:
            folderpath = join(RESULTS_DIR, get_file_prefix(args), f'run{run}')
            save_decomposition_results(tensor, factors, tenpy, folderpath)

    best_run_index = int(np.argmin(final_errors))
    return {
        'best_error': final_errors[best_run_index],
        'best_factors': final_factors_list[best_run_index],
        'final_errors': final_errors,
        'final_fms': final_fms,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    arg_defs.add_general_arguments(parser)
    arg_defs.add_als_arguments(parser)
    arg_defs.add_pals_arguments(parser)
    arg_defs.add_compression_arguments(parser)
    args, _ = parser.parse_known_args()

    if args.tensor == 'df':
        raise ValueError("[error] use run_df_als.py for the df representation")

    Path(RESULTS_DIR).mkdir(parents=True, exist_ok=True)
    csv_path = join(RESULTS_DIR, get_file_prefix(args) + '.csv')
    is_new_log = not Path(csv_path).exists()

    tenpy = cpals.get_backend(args.tlib)

    print("[info] experiment configuration:")
    for arg in vars(args):
        print(f"  {arg}: {getattr(args, arg)}")

    with open(csv_path, 'a', newline='') as csv_file:
        csv_writer = csv.writer(csv_file, delimiter=',', quotechar='|', quoting=csv.QUOTE_MINIMAL)
        if is_new_log:
            csv_writer.writerow(CSV_HEADER)
        results = cp_als(tenpy, args, csv_writer)

    tenpy.printf(f"[summary] best relative error: {results['best_error']:.3e}")
    print(f"[done] results saved -> {csv_path}")
