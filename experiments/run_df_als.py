"""
cp-als of a tensor given as the contraction of two tensors.
the contracted tensor is only formed at the end to report the error.
"""

import argparse
import csv
import time
from pathlib import Path
from os.path import dirname, join

import numpy as np

import cpals
from cpals import CP_ALS, factor_match_score
from cpals.utils import arg_defs, generate_converge_test, get_file_prefix, relative_error

PARENT_DIR = dirname(__file__)
RESULTS_DIR = join(PARENT_DIR, 'results')

CSV_HEADER = ['seed', 'rank', 'sweeps', 'converged', 'X', 's', 'R', 'epsilon', 'time']


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    arg_defs.add_general_arguments(parser)
    arg_defs.add_als_arguments(parser)
    arg_defs.add_df_arguments(parser)
    args, _ = parser.parse_known_args()
    args.tensor = 'df'
    args.order = args.left_order + args.right_order

    Path(RESULTS_DIR).mkdir(parents=True, exist_ok=True)
    csv_path = join(RESULTS_DIR, get_file_prefix(args) + '.csv')
    is_new_log = not Path(csv_path).exists()

    tenpy = cpals.get_backend(args.tlib)

    print("[info] experiment configuration:")
    for arg in vars(args):
        print(f"  {arg}: {getattr(args, arg)}")

    rng = np.random.default_rng(args.seed)
    data = cpals.generate_tensor(tenpy, args, rng)

    engine = CP_ALS.from_df(
        tenpy, data['left'], data['right'], rng=rng,
        regularized=args.regularized, regularization=args.regularization,
        verbose=args.verbose,
    )
    t0 = time.time()
    epsilon = engine.compute_rank(
        args.R_app, generate_converge_test(args), step=args.step,
        SVD_initial_guess=args.svd_guess, SVD_rank=args.svd_rank,
        max_als=args.max_als, fast_pI=not args.no_fast_pI, calculate_epsilon=True,
    )
    elapsed = time.time() - t0

    tensor = engine.source.materialize()
    error = relative_error(tenpy, tensor, engine.reconstruct())
    factors = engine.get_factor_matrices()
    fms = 0.0
    if engine.rank >= args.R:
        fms = factor_match_score(data['factors_true'], factors[:-1])
    tenpy.printf(
        f"[info] rank={engine.rank} | epsilon={epsilon:.3e} | rel error={error:.3e} | "
        f"fms={fms:.4f} | time={elapsed:.2f}s"
    )

    with open(csv_path, 'a', newline='') as csv_file:
        csv_writer = csv.writer(csv_file, delimiter=',', quotechar='|', quoting=csv.QUOTE_MINIMAL)
        if is_new_log:
            csv_writer.writerow(CSV_HEADER)
        for entry in engine.history:
            csv_writer.writerow([
                args.seed, entry['rank'], entry['sweeps'], entry['converged'],
                args.X, args.s, args.R, entry['epsilon'], elapsed,
            ])

    print(f"[done] results saved -> {csv_path}")
