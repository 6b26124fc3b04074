"""
command line arguments shared by the experiment scripts.
"""


def add_general_arguments(parser):
    parser.add_argument(
        '--tlib', default='numpy', metavar='string', choices=['numpy'],
        help='tensor library to use (default: numpy)'
    )
    parser.add_argument(
        '--tensor', default='random', metavar='string',
        choices=['random', 'randn', 'orthogonal', 'symmetric', 'df'],
        help='type of input tensor (default: random)'
    )
    parser.add_argument(
        '--order', type=int, default=3, metavar='int',
        help='order of the tensor (default: 3)'
    )
    parser.add_argument(
        '--s', type=int, default=20, metavar='int',
        help='extent of every mode (default: 20)'
    )
    parser.add_argument(
        '--R', type=int, default=5, metavar='int',
        help='rank of the generated tensor (default: 5)'
    )
    parser.add_argument(
        '--seed', type=int, default=1, metavar='int',
        help='random seed (default: 1)'
    )
    parser.add_argument(
        '--num-runs', type=int, default=1, metavar='int',
        help='number of runs with different seeds (default: 1)'
    )
    parser.add_argument(
        '--save-tensor', action='store_true',
        help='save the tensor and factor matrices of every run'
    )
    parser.add_argument(
        '--verbose', action='store_true',
        help='print progress of every rank'
    )


def add_als_arguments(parser):
    parser.add_argument(
        '--method', default='rank', metavar='string',
        choices=['rank', 'random', 'error', 'geometric', 'pals', 'tucker', 'rand'],
        help='growth strategy (default: rank)'
    )
    parser.add_argument(
        '--R-app', type=int, default=5, metavar='int',
        help='rank of the approximation (default: 5)'
    )
    parser.add_argument(
        '--step', type=int, default=1, metavar='int',
        help='rank increment of the build (default: 1)'
    )
    parser.add_argument(
        '--max-als', type=int, default=1000, metavar='int',
        help='sweep cap per rank (default: 1000)'
    )
    parser.add_argument(
        '--tol', type=float, default=1e-5, metavar='float',
        help='convergence tolerance (default: 1e-5)'
    )
    parser.add_argument(
        '--converge', default='fit', metavar='string', choices=['fit', 'norm'],
        help='convergence test (default: fit)'
    )
    parser.add_argument(
        '--omega', type=float, default=1e-2, metavar='float',
        help='target error of the error driven build (default: 1e-2)'
    )
    parser.add_argument(
        '--geometric-step', type=float, default=2.0, metavar='float',
        help='rank factor of the geometric build (default: 2)'
    )
    parser.add_argument(
        '--svd-guess', action='store_true',
        help='start from the leading eigenvectors of the mode gram matrices'
    )
    parser.add_argument(
        '--svd-rank', type=int, default=0, metavar='int',
        help='rank of the svd initial guess (default: 0)'
    )
    parser.add_argument(
        '--indirect', action='store_true',
        help='form the khatri-rao product instead of contracting directly'
    )
    parser.add_argument(
        '--no-fast-pI', action='store_true',
        help='skip the cholesky solve and always use the svd pseudo-inverse'
    )
    parser.add_argument(
        '--regularized', action='store_true',
        help='regularized als with adaptive damping'
    )
    parser.add_argument(
        '--regularization', type=float, default=1.0, metavar='float',
        help='initial damping of regularized als (default: 1.0)'
    )


def add_pals_arguments(parser):
    parser.add_argument(
        '--panels', type=int, default=4, metavar='int',
        help='number of panels (default: 4)'
    )
    parser.add_argument(
        '--rank-step', type=float, default=0.5, metavar='float',
        help='rank increment per panel as a fraction of the max extent (default: 0.5)'
    )


def add_compression_arguments(parser):
    parser.add_argument(
        '--tcut-svd', type=float, default=1e-3, metavar='float',
        help='relative truncation threshold of the hosvd (default: 1e-3)'
    )
    parser.add_argument(
        '--compression-rank', type=int, default=10, metavar='int',
        help='core extent of the randomized compression (default: 10)'
    )
    parser.add_argument(
        '--oversampl', type=int, default=10, metavar='int',
        help='oversampling of the randomized compression (default: 10)'
    )
    parser.add_argument(
        '--powerit', type=int, default=2, metavar='int',
        help='power iterations of the randomized compression (default: 2)'
    )


def add_df_arguments(parser):
    parser.add_argument(
        '--left-order', type=int, default=2, metavar='int',
        help='number of modes of the left tensor besides the connecting one (default: 2)'
    )
    parser.add_argument(
        '--right-order', type=int, default=1, metavar='int',
        help='number of modes of the right tensor besides the connecting one (default: 1)'
    )
    parser.add_argument(
        '--X', type=int, default=30, metavar='int',
        help='extent of the connecting mode (default: 30)'
    )


def get_file_prefix(args):
    return '-'.join(filter(None, [
        args.tensor,
        getattr(args, 'method', ''),
        'o' + str(args.order),
        's' + str(args.s),
        'R' + str(args.R),
        'Rapp' + str(getattr(args, 'R_app', args.R)),
        'seed' + str(args.seed),
    ]))
