import numpy as np


class RALSHelper():
    """
    step size bookkeeping for regularized als.

    keeps the previous iterate of every factor matrix; calling the helper
    with a freshly updated factor returns the relative step
    ``s = ||A_n - A_n_prev||_F / ||A_n||_F`` and stores ``A_n`` for the next
    sweep.

    args:
        prev: initial (normalized) factor matrices
    """

    def __init__(self, prev):
        self.prev = [np.array(A, copy=True) for A in prev]

    def __call__(self, mode, An):
        change = An - self.prev[mode]
        denom = np.sqrt(np.sum(An * An))
        s = np.sqrt(np.sum(change * change)) / denom if denom > 0 else 0.0
        self.prev[mode] = np.array(An, copy=True)
        return s
