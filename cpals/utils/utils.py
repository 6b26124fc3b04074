from pathlib import Path

import numpy as np


def save_decomposition_results(tensor, factors, tenpy, folderpath):
    """
    save the input tensor and the factor set as .npy files.

    the factor set is ``[A_0, ..., A_{N-1}, weights]``; files are named
    ``tensor.npy``, ``mat{i}.npy`` and ``weights.npy``.
    """
    folder = Path(folderpath)
    folder.mkdir(parents=True, exist_ok=True)
    if tensor is not None:
        np.save(folder / 'tensor.npy', tensor)
    for i, factor in enumerate(factors[:-1]):
        np.save(folder / f'mat{i}.npy', factor)
    np.save(folder / 'weights.npy', factors[-1])
    tenpy.printf(f"[done] saved decomposition -> {folder}")


def load_decomposition_results(folderpath):
    """factor set saved by ``save_decomposition_results``."""
    folder = Path(folderpath)
    factors = []
    i = 0
    while (folder / f'mat{i}.npy').exists():
        factors.append(np.load(folder / f'mat{i}.npy'))
        i += 1
    factors.append(np.load(folder / 'weights.npy'))
    return factors
