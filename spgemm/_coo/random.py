# Copyright 2025 BrainX Ecosystem Limited. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

# -*- coding: utf-8 -*-

from typing import Optional

import numpy as np

from spgemm._typing import MatrixShape, as_shape
from .main import COO

__all__ = [
    'random_coo',
]


def random_coo(
    shape: MatrixShape,
    density: float,
    seed: Optional[int] = None,
    integer: bool = False,
) -> COO:
    """Generate a random sparse matrix with distinct, row-sorted positions.

    Parameters
    ----------
    shape : tuple[int, int]
        Matrix shape ``(rows, cols)``.
    density : float
        Fraction of positions that hold a value, in ``[0, 1]``.  The number
        of entries is ``round(density * rows * cols)``.
    seed : int or None, optional
        Seed for :func:`numpy.random.default_rng`.
    integer : bool, optional
        If ``True``, values are integers in ``[1, 9]`` (exactly
        representable in ``float32``, which keeps GPU and CPU results
        bit-identical).  Otherwise values are uniform in ``[-1, 1)``.

    Returns
    -------
    COO
        Entries sorted by ``(row, col)``.

    Examples
    --------
    .. code-block:: python

        >>> import spgemm
        >>> coo = spgemm.random_coo((100, 50), density=0.1, seed=0)
        >>> coo.nnz
        500
    """
    shape = as_shape(shape)
    if not 0. <= density <= 1.:
        raise ValueError(f'density must be in [0, 1], got {density}')
    rng = np.random.default_rng(seed)
    size = shape[0] * shape[1]
    nnz = int(round(density * size))
    positions = np.sort(rng.choice(size, size=nnz, replace=False)) if nnz else np.zeros(0, np.int64)
    rows, cols = np.divmod(positions, max(shape[1], 1))
    if integer:
        values = rng.integers(1, 10, size=nnz).astype(np.float64)
    else:
        values = rng.uniform(-1., 1., size=nnz)
    return COO(rows, cols, values, shape=shape)
