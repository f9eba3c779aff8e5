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

import numpy as np

from spgemm._error import DimensionMismatchError
from spgemm._typing import MatrixShape
from .kernels import row_nnz_bound

__all__ = [
    'check_product_shapes',
    'predict_row_nnz',
    'predict_nnz',
]


def check_product_shapes(a_shape: MatrixShape, b_shape: MatrixShape) -> MatrixShape:
    """Validate that ``a @ b`` is defined and return the product's shape.

    Raises
    ------
    DimensionMismatchError
        If ``a_shape[1] != b_shape[0]``.
    """
    if a_shape[1] != b_shape[0]:
        raise DimensionMismatchError(f'cannot multiply {tuple(a_shape)} by {tuple(b_shape)}')
    return a_shape[0], b_shape[1]


def predict_row_nnz(a, b) -> np.ndarray:
    """
    Per-row upper bound on the non-zero count of ``a @ b``.

    Row ``i`` of the bound is the sum, over the stored columns ``k`` of row
    ``i`` of ``a``, of the length of row ``k`` of ``b``.  That is the number
    of candidate products Gustavson's algorithm emits for the row before
    entries with equal columns are accumulated, so it is never smaller
    than the row's true non-zero count.

    Parameters
    ----------
    a, b : CSR
        Operands with ``a.shape[1] == b.shape[0]``.

    Returns
    -------
    numpy.ndarray
        ``int64`` array of length ``a.shape[0]``.

    Raises
    ------
    DimensionMismatchError
        If the operands cannot be multiplied.
    """
    check_product_shapes(a.shape, b.shape)
    return row_nnz_bound(a.indptr, a.indices, b.indptr)


def predict_nnz(a, b) -> int:
    """
    Upper bound on the non-zero count of ``a @ b``.

    This is a symbolic dry run of the multiplication: it visits the same
    rows of ``b`` the product visits but only counts.  Overestimation wastes
    memory; it never underestimates.

    Examples
    --------
    .. code-block:: python

        >>> import numpy as np
        >>> import spgemm
        >>> a = spgemm.CSR.fromdense(np.diag([1., 2.]))
        >>> b = spgemm.CSR.fromdense(np.diag([3., 4.]))
        >>> spgemm.predict_nnz(a, b)
        2
    """
    return int(predict_row_nnz(a, b).sum())
