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

from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple

import numba
import numpy as np

from spgemm._coo import COO
from spgemm._dense import Dense
from spgemm.config import get_num_workers
from .kernels import spgemm_dense, spgemm_rows, spgemm_rows_parallel
from .main import CSR
from .predict import check_product_shapes, predict_row_nnz

__all__ = [
    'product',
    'product_sparse',
    'product_sparse_par',
    'product_sparse_to_coo_par',
]


def _check_operands(a, b):
    if not isinstance(a, CSR) or not isinstance(b, CSR):
        raise TypeError(
            f'Both operands must be CSR matrices, got {type(a).__name__} and {type(b).__name__}'
        )
    return check_product_shapes(a.shape, b.shape)


def _resolve_workers(num_workers: Optional[int]) -> int:
    if num_workers is None:
        return get_num_workers()
    if isinstance(num_workers, bool) or not isinstance(num_workers, int) or num_workers <= 0:
        raise ValueError(f'The number of workers must be a positive integer, got {num_workers!r}.')
    return num_workers


def _row_chunks(n_rows: int, num_workers: int) -> np.ndarray:
    # Static contiguous partition: chunk c covers rows [ptr[c], ptr[c + 1]).
    n_chunks = max(1, min(num_workers, n_rows))
    return np.linspace(0, n_rows, n_chunks + 1).round().astype(np.int64)


def product(a: CSR, b: CSR) -> Dense:
    """
    Dense-output sparse product ``a @ b``.

    Gustavson's algorithm: for each non-zero ``a[i, k]``, row ``k`` of ``b``
    is scaled by ``a[i, k]`` and added into row ``i`` of a zero-initialized
    ``m x n`` buffer.

    Parameters
    ----------
    a : CSR
        Left operand of shape ``(m, k)``.
    b : CSR
        Right operand of shape ``(k, n)``.

    Returns
    -------
    Dense
        Row-major ``(m, n)`` result.

    Raises
    ------
    DimensionMismatchError
        If ``a.shape[1] != b.shape[0]``.  Checked before any work is done.

    Examples
    --------
    .. code-block:: python

        >>> import numpy as np
        >>> import spgemm
        >>> a = spgemm.CSR.fromdense([[1., 2., 3.]])
        >>> b = spgemm.CSR.fromdense(np.ones((3, 1)))
        >>> spgemm.product(a, b).toarray()
        array([[6.]])
    """
    m, n = _check_operands(a, b)
    out = spgemm_dense(a.indptr, a.indices, a.data, b.indptr, b.indices, b.data, n)
    return Dense(out, (m, n))


def product_sparse(a: CSR, b: CSR) -> CSR:
    """
    Sparse-output sparse product ``a @ b``.

    Each output row is accumulated in a sparse accumulator (a dense
    scratch row plus the list of columns touched) and flushed sorted by
    column.  The output arrays are sized from :func:`~spgemm.predict_nnz`
    and trimmed to the true size afterwards.

    Entries whose accumulated value cancels to zero are kept.

    Parameters
    ----------
    a : CSR
        Left operand of shape ``(m, k)``.
    b : CSR
        Right operand of shape ``(k, n)``.

    Returns
    -------
    CSR
        ``(m, n)`` result with column-sorted rows.

    Raises
    ------
    DimensionMismatchError
        If ``a.shape[1] != b.shape[0]``.
    """
    m, n = _check_operands(a, b)
    capacity = int(predict_row_nnz(a, b).sum())
    out_indices = np.empty(capacity, dtype=np.int64)
    out_data = np.empty(capacity, dtype=np.float64)
    row_nnz = np.zeros(m, dtype=np.int64)
    end = spgemm_rows(
        a.indptr, a.indices, a.data,
        b.indptr, b.indices, b.data,
        n, 0, m,
        row_nnz, out_indices, out_data, 0,
    )
    indptr = np.zeros(m + 1, dtype=np.int64)
    np.cumsum(row_nnz, out=indptr[1:])
    return CSR(out_data[:end], out_indices[:end], indptr, shape=(m, n))


def product_sparse_par(a: CSR, b: CSR, num_workers: Optional[int] = None) -> CSR:
    """
    Row-parallel sparse-output product ``a @ b`` on Numba threads.

    Rows of ``a`` are split into at most ``num_workers`` contiguous chunks
    that run concurrently under ``numba.prange``.  Each chunk owns a
    disjoint region of a scratch buffer sized by the per-row predicted
    bounds, so workers never share output.  Once every chunk has finished
    the regions are compacted in row order.  The result is identical to
    :func:`product_sparse`.

    Parameters
    ----------
    a : CSR
        Left operand of shape ``(m, k)``.
    b : CSR
        Right operand of shape ``(k, n)``.
    num_workers : int, optional
        Worker count.  Defaults to :func:`spgemm.config.get_num_workers`,
        capped at ``numba.config.NUMBA_NUM_THREADS``.

    Returns
    -------
    CSR
        ``(m, n)`` result with column-sorted rows.

    Raises
    ------
    DimensionMismatchError
        If ``a.shape[1] != b.shape[0]``.
    """
    m, n = _check_operands(a, b)
    workers = _resolve_workers(num_workers)
    chunk_ptr = _row_chunks(m, workers)
    bound_ptr = np.zeros(m + 1, dtype=np.int64)
    np.cumsum(predict_row_nnz(a, b), out=bound_ptr[1:])

    previous = numba.get_num_threads()
    numba.set_num_threads(min(workers, numba.config.NUMBA_NUM_THREADS))
    try:
        indptr, indices, data = spgemm_rows_parallel(
            a.indptr, a.indices, a.data,
            b.indptr, b.indices, b.data,
            n, chunk_ptr, bound_ptr,
        )
    finally:
        numba.set_num_threads(previous)
    return CSR(data, indices, indptr, shape=(m, n))


def _coo_chunk(a: CSR, b: CSR, n: int, row_start: int, row_end: int, bound: int) -> Tuple[np.ndarray, ...]:
    out_indices = np.empty(bound, dtype=np.int64)
    out_data = np.empty(bound, dtype=np.float64)
    row_nnz = np.zeros(row_end - row_start, dtype=np.int64)
    end = spgemm_rows(
        a.indptr, a.indices, a.data,
        b.indptr, b.indices, b.data,
        n, row_start, row_end,
        row_nnz, out_indices, out_data, 0,
    )
    rows = np.repeat(np.arange(row_start, row_end, dtype=np.int64), row_nnz)
    return rows, out_indices[:end], out_data[:end]


def product_sparse_to_coo_par(a: CSR, b: CSR, num_workers: Optional[int] = None) -> COO:
    """
    Row-parallel sparse product ``a @ b`` returning triplets.

    Rows of ``a`` are split into contiguous chunks and handed to a
    fixed-size :class:`~concurrent.futures.ThreadPoolExecutor`.  The row
    kernel releases the GIL, so chunks run concurrently.  Each worker
    returns its own partial triplet arrays and the partials are
    concatenated in chunk order once every worker has completed, so the
    result is row-sorted and column-sorted within each row.

    Parameters
    ----------
    a : CSR
        Left operand of shape ``(m, k)``.
    b : CSR
        Right operand of shape ``(k, n)``.
    num_workers : int, optional
        Pool size.  Defaults to :func:`spgemm.config.get_num_workers`.

    Returns
    -------
    COO
        ``(m, n)`` result.

    Raises
    ------
    DimensionMismatchError
        If ``a.shape[1] != b.shape[0]``.
    """
    m, n = _check_operands(a, b)
    workers = _resolve_workers(num_workers)
    chunk_ptr = _row_chunks(m, workers)
    bound_ptr = np.zeros(m + 1, dtype=np.int64)
    np.cumsum(predict_row_nnz(a, b), out=bound_ptr[1:])

    starts = chunk_ptr[:-1].tolist()
    ends = chunk_ptr[1:].tolist()
    bounds = [int(bound_ptr[e] - bound_ptr[s]) for s, e in zip(starts, ends)]
    with ThreadPoolExecutor(max_workers=len(starts)) as pool:
        # map() yields results in submission order, which is row order.
        partials = list(pool.map(lambda args: _coo_chunk(a, b, n, *args), zip(starts, ends, bounds)))

    if not partials:
        return COO.empty((m, n))
    rows, cols, data = (np.concatenate(part) for part in zip(*partials))
    return COO(rows, cols, data, shape=(m, n))
