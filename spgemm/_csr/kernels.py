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

"""Numba kernels for Gustavson's row-wise sparse product.

All kernels take raw CSR arrays (``indptr``, ``indices``, ``data``) so they
can be shared by the serial engine, the thread-pool engine and the
``prange`` engine.  They release the GIL.
"""

import numba
import numpy as np

__all__ = [
    'row_nnz_bound',
    'spgemm_dense',
    'spgemm_rows',
    'spgemm_rows_parallel',
]


@numba.njit(nogil=True)
def row_nnz_bound(a_indptr, a_indices, b_indptr):
    m = a_indptr.shape[0] - 1
    bound = np.zeros(m, dtype=np.int64)
    for i in range(m):
        count = 0
        for p in range(a_indptr[i], a_indptr[i + 1]):
            k = a_indices[p]
            count += b_indptr[k + 1] - b_indptr[k]
        bound[i] = count
    return bound


@numba.njit(nogil=True)
def spgemm_dense(a_indptr, a_indices, a_data, b_indptr, b_indices, b_data, n_cols):
    m = a_indptr.shape[0] - 1
    out = np.zeros(m * n_cols, dtype=np.float64)
    for i in range(m):
        base = i * n_cols
        for p in range(a_indptr[i], a_indptr[i + 1]):
            k = a_indices[p]
            a_ik = a_data[p]
            for q in range(b_indptr[k], b_indptr[k + 1]):
                out[base + b_indices[q]] += a_ik * b_data[q]
    return out


@numba.njit(nogil=True)
def spgemm_rows(
    a_indptr, a_indices, a_data,
    b_indptr, b_indices, b_data,
    n_cols, row_start, row_end,
    row_nnz, out_indices, out_data, offset,
):
    """Multiply rows ``[row_start, row_end)`` with a sparse accumulator.

    Each finished row is flushed to ``out_indices``/``out_data`` sorted by
    column, starting at ``offset``; ``row_nnz[i - row_start]`` receives the
    row length.  Returns the position one past the last written entry.
    """
    accum = np.zeros(n_cols, dtype=np.float64)
    seen = np.zeros(n_cols, dtype=np.bool_)
    touched = np.empty(n_cols, dtype=np.int64)
    pos = offset
    for i in range(row_start, row_end):
        n_touched = 0
        for p in range(a_indptr[i], a_indptr[i + 1]):
            k = a_indices[p]
            a_ik = a_data[p]
            for q in range(b_indptr[k], b_indptr[k + 1]):
                j = b_indices[q]
                if not seen[j]:
                    seen[j] = True
                    touched[n_touched] = j
                    n_touched += 1
                accum[j] += a_ik * b_data[q]
        cols = np.sort(touched[:n_touched])
        for t in range(n_touched):
            j = cols[t]
            out_indices[pos] = j
            out_data[pos] = accum[j]
            pos += 1
            # reset only the touched slots
            accum[j] = 0.
            seen[j] = False
        row_nnz[i - row_start] = n_touched
    return pos


@numba.njit(nogil=True, parallel=True)
def spgemm_rows_parallel(
    a_indptr, a_indices, a_data,
    b_indptr, b_indices, b_data,
    n_cols, chunk_ptr, bound_ptr,
):
    """Run :func:`spgemm_rows` over contiguous row chunks in parallel.

    Chunk ``c`` covers rows ``[chunk_ptr[c], chunk_ptr[c + 1])`` and writes
    into its own region of a scratch buffer starting at
    ``bound_ptr[chunk_ptr[c]]``, where ``bound_ptr`` is the prefix sum of
    the per-row predicted bounds.  Regions never overlap.  After all chunks
    finish, the used part of every region is compacted in row order.
    """
    m = a_indptr.shape[0] - 1
    n_chunks = chunk_ptr.shape[0] - 1
    scratch_indices = np.empty(bound_ptr[m], dtype=np.int64)
    scratch_data = np.empty(bound_ptr[m], dtype=np.float64)
    row_nnz = np.zeros(m, dtype=np.int64)
    used = np.zeros(n_chunks, dtype=np.int64)
    for c in numba.prange(n_chunks):
        r0 = chunk_ptr[c]
        r1 = chunk_ptr[c + 1]
        start = bound_ptr[r0]
        end = spgemm_rows(
            a_indptr, a_indices, a_data,
            b_indptr, b_indices, b_data,
            n_cols, r0, r1,
            row_nnz[r0:r1], scratch_indices, scratch_data, start,
        )
        used[c] = end - start

    indptr = np.zeros(m + 1, dtype=np.int64)
    for i in range(m):
        indptr[i + 1] = indptr[i] + row_nnz[i]
    indices = np.empty(indptr[m], dtype=np.int64)
    data = np.empty(indptr[m], dtype=np.float64)
    for c in range(n_chunks):
        src = bound_ptr[chunk_ptr[c]]
        dst = indptr[chunk_ptr[c]]
        for t in range(used[c]):
            indices[dst + t] = scratch_indices[src + t]
            data[dst + t] = scratch_data[src + t]
    return indptr, indices, data
