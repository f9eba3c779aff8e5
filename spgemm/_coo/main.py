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

from typing import Iterable, Iterator, Tuple

import numpy as np

from spgemm._dense import Dense
from spgemm._error import ContractViolationError
from spgemm._typing import Data, Index, MatrixShape, as_shape

__all__ = [
    'COO',
]


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


def _as_index_array(name: str, values) -> np.ndarray:
    array = np.asarray(values)
    if array.ndim != 1:
        raise ContractViolationError(f'{name} must be one-dimensional, got shape {array.shape}')
    if array.size and not np.issubdtype(array.dtype, np.integer):
        raise ContractViolationError(f'{name} must hold integers, got dtype {array.dtype}')
    return np.array(array, dtype=np.int64)


def _check_range(name: str, index: np.ndarray, bound: int, shape: MatrixShape):
    if index.size == 0:
        return
    low = int(index.min())
    high = int(index.max())
    if low < 0:
        raise ContractViolationError(f'{name} index {low} out of range for shape {shape}')
    if high >= bound:
        raise ContractViolationError(f'{name} index {high} out of range for shape {shape}')


class COO:
    """
    Coordinate-list (triplet) sparse matrix.

    ``COO`` is the exchange format of spgemm: parsers and generators
    produce it, :meth:`~spgemm.CSR.from_coo` consumes it, and the GPU
    pipeline returns its result in it.  Entries may appear in any order and
    duplicate ``(row, col)`` pairs are kept as separate entries; every
    consumer (:meth:`todense`, the multiplication engines) sums them.

    The index and value arrays are frozen after construction.

    Parameters
    ----------
    row : array_like of int
        Zero-based row index of each entry.
    col : array_like of int
        Zero-based column index of each entry.
    data : array_like of float
        Value of each entry.
    shape : tuple[int, int]
        Matrix shape ``(rows, cols)``.

    Raises
    ------
    ContractViolationError
        If the arrays have different lengths, are not integer/one-dimensional,
        or hold an index outside ``shape``.

    Examples
    --------
    .. code-block:: python

        >>> import spgemm
        >>> coo = spgemm.COO([0, 1, 1], [0, 0, 0], [1., 2., 3.], shape=(2, 2))
        >>> coo.todense().toarray()
        array([[1., 0.],
               [5., 0.]])
    """
    __module__ = 'spgemm'

    row: Index
    col: Index
    data: Data
    shape: MatrixShape

    def __init__(self, row, col, data, *, shape: MatrixShape):
        shape = as_shape(shape)
        row = _as_index_array('row', row)
        col = _as_index_array('col', col)
        data = np.array(data, dtype=np.float64).reshape(-1)
        if not (row.size == col.size == data.size):
            raise ContractViolationError(
                f'row, col and data must have equal length, got {row.size}, {col.size} and {data.size}'
            )
        _check_range('row', row, shape[0], shape)
        _check_range('column', col, shape[1], shape)
        self.row = _frozen(row)
        self.col = _frozen(col)
        self.data = _frozen(data)
        self.shape = shape

    @classmethod
    def from_triplets(cls, triplets: Iterable[Tuple[int, int, float]], shape: MatrixShape) -> 'COO':
        """Build a ``COO`` from an iterable of ``(row, col, value)`` tuples."""
        triplets = list(triplets)
        if not triplets:
            return cls.empty(shape)
        rows, cols, values = zip(*triplets)
        return cls(rows, cols, values, shape=shape)

    @classmethod
    def empty(cls, shape: MatrixShape) -> 'COO':
        """Return a ``COO`` with no stored entries."""
        return cls(np.zeros(0, np.int64), np.zeros(0, np.int64), np.zeros(0), shape=shape)

    @classmethod
    def fromdense(cls, matrix) -> 'COO':
        """Collect the non-zero entries of a dense matrix in row-major order."""
        if not isinstance(matrix, Dense):
            matrix = Dense.fromarray(matrix)
        return matrix.tocoo()

    @property
    def nnz(self) -> int:
        """Number of stored entries, duplicates included."""
        return int(self.data.size)

    @property
    def nrows(self) -> int:
        return self.shape[0]

    @property
    def ncols(self) -> int:
        return self.shape[1]

    def __len__(self) -> int:
        return self.nnz

    def triplets(self) -> Iterator[Tuple[int, int, float]]:
        """Iterate over the stored entries as ``(row, col, value)`` tuples."""
        for i, j, x in zip(self.row.tolist(), self.col.tolist(), self.data.tolist()):
            yield i, j, x

    @property
    def is_row_sorted(self) -> bool:
        """``True`` when row indices are non-decreasing."""
        return bool(self.row.size < 2 or np.all(self.row[1:] >= self.row[:-1]))

    def sort_rows(self) -> 'COO':
        """
        Return a copy ordered by row index.

        The sort is stable, so entries of the same row keep their relative
        order.  Returns ``self`` when the entries are already row-sorted.
        """
        if self.is_row_sorted:
            return self
        order = np.argsort(self.row, kind='stable')
        return COO(self.row[order], self.col[order], self.data[order], shape=self.shape)

    def sum_duplicates(self) -> 'COO':
        """Return a copy sorted by ``(row, col)`` with duplicate entries summed."""
        if self.nnz == 0:
            return self
        order = np.lexsort((self.col, self.row))
        row, col, data = self.row[order], self.col[order], self.data[order]
        first = np.ones(row.size, dtype=bool)
        first[1:] = (row[1:] != row[:-1]) | (col[1:] != col[:-1])
        starts = np.flatnonzero(first)
        return COO(row[starts], col[starts], np.add.reduceat(data, starts), shape=self.shape)

    def todense(self) -> Dense:
        """Expand to a row-major :class:`~spgemm.Dense`, summing duplicates."""
        out = np.zeros(self.shape, dtype=np.float64)
        np.add.at(out, (self.row, self.col), self.data)
        return Dense(out.reshape(-1), self.shape)

    def tocsr(self):
        """Convert to :class:`~spgemm.CSR` (see :meth:`spgemm.CSR.from_coo`)."""
        from spgemm._csr import CSR
        return CSR.from_coo(self)

    def __repr__(self):
        return f'COO(shape={self.shape}, nnz={self.nnz})'
