# Copyright 2024 BrainX Ecosystem Limited. All Rights Reserved.
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


from typing import Optional, Tuple

import numpy as np

from spgemm._coo import COO
from spgemm._dense import Dense
from spgemm._error import ContractViolationError
from spgemm._typing import Data, Index, Indptr, MatrixShape, as_shape

__all__ = [
    'CSR',
]


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


class CSR:
    """
    Compressed Sparse Row matrix.

    The operand format of every multiplication engine.  Row ``i`` stores its
    column indices in ``indices[indptr[i]:indptr[i + 1]]`` and the matching
    values in ``data[indptr[i]:indptr[i + 1]]``; an all-zero row has
    ``indptr[i] == indptr[i + 1]``.  Duplicate columns within a row are
    allowed and are summed by every consumer.

    A ``CSR`` is normally built once with :meth:`from_coo` and then shared,
    read-only, by any number of multiplications.  Its arrays are frozen and
    there is no mutation API.

    Parameters
    ----------
    data : array_like or Sequence
        Stored values, or a length-3 sequence ``(data, indices, indptr)``.
    indices : array_like, optional
        Column index of each stored value.
    indptr : array_like, optional
        Row pointer array of length ``rows + 1``.
    shape : tuple[int, int]
        Matrix shape ``(rows, cols)``.

    Attributes
    ----------
    data : numpy.ndarray
        ``float64`` stored values (alias :attr:`values`).
    indices : numpy.ndarray
        ``int64`` column indices (alias :attr:`col_idx`).
    indptr : numpy.ndarray
        ``int64`` row pointers (alias :attr:`row_ptr`).
    shape : tuple[int, int]
        Shape of the full matrix.

    Raises
    ------
    ContractViolationError
        If the arrays do not describe a valid CSR structure for ``shape``.

    See Also
    --------
    COO : The triplet format CSR matrices are built from.
    product_sparse : Sparse-output multiplication.

    Examples
    --------
    .. code-block:: python

        >>> import spgemm
        >>> coo = spgemm.COO([0, 0, 2], [0, 2, 1], [1., 2., 3.], shape=(3, 3))
        >>> csr = spgemm.CSR.from_coo(coo)
        >>> csr.indptr
        array([0, 2, 2, 3])
    """
    __module__ = 'spgemm'

    data: Data
    indices: Index
    indptr: Indptr
    shape: MatrixShape

    def __init__(self, data, indices=None, indptr=None, *, shape: MatrixShape):
        if indices is None and indptr is None:
            # Tuple syntax: CSR((data, indices, indptr), shape=...)
            args = data
        else:
            # Positional syntax: CSR(data, indices, indptr, shape=...)
            args = (data, indices, indptr)
        if len(args) != 3:
            raise ContractViolationError('Expected three arrays: data, indices, indptr.')

        self.shape = as_shape(shape)
        data, indices, indptr = args
        self.data = _frozen(np.array(data, dtype=np.float64).reshape(-1))
        self.indices = _frozen(np.array(indices, dtype=np.int64).reshape(-1))
        self.indptr = _frozen(np.array(indptr, dtype=np.int64).reshape(-1))
        self._validate()

    def _validate(self):
        rows, cols = self.shape
        if self.indptr.size != rows + 1:
            raise ContractViolationError(
                f'indptr must have length {rows + 1} for shape {self.shape}, got {self.indptr.size}'
            )
        if self.indptr[0] != 0:
            raise ContractViolationError(f'indptr must start at 0, got {self.indptr[0]}')
        if np.any(np.diff(self.indptr) < 0):
            raise ContractViolationError('indptr must be non-decreasing')
        if self.indices.size != self.data.size:
            raise ContractViolationError(
                f'indices and data must have equal length, got {self.indices.size} and {self.data.size}'
            )
        if self.indptr[-1] != self.data.size:
            raise ContractViolationError(
                f'indptr[-1] must equal the number of stored values ({self.data.size}), got {self.indptr[-1]}'
            )
        if self.indices.size and (self.indices.min() < 0 or self.indices.max() >= cols):
            bad = self.indices.min() if self.indices.min() < 0 else self.indices.max()
            raise ContractViolationError(f'column index {bad} out of range for shape {self.shape}')

    @classmethod
    def from_coo(cls, coo: COO) -> 'CSR':
        """
        Build a CSR matrix from a COO matrix.

        The row pointer is derived by counting entries per row.  Entries are
        expected in non-decreasing row order; unsorted input is stably sorted
        by row first, so entries of the same row keep their relative order
        and the resulting structure is always consistent.  Duplicate entries
        are kept.

        Parameters
        ----------
        coo : COO
            Source matrix.  It is not modified.

        Returns
        -------
        CSR
            Matrix with the same shape and the same stored entries.
        """
        if not isinstance(coo, COO):
            raise TypeError(f'Expected a COO matrix, got {type(coo).__name__}')
        coo = coo.sort_rows()
        counts = np.bincount(coo.row, minlength=coo.shape[0])
        indptr = np.zeros(coo.shape[0] + 1, dtype=np.int64)
        np.cumsum(counts, out=indptr[1:])
        return cls(coo.data, coo.col, indptr, shape=coo.shape)

    @classmethod
    def fromdense(cls, matrix) -> 'CSR':
        """Build a CSR matrix from the non-zero entries of a dense matrix."""
        return cls.from_coo(COO.fromdense(matrix))

    @property
    def row_ptr(self) -> Indptr:
        return self.indptr

    @property
    def col_idx(self) -> Index:
        return self.indices

    @property
    def values(self) -> Data:
        return self.data

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

    @property
    def dtype(self):
        return self.data.dtype

    def row(self, i: int) -> Tuple[Index, Data]:
        """Return the ``(indices, data)`` views of row ``i``."""
        if not 0 <= i < self.shape[0]:
            raise IndexError(f'row {i} out of range for shape {self.shape}')
        start, end = self.indptr[i], self.indptr[i + 1]
        return self.indices[start:end], self.data[start:end]

    def _row_ids(self) -> np.ndarray:
        return np.repeat(np.arange(self.shape[0], dtype=np.int64), np.diff(self.indptr))

    def todense(self) -> Dense:
        """Expand to a row-major :class:`~spgemm.Dense`, summing duplicates."""
        out = np.zeros(self.shape, dtype=np.float64)
        np.add.at(out, (self._row_ids(), self.indices), self.data)
        return Dense(out.reshape(-1), self.shape)

    def tocoo(self) -> COO:
        """Return the stored entries as a row-sorted :class:`~spgemm.COO`."""
        return COO(self._row_ids(), self.indices, self.data, shape=self.shape)

    def product(self, other: 'CSR') -> Dense:
        """Dense-output product ``self @ other``; see :func:`spgemm.product`."""
        from .spgemm import product
        return product(self, other)

    def product_sparse(self, other: 'CSR') -> 'CSR':
        """Sparse-output product ``self @ other``; see :func:`spgemm.product_sparse`."""
        from .spgemm import product_sparse
        return product_sparse(self, other)

    def product_sparse_par(self, other: 'CSR', num_workers: Optional[int] = None) -> 'CSR':
        """Parallel sparse-output product; see :func:`spgemm.product_sparse_par`."""
        from .spgemm import product_sparse_par
        return product_sparse_par(self, other, num_workers=num_workers)

    def product_sparse_to_coo_par(self, other: 'CSR', num_workers: Optional[int] = None) -> COO:
        """Parallel COO-output product; see :func:`spgemm.product_sparse_to_coo_par`."""
        from .spgemm import product_sparse_to_coo_par
        return product_sparse_to_coo_par(self, other, num_workers=num_workers)

    def __matmul__(self, other):
        if isinstance(other, CSR):
            return self.product_sparse(other)
        return NotImplemented

    def __repr__(self):
        return f'CSR(shape={self.shape}, nnz={self.nnz})'
