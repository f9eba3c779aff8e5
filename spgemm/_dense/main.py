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

from typing import Tuple

import numpy as np

from spgemm._error import ContractViolationError
from spgemm._typing import MatrixShape, as_shape

__all__ = [
    'Dense',
]


class Dense:
    """
    Dense matrix stored as a flat ``float64`` array.

    ``Dense`` is the output format of :func:`~spgemm.product` and the
    reference format that every other representation is compared against.
    The values are stored row-major (``order='C'``) unless the matrix was
    explicitly converted with :meth:`as_column_major` for a native library
    call that expects Fortran layout.

    Unlike :class:`~spgemm.COO` and :class:`~spgemm.CSR`, a ``Dense`` matrix
    is mutable through :meth:`set` and item assignment.

    Parameters
    ----------
    data : array_like
        Flat (or 2-D) array of ``rows * cols`` values laid out in ``order``.
    shape : tuple[int, int]
        Matrix shape ``(rows, cols)``.
    order : {'C', 'F'}, optional
        Memory layout of ``data``.  Default ``'C'`` (row-major).

    Examples
    --------
    .. code-block:: python

        >>> import spgemm
        >>> d = spgemm.Dense.zeros((2, 2))
        >>> d.set(0, 1, 3.0)
        >>> d.get(0, 1)
        3.0
    """
    __module__ = 'spgemm'

    def __init__(self, data, shape: MatrixShape, order: str = 'C'):
        shape = as_shape(shape)
        if order not in ('C', 'F'):
            raise ContractViolationError(f"order must be 'C' or 'F', got {order!r}")
        data = np.array(data, dtype=np.float64).reshape(-1)
        if data.size != shape[0] * shape[1]:
            raise ContractViolationError(
                f'Dense data has {data.size} values, expected {shape[0] * shape[1]} for shape {shape}'
            )
        self.data = data
        self.shape = shape
        self.order = order

    @classmethod
    def zeros(cls, shape: MatrixShape) -> 'Dense':
        """Return a zero-filled row-major matrix of the given shape."""
        shape = as_shape(shape)
        return cls(np.zeros(shape[0] * shape[1], dtype=np.float64), shape)

    @classmethod
    def fromarray(cls, array) -> 'Dense':
        """Build a row-major ``Dense`` from a 2-D array-like."""
        array = np.asarray(array, dtype=np.float64)
        if array.ndim != 2:
            raise ContractViolationError(f'expected a 2-D array, got {array.ndim} dimensions')
        return cls(np.ascontiguousarray(array).reshape(-1), array.shape)

    @property
    def nrows(self) -> int:
        return self.shape[0]

    @property
    def ncols(self) -> int:
        return self.shape[1]

    def _offset(self, i: int, j: int) -> int:
        rows, cols = self.shape
        if not (0 <= i < rows and 0 <= j < cols):
            raise IndexError(f'index ({i}, {j}) out of range for shape {self.shape}')
        if self.order == 'C':
            return i * cols + j
        return j * rows + i

    def get(self, i: int, j: int) -> float:
        """Return the value at row ``i``, column ``j``."""
        return float(self.data[self._offset(i, j)])

    def set(self, i: int, j: int, value: float):
        """Overwrite the value at row ``i``, column ``j``."""
        self.data[self._offset(i, j)] = value

    def __getitem__(self, index: Tuple[int, int]) -> float:
        i, j = index
        return self.get(i, j)

    def __setitem__(self, index: Tuple[int, int], value: float):
        i, j = index
        self.set(i, j, value)

    def toarray(self) -> np.ndarray:
        """Return a 2-D view of the values in the matrix's own layout."""
        return self.data.reshape(self.shape, order=self.order)

    def __array__(self, dtype=None, copy=None):
        out = self.toarray()
        if dtype is not None:
            out = out.astype(dtype)
        return out

    def as_column_major(self) -> 'Dense':
        """Return a copy whose flat data is column-major (BLAS layout)."""
        if self.order == 'F':
            return Dense(self.data.copy(), self.shape, order='F')
        return Dense(self.toarray().reshape(-1, order='F'), self.shape, order='F')

    def as_row_major(self) -> 'Dense':
        """Return a copy whose flat data is row-major."""
        if self.order == 'C':
            return Dense(self.data.copy(), self.shape)
        return Dense(self.toarray().reshape(-1, order='C'), self.shape)

    def tocoo(self):
        """Re-triplet the non-zero entries in row-major order."""
        from spgemm._coo import COO
        array = self.toarray()
        rows, cols = np.nonzero(array)
        return COO(rows, cols, array[rows, cols], shape=self.shape)

    def tocsr(self):
        """Convert to :class:`~spgemm.CSR` through :meth:`tocoo`."""
        from spgemm._csr import CSR
        return CSR.from_coo(self.tocoo())

    def allclose(self, other, atol: float = 1e-7, rtol: float = 0.) -> bool:
        """
        Element-wise comparison within an absolute tolerance.

        Parameters
        ----------
        other : Dense or array_like
            Matrix to compare against.  Shapes must match exactly.
        atol : float, optional
            Absolute tolerance.  Default ``1e-7``.
        rtol : float, optional
            Relative tolerance.  Default ``0``.
        """
        other = other.toarray() if isinstance(other, Dense) else np.asarray(other, dtype=np.float64)
        if other.shape != self.shape:
            return False
        return bool(np.allclose(self.toarray(), other, atol=atol, rtol=rtol))

    def __repr__(self):
        return f'Dense(shape={self.shape}, order={self.order!r})'
