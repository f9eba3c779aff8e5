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

"""MatrixMarket files, read and written through :mod:`scipy.io`."""

import io
import os
from typing import Union

import numpy as np
from scipy.io import mmread, mmwrite
from scipy.sparse import coo_matrix, issparse

from spgemm._coo import COO
from spgemm._csr import CSR
from spgemm._dense import Dense
from spgemm._error import ContractViolationError, MalformedInputError

__all__ = [
    'read_mtx',
    'write_mtx',
]

_BANNER = b'%%matrixmarket'
_DEFAULT_BANNER = b'%%MatrixMarket matrix coordinate real general\n'
_COMPRESSED = ('.gz', '.bz2')


def _source(path: str):
    # Files without a banner are read as ``real general`` coordinate data.
    if path.endswith(_COMPRESSED):
        return path
    with open(path, 'rb') as f:
        first = f.readline()
        if first.lstrip().lower().startswith(_BANNER):
            return path
        return io.BytesIO(_DEFAULT_BANNER + first + f.read())


def read_mtx(path: Union[str, os.PathLike], sort: bool = True) -> COO:
    """
    Read a MatrixMarket file.

    The file is parsed by :func:`scipy.io.mmread`.  ``pattern`` entries get
    the value ``1``, ``symmetric`` and ``skew-symmetric`` matrices are
    expanded to their general form, and ``array`` files keep their non-zero
    entries.  A file without the ``%%MatrixMarket`` banner is read as
    ``coordinate real general``: comment lines, then ``rows cols nnz``,
    then one ``row col value`` line per entry with 1-based indices.

    Parameters
    ----------
    path : str or os.PathLike
        File to read.  ``.gz`` and ``.bz2`` files are decompressed.
    sort : bool, optional
        Stably sort the entries by row.  Default ``True``.

    Returns
    -------
    COO
        The stored entries, zero-based, duplicates kept.

    Raises
    ------
    MalformedInputError
        If the file is not valid MatrixMarket data, holds an index outside
        the declared shape, or holds complex values.  The message names the
        file.
    OSError
        If the file cannot be opened.
    """
    path = os.fspath(path)
    try:
        mat = mmread(_source(path))
    except (ValueError, RuntimeError) as e:
        raise MalformedInputError(f'{path}: {e}') from e
    mat = mat.tocoo() if issparse(mat) else coo_matrix(mat)
    if np.iscomplexobj(mat.data):
        raise MalformedInputError(f'{path}: complex values are not supported')
    try:
        coo = COO(mat.row, mat.col, mat.data, shape=mat.shape)
    except ContractViolationError as e:
        raise MalformedInputError(f'{path}: {e}') from e
    return coo.sort_rows() if sort else coo


def write_mtx(path: Union[str, os.PathLike], matrix: Union[COO, CSR, Dense], comment: str = ''):
    """
    Write a matrix as a ``coordinate real general`` MatrixMarket file.

    Values are written with the shortest representation that reads back
    exactly.  A :class:`~spgemm.Dense` matrix is written as its non-zero
    entries; stored duplicates of a ``COO`` are written as they are.
    """
    if isinstance(matrix, (CSR, Dense)):
        matrix = matrix.tocoo()
    elif not isinstance(matrix, COO):
        raise TypeError(f'Expected a COO, CSR or Dense matrix, got {type(matrix).__name__}')
    mat = coo_matrix((matrix.data, (matrix.row, matrix.col)), shape=matrix.shape)
    # A stream target keeps mmwrite from appending '.mtx' to the name.
    with open(os.fspath(path), 'wb') as f:
        mmwrite(f, mat, comment=comment, field='real', symmetry='general')
