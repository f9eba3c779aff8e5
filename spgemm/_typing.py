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

from typing import Sequence, Tuple, Union

import numpy as np

__all__ = [
    'MatrixShape',
    'Index',
    'Indptr',
    'Data',
    'ArrayLike',
    'as_shape',
]

MatrixShape = Tuple[int, int]
Index = np.ndarray
Indptr = np.ndarray
Data = np.ndarray
ArrayLike = Union[np.ndarray, Sequence]


def as_shape(shape) -> MatrixShape:
    """Normalize a ``(rows, cols)`` pair to a tuple of non-negative Python ints."""
    from ._error import ContractViolationError
    try:
        rows, cols = shape
        rows, cols = int(rows), int(cols)
    except (TypeError, ValueError) as e:
        raise ContractViolationError(f'shape must be a (rows, cols) pair, got {shape!r}') from e
    if rows < 0 or cols < 0:
        raise ContractViolationError(f'shape must be non-negative, got {shape!r}')
    return rows, cols
