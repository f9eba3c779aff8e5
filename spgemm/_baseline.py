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

"""Dense-library products used as reference points for the sparse engines."""

import time
from typing import Tuple

import jax
import jax.numpy as jnp
import numpy as np

from spgemm._csr import check_product_shapes
from spgemm._dense import Dense

__all__ = [
    'dense_matmul',
    'BASELINE_BACKENDS',
]

BASELINE_BACKENDS = ('numpy', 'jax')


def _micros(seconds: float) -> int:
    return int(round(seconds * 1e6))


def _numpy_matmul(a: Dense, b: Dense) -> Tuple[Dense, int, int]:
    start_total = time.perf_counter()
    # dgemm operates on column-major operands.
    lhs = a.as_column_major().toarray()
    rhs = b.as_column_major().toarray()
    start = time.perf_counter()
    out = np.matmul(lhs, rhs)
    raw = time.perf_counter() - start
    result = Dense(out.reshape(-1, order='F'), out.shape, order='F').as_row_major()
    return result, _micros(raw), _micros(time.perf_counter() - start_total)


def _jax_matmul(a: Dense, b: Dense) -> Tuple[Dense, int, int]:
    start_total = time.perf_counter()
    device = jax.devices()[0]
    lhs = jax.device_put(jnp.asarray(a.toarray(), dtype=jnp.float32), device)
    rhs = jax.device_put(jnp.asarray(b.toarray(), dtype=jnp.float32), device)
    jax.block_until_ready((lhs, rhs))
    start = time.perf_counter()
    out = jax.block_until_ready(jnp.matmul(lhs, rhs))
    raw = time.perf_counter() - start
    result = Dense.fromarray(np.asarray(jax.device_get(out), dtype=np.float64))
    return result, _micros(raw), _micros(time.perf_counter() - start_total)


def dense_matmul(a: Dense, b: Dense, backend: str = 'numpy') -> Tuple[Dense, int, int]:
    """
    Multiply two dense matrices with a dense linear-algebra library.

    Parameters
    ----------
    a : Dense
        Left operand of shape ``(m, k)``.
    b : Dense
        Right operand of shape ``(k, n)``.
    backend : {'numpy', 'jax'}, optional
        ``'numpy'`` calls the host BLAS on column-major ``float64``
        operands.  ``'jax'`` transfers ``float32`` operands to the first
        JAX device (a GPU when one is configured) and runs ``jnp.matmul``
        there.

    Returns
    -------
    result : Dense
        Row-major ``(m, n)`` product.
    raw_us : int
        Microseconds spent in the multiplication call alone.
    total_us : int
        Microseconds including layout conversion and device transfers.

    Raises
    ------
    DimensionMismatchError
        If ``a.shape[1] != b.shape[0]``.
    ValueError
        If ``backend`` is unknown.
    """
    if backend not in BASELINE_BACKENDS:
        raise ValueError(f'Unknown backend {backend!r}, expected one of {BASELINE_BACKENDS}.')
    check_product_shapes(a.shape, b.shape)
    if backend == 'numpy':
        return _numpy_matmul(a, b)
    return _jax_matmul(a, b)
