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

"""Host-side view of the buffers shared with ``sparse_mul.wgsl``.

The kernel writes its result as ``Entry { row: u32, col: u32, value: f32 }``
records into one storage buffer and counts them in a separate ``atomic<u32>``
cell.  Everything in this module is the little-endian host mirror of those
layouts and of the operand and parameter buffers.
"""

import threading
from typing import Optional, Tuple

import numpy as np

from spgemm._error import DeviceFailureError, ResourceUnavailableError

__all__ = [
    'RECORD_DTYPE',
    'RECORD_SIZE',
    'COUNTER_SIZE',
    'PARAMS_SIZE',
    'U32_LIMIT',
    'check_record_layout',
    'encode_records',
    'decode_records',
    'encode_counter',
    'decode_counter',
    'pack_csr',
    'pack_params',
    'unpack_params',
    'BumpAllocator',
]

RECORD_DTYPE = np.dtype([('row', '<u4'), ('col', '<u4'), ('value', '<f4')])
RECORD_SIZE = 12
COUNTER_SIZE = 4
PARAMS_DTYPE = np.dtype([('rows', '<u4'), ('capacity', '<u4'), ('row_stride', '<u4'), ('_pad', '<u4')])
PARAMS_SIZE = 16
U32_LIMIT = 2 ** 32


def check_record_layout():
    """Verify that the host record dtype matches the kernel's 12-byte ``Entry``.

    Raises
    ------
    ResourceUnavailableError
        If the dtype is padded or reordered.
    """
    offsets = tuple(RECORD_DTYPE.fields[name][1] for name in ('row', 'col', 'value'))
    if RECORD_DTYPE.itemsize != RECORD_SIZE or offsets != (0, 4, 8):
        raise ResourceUnavailableError(
            f'Result record layout mismatch: host itemsize {RECORD_DTYPE.itemsize} '
            f'with offsets {offsets}, kernel expects {RECORD_SIZE} bytes at (0, 4, 8).'
        )
    if PARAMS_DTYPE.itemsize != PARAMS_SIZE:
        raise ResourceUnavailableError(
            f'Kernel parameter layout mismatch: {PARAMS_DTYPE.itemsize} != {PARAMS_SIZE} bytes.'
        )


def encode_records(rows, cols, values) -> bytes:
    records = np.empty(len(rows), dtype=RECORD_DTYPE)
    records['row'] = rows
    records['col'] = cols
    records['value'] = values
    return records.tobytes()


def decode_records(buffer, count: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Decode the first ``count`` result records from raw bytes.

    Returns
    -------
    rows, cols : numpy.ndarray
        ``int64`` indices.
    values : numpy.ndarray
        ``float64`` values, widened from the kernel's ``f32``.

    Raises
    ------
    DeviceFailureError
        If ``buffer`` holds fewer than ``count`` whole records.
    """
    raw = memoryview(buffer).cast('B')
    needed = count * RECORD_SIZE
    if count < 0 or raw.nbytes < needed:
        raise DeviceFailureError(
            f'Read back {raw.nbytes} bytes of result records, need {needed} for {count} records.'
        )
    records = np.frombuffer(raw[:needed], dtype=RECORD_DTYPE, count=count)
    return (
        records['row'].astype(np.int64),
        records['col'].astype(np.int64),
        records['value'].astype(np.float64),
    )


def encode_counter(value: int) -> bytes:
    return np.array([value], dtype='<u4').tobytes()


def decode_counter(buffer) -> int:
    raw = memoryview(buffer).cast('B')
    if raw.nbytes != COUNTER_SIZE:
        raise DeviceFailureError(f'Result counter has {raw.nbytes} bytes, expected {COUNTER_SIZE}.')
    return int(np.frombuffer(raw, dtype='<u4', count=1)[0])


def _padded(array: np.ndarray) -> np.ndarray:
    # Zero-sized bindings are invalid on the device.
    if array.size == 0:
        return np.zeros(1, dtype=array.dtype)
    return np.ascontiguousarray(array)


def pack_csr(csr, label: str = 'operand') -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Convert a :class:`~spgemm.CSR` to the kernel's ``u32``/``u32``/``f32`` arrays.

    Empty arrays are padded to one element.  Values are narrowed to
    ``float32``.

    Raises
    ------
    ResourceUnavailableError
        If a dimension or the number of stored values does not fit ``u32``.
    """
    if max(csr.shape[0] + 1, csr.shape[1], csr.nnz) >= U32_LIMIT:
        raise ResourceUnavailableError(
            f'{label} with shape {csr.shape} and {csr.nnz} stored values exceeds 32-bit device indices.'
        )
    return (
        _padded(csr.indptr.astype('<u4')),
        _padded(csr.indices.astype('<u4')),
        _padded(csr.data.astype('<f4')),
    )


def pack_params(rows: int, capacity: int, row_stride: int) -> bytes:
    params = np.zeros(1, dtype=PARAMS_DTYPE)
    params['rows'] = rows
    params['capacity'] = capacity
    params['row_stride'] = row_stride
    return params.tobytes()


def unpack_params(buffer) -> Tuple[int, int, int]:
    params = np.frombuffer(memoryview(buffer).cast('B')[:PARAMS_SIZE], dtype=PARAMS_DTYPE, count=1)[0]
    return int(params['rows']), int(params['capacity']), int(params['row_stride'])


class BumpAllocator:
    """
    Slot allocator for the kernel's append-only result buffer.

    Every invocation that emits an entry claims the next slot by atomically
    incrementing a shared cursor.  The cursor always advances, but an entry
    is only written when its slot is below ``capacity``; the final cursor
    value therefore tells the host how many entries the kernel *wanted* to
    write.  :meth:`resolve` turns that value into the number of valid
    records, or fails if any entry was dropped.

    Parameters
    ----------
    capacity : int
        Number of record slots in the result buffer.

    Examples
    --------
    .. code-block:: python

        >>> alloc = BumpAllocator(2)
        >>> alloc.claim(), alloc.claim(), alloc.claim()
        (0, 1, None)
        >>> alloc.resolve(alloc.cursor)  # doctest: +SKIP
        Traceback (most recent call last):
            ...
        spgemm.DeviceFailureError: ...
    """

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError(f'capacity must be non-negative, got {capacity}')
        self.capacity = int(capacity)
        self.cursor = 0
        self._lock = threading.Lock()

    def claim(self) -> Optional[int]:
        """Advance the cursor; return the claimed slot, or ``None`` past capacity."""
        with self._lock:
            slot = self.cursor
            self.cursor += 1
        return slot if slot < self.capacity else None

    def resolve(self, count: int, exact: bool = False) -> int:
        """
        Validate a final cursor value read back from the device.

        With ``exact=True`` the kernel is expected to fill every slot, so a
        count below ``capacity`` is also rejected.

        Raises
        ------
        DeviceFailureError
            If ``count`` exceeds ``capacity``: entries were dropped and the
            result would be truncated.  With ``exact=True``, also if
            ``count`` falls short of ``capacity``.
        """
        if count > self.capacity:
            raise DeviceFailureError(
                f'Kernel emitted {count} entries but the result buffer holds {self.capacity}; '
                f'refusing to return a truncated result.'
            )
        if exact and count < self.capacity:
            raise DeviceFailureError(
                f'Kernel emitted {count} of {self.capacity} expected entries; '
                f'refusing to return an incomplete result.'
            )
        return count
