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

import numpy as np
import pytest

import spgemm
from spgemm._gpu.layout import (
    RECORD_DTYPE,
    RECORD_SIZE,
    BumpAllocator,
    check_record_layout,
    decode_counter,
    decode_records,
    encode_counter,
    encode_records,
    pack_csr,
    pack_params,
    unpack_params,
)


class TestRecordLayout:
    def test_record_is_twelve_unpadded_bytes(self):
        assert RECORD_DTYPE.itemsize == RECORD_SIZE == 12
        check_record_layout()

    def test_record_bytes_are_little_endian(self):
        raw = encode_records([1], [2], [1.5])
        assert raw[:4] == b'\x01\x00\x00\x00'
        assert raw[4:8] == b'\x02\x00\x00\x00'
        assert np.frombuffer(raw[8:], '<f4')[0] == 1.5

    def test_decode_first_count_records(self):
        raw = encode_records([0, 3, 7], [1, 2, 0], [1., -2., 0.25])
        rows, cols, values = decode_records(raw, 2)
        np.testing.assert_array_equal(rows, [0, 3])
        np.testing.assert_array_equal(cols, [1, 2])
        np.testing.assert_array_equal(values, [1., -2.])
        assert rows.dtype == np.int64
        assert values.dtype == np.float64

    def test_decode_short_buffer(self):
        raw = encode_records([0], [0], [1.])
        with pytest.raises(spgemm.DeviceFailureError):
            decode_records(raw, 2)

    def test_counter(self):
        assert decode_counter(encode_counter(42)) == 42
        with pytest.raises(spgemm.DeviceFailureError):
            decode_counter(b'\x00' * 8)

    def test_params(self):
        raw = pack_params(5, 17, 64)
        assert len(raw) == 16
        assert unpack_params(raw) == (5, 17, 64)


class TestPackCSR:
    def test_empty_arrays_are_padded(self):
        csr = spgemm.CSR.from_coo(spgemm.COO.empty((3, 3)))
        row_ptr, col_idx, values = pack_csr(csr)
        np.testing.assert_array_equal(row_ptr, [0, 0, 0, 0])
        assert col_idx.size == 1 and values.size == 1
        assert row_ptr.dtype == np.dtype('<u4')
        assert values.dtype == np.dtype('<f4')

    def test_values_are_narrowed(self):
        csr = spgemm.CSR.fromdense([[0.1, 0.], [0., 2.]])
        _, col_idx, values = pack_csr(csr)
        np.testing.assert_array_equal(col_idx, [0, 1])
        np.testing.assert_array_equal(values, np.array([0.1, 2.], dtype=np.float32))


class TestBumpAllocator:
    def test_claims_are_sequential(self):
        alloc = BumpAllocator(2)
        assert [alloc.claim() for _ in range(3)] == [0, 1, None]
        assert alloc.cursor == 3

    def test_resolve(self):
        alloc = BumpAllocator(4)
        assert alloc.resolve(4) == 4
        assert alloc.resolve(0) == 0
        with pytest.raises(spgemm.DeviceFailureError, match='truncated'):
            alloc.resolve(5)

    def test_resolve_exact(self):
        alloc = BumpAllocator(4)
        assert alloc.resolve(4, exact=True) == 4
        with pytest.raises(spgemm.DeviceFailureError, match='incomplete'):
            alloc.resolve(3, exact=True)
        with pytest.raises(spgemm.DeviceFailureError, match='truncated'):
            alloc.resolve(5, exact=True)
        assert BumpAllocator(0).resolve(0, exact=True) == 0

    def test_negative_capacity(self):
        with pytest.raises(ValueError):
            BumpAllocator(-1)

    def test_concurrent_claims_are_unique(self):
        alloc = BumpAllocator(1000)
        with ThreadPoolExecutor(max_workers=8) as pool:
            slots = list(pool.map(lambda _: alloc.claim(), range(1000)))
        assert sorted(slots) == list(range(1000))
        assert alloc.resolve(alloc.cursor) == 1000
