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

import numpy as np
import pytest

import spgemm


class TestDense:
    def test_zeros(self):
        d = spgemm.Dense.zeros((2, 3))
        assert d.shape == (2, 3)
        assert d.data.size == 6
        assert np.all(d.toarray() == 0.)

    def test_get_set(self):
        d = spgemm.Dense.zeros((2, 2))
        d.set(0, 1, 3.)
        d[1, 0] = -2.
        assert d.get(0, 1) == 3.
        assert d[1, 0] == -2.
        np.testing.assert_array_equal(d.data, [0., 3., -2., 0.])

    def test_out_of_range(self):
        d = spgemm.Dense.zeros((2, 2))
        with pytest.raises(IndexError):
            d.get(2, 0)
        with pytest.raises(IndexError):
            d.set(0, -1, 1.)

    def test_wrong_size(self):
        with pytest.raises(spgemm.ContractViolationError):
            spgemm.Dense([1., 2., 3.], (2, 2))

    def test_bad_order(self):
        with pytest.raises(spgemm.ContractViolationError):
            spgemm.Dense([1.], (1, 1), order='X')

    def test_fromarray_requires_2d(self):
        with pytest.raises(spgemm.ContractViolationError):
            spgemm.Dense.fromarray(np.ones(3))

    def test_column_major_round_trip(self):
        array = np.arange(6.).reshape(2, 3)
        d = spgemm.Dense.fromarray(array)
        f = d.as_column_major()
        assert f.order == 'F'
        np.testing.assert_array_equal(f.data, [0., 3., 1., 4., 2., 5.])
        assert f[1, 2] == 5.
        np.testing.assert_array_equal(f.toarray(), array)
        c = f.as_row_major()
        assert c.order == 'C'
        np.testing.assert_array_equal(c.data, d.data)

    def test_tocoo_row_major(self):
        d = spgemm.Dense.fromarray([[0., 2.], [3., 0.]])
        coo = d.tocoo()
        assert list(coo.triplets()) == [(0, 1, 2.), (1, 0, 3.)]

    def test_tocsr(self):
        d = spgemm.Dense.fromarray([[0., 2.], [3., 4.]])
        csr = d.tocsr()
        np.testing.assert_array_equal(csr.indptr, [0, 1, 3])
        assert csr.todense().allclose(d)

    def test_allclose(self):
        d = spgemm.Dense.fromarray([[1., 2.]])
        assert d.allclose([[1., 2. + 1e-9]])
        assert not d.allclose([[1., 2.1]])
        assert not d.allclose(spgemm.Dense.zeros((2, 1)))

    def test_empty_shape(self):
        d = spgemm.Dense.zeros((0, 3))
        assert d.toarray().shape == (0, 3)
        assert d.tocoo().nnz == 0
