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
from spgemm._baseline import BASELINE_BACKENDS
from spgemm._test_util import dense_of, gen_csr


class TestDenseMatmul:
    @pytest.mark.parametrize('backend', BASELINE_BACKENDS)
    def test_matches_sparse_product(self, backend):
        a = gen_csr((16, 12), density=0.3, seed=0, integer=True)
        b = gen_csr((12, 10), density=0.3, seed=1, integer=True)
        result, raw_us, total_us = spgemm.dense_matmul(a.todense(), b.todense(), backend=backend)
        assert result.order == 'C'
        assert result.shape == (16, 10)
        # Small integer values are exact in float32 as well.
        np.testing.assert_array_equal(result.toarray(), dense_of(spgemm.product(a, b)))
        assert isinstance(raw_us, int) and isinstance(total_us, int)
        assert 0 <= raw_us <= total_us

    def test_column_major_input(self):
        a = spgemm.Dense.fromarray([[1., 2.], [3., 4.]]).as_column_major()
        b = spgemm.Dense.fromarray([[1., 0.], [0., 1.]])
        result, _, _ = spgemm.dense_matmul(a, b)
        np.testing.assert_array_equal(result.toarray(), [[1., 2.], [3., 4.]])

    def test_dimension_mismatch(self):
        a = spgemm.Dense.zeros((2, 3))
        with pytest.raises(spgemm.DimensionMismatchError):
            spgemm.dense_matmul(a, a)

    def test_unknown_backend(self):
        a = spgemm.Dense.zeros((2, 2))
        with pytest.raises(ValueError, match='Unknown backend'):
            spgemm.dense_matmul(a, a, backend='cublas')
