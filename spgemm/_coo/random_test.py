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


class TestRandomCOO:
    @pytest.mark.parametrize('shape', [(10, 20), (1, 50), (50, 1), (0, 5)])
    @pytest.mark.parametrize('density', [0., 0.1, 1.])
    def test_nnz_and_structure(self, shape, density):
        coo = spgemm.random_coo(shape, density, seed=1)
        assert coo.shape == shape
        assert coo.nnz == int(round(density * shape[0] * shape[1]))
        assert coo.is_row_sorted
        keys = coo.row * max(shape[1], 1) + coo.col
        assert np.unique(keys).size == keys.size

    def test_seed_is_deterministic(self):
        a = spgemm.random_coo((30, 30), 0.2, seed=7)
        b = spgemm.random_coo((30, 30), 0.2, seed=7)
        assert list(a.triplets()) == list(b.triplets())

    def test_integer_values(self):
        coo = spgemm.random_coo((20, 20), 0.5, seed=0, integer=True)
        assert np.all(coo.data == np.round(coo.data))
        assert coo.data.min() >= 1. and coo.data.max() <= 9.

    @pytest.mark.parametrize('density', [-0.1, 1.5])
    def test_invalid_density(self, density):
        with pytest.raises(ValueError):
            spgemm.random_coo((5, 5), density)
