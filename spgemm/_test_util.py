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

import spgemm


def allclose(x, y, rtol=0., atol=1e-7):
    x = x.toarray() if hasattr(x, 'toarray') else x
    y = y.toarray() if hasattr(y, 'toarray') else y
    return np.allclose(x, y, rtol=rtol, atol=atol)


def dense_of(matrix):
    """Row-major ndarray of any spgemm matrix."""
    if isinstance(matrix, (spgemm.COO, spgemm.CSR)):
        matrix = matrix.todense()
    return matrix.toarray()


def gen_csr(shape, density=0.3, seed=0, integer=False):
    return spgemm.CSR.from_coo(spgemm.random_coo(shape, density, seed=seed, integer=integer))
