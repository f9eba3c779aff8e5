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

__version__ = "0.1.0"

from ._baseline import dense_matmul
from ._coo import COO, random_coo
from ._csr import (
    CSR,
    predict_nnz,
    predict_row_nnz,
    product,
    product_sparse,
    product_sparse_par,
    product_sparse_to_coo_par,
)
from ._dense import Dense
from ._error import (
    SpGEMMError,
    ContractViolationError,
    DimensionMismatchError,
    ResourceUnavailableError,
    DeviceFailureError,
    MalformedInputError,
    PipelineStateError,
)
from ._gpu import DeviceContext, GPUSparseMultiplier, PipelineState, gpu_multiply, gpu_multiply_async
from ._io import read_mtx, write_mtx
from .config import (
    load_user_defaults,
    save_user_defaults,
    clear_user_defaults,
    set_num_workers,
    get_num_workers,
    set_shader_path,
    get_shader_path,
)

__all__ = [

    # --- matrix formats --- #
    'COO',
    'CSR',
    'Dense',
    'random_coo',

    # --- CPU engine --- #
    'predict_nnz',
    'predict_row_nnz',
    'product',
    'product_sparse',
    'product_sparse_par',
    'product_sparse_to_coo_par',

    # --- GPU engine --- #
    'DeviceContext',
    'GPUSparseMultiplier',
    'PipelineState',
    'gpu_multiply',
    'gpu_multiply_async',

    # --- baselines and I/O --- #
    'dense_matmul',
    'read_mtx',
    'write_mtx',

    # --- configuration --- #
    'load_user_defaults', 'save_user_defaults', 'clear_user_defaults',
    'set_num_workers', 'get_num_workers',
    'set_shader_path', 'get_shader_path',

    # --- errors --- #
    'SpGEMMError',
    'ContractViolationError',
    'DimensionMismatchError',
    'ResourceUnavailableError',
    'DeviceFailureError',
    'MalformedInputError',
    'PipelineStateError',

]
