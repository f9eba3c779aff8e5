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


from .main import CSR
from .predict import check_product_shapes, predict_nnz, predict_row_nnz
from .spgemm import product, product_sparse, product_sparse_par, product_sparse_to_coo_par

__all__ = [
    'CSR',
    'check_product_shapes', 'predict_nnz', 'predict_row_nnz',
    'product', 'product_sparse',
    'product_sparse_par', 'product_sparse_to_coo_par',
]
