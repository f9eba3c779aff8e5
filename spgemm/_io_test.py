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
from spgemm._test_util import dense_of, gen_csr


def _write(tmp_path, text, name='m.mtx'):
    path = tmp_path / name
    path.write_text(text)
    return path


class TestReadMtx:
    def test_general(self, tmp_path):
        path = _write(tmp_path, (
            '%%MatrixMarket matrix coordinate real general\n'
            '% a comment\n'
            '3 3 3\n'
            '3 2 3.0\n'
            '1 1 1.0\n'
            '1 3 2.5\n'
        ))
        coo = spgemm.read_mtx(path)
        assert coo.shape == (3, 3)
        assert coo.is_row_sorted
        assert list(coo.triplets()) == [(0, 0, 1.), (0, 2, 2.5), (2, 1, 3.)]

    def test_unsorted_when_requested(self, tmp_path):
        path = _write(tmp_path, '2 2 2\n2 1 1\n1 1 2\n')
        coo = spgemm.read_mtx(path, sort=False)
        np.testing.assert_array_equal(coo.row, [1, 0])

    def test_without_banner(self, tmp_path):
        path = _write(tmp_path, '% only comments\n2 3 1\n2 3 -4.5\n')
        coo = spgemm.read_mtx(path)
        assert coo.shape == (2, 3)
        assert list(coo.triplets()) == [(1, 2, -4.5)]

    def test_pattern(self, tmp_path):
        path = _write(tmp_path, '%%MatrixMarket matrix coordinate pattern general\n2 2 2\n1 2\n2 1\n')
        np.testing.assert_array_equal(dense_of(spgemm.read_mtx(path)), [[0., 1.], [1., 0.]])

    def test_symmetric(self, tmp_path):
        path = _write(tmp_path, '%%MatrixMarket matrix coordinate real symmetric\n2 2 2\n1 1 1\n2 1 3\n')
        np.testing.assert_array_equal(dense_of(spgemm.read_mtx(path)), [[1., 3.], [3., 0.]])

    def test_skew_symmetric(self, tmp_path):
        path = _write(tmp_path, '%%MatrixMarket matrix coordinate real skew-symmetric\n2 2 1\n2 1 3\n')
        np.testing.assert_array_equal(dense_of(spgemm.read_mtx(path)), [[0., -3.], [3., 0.]])

    def test_duplicates_are_kept(self, tmp_path):
        path = _write(tmp_path, '1 1 2\n1 1 1\n1 1 2\n')
        coo = spgemm.read_mtx(path)
        assert coo.nnz == 2
        assert dense_of(coo)[0, 0] == 3.

    def test_empty_matrix(self, tmp_path):
        coo = spgemm.read_mtx(_write(tmp_path, '4 5 0\n'))
        assert coo.shape == (4, 5)
        assert coo.nnz == 0

    def test_integer_field(self, tmp_path):
        path = _write(tmp_path, '%%MatrixMarket matrix coordinate integer general\n2 2 1\n2 2 7\n')
        coo = spgemm.read_mtx(path)
        assert coo.data.dtype == np.float64
        assert list(coo.triplets()) == [(1, 1, 7.)]

    def test_array_format_keeps_non_zeros(self, tmp_path):
        path = _write(tmp_path, '%%MatrixMarket matrix array real general\n2 2\n1.5\n0\n0\n2\n')
        np.testing.assert_array_equal(dense_of(spgemm.read_mtx(path)), [[1.5, 0.], [0., 2.]])

    @pytest.mark.parametrize(
        'text',
        [
            '%%MatrixMarket matrix coordinate real general\n2 2 1 9\n1 1 1.0\n',
            '%%MatrixMarket matrix coordinate real general\n2 2 1\n1 1 x\n',
            '2 2 1\n3 1 1.0\n',
            '2 2 1\n0 1 1.0\n',
            '%%MatrixMarket matrix coordinate complex general\n1 1 1\n1 1 1 2\n',
        ]
    )
    def test_malformed(self, tmp_path, text):
        path = _write(tmp_path, text)
        with pytest.raises(spgemm.MalformedInputError) as info:
            spgemm.read_mtx(path)
        assert str(info.value).startswith(f'{path}: ')

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            spgemm.read_mtx(tmp_path / 'missing.mtx')


class TestWriteMtx:
    def test_round_trip_is_exact(self, tmp_path):
        a = gen_csr((9, 7), density=0.3, seed=2)
        path = tmp_path / 'a.mtx'
        spgemm.write_mtx(path, a, comment='first line\nsecond line')
        text = path.read_text()
        assert text.startswith('%%MatrixMarket matrix coordinate real general')
        assert 'first line' in text and 'second line' in text
        b = spgemm.CSR.from_coo(spgemm.read_mtx(path))
        np.testing.assert_array_equal(b.indptr, a.indptr)
        np.testing.assert_array_equal(b.indices, a.indices)
        np.testing.assert_array_equal(b.data, a.data)

    def test_keeps_the_given_name(self, tmp_path):
        path = tmp_path / 'c.out'
        spgemm.write_mtx(path, spgemm.CSR.fromdense(np.eye(2)))
        assert sorted(p.name for p in tmp_path.iterdir()) == ['c.out']

    def test_symmetric_matrix_is_written_in_full(self, tmp_path):
        path = tmp_path / 's.mtx'
        dense = [[1., 2.], [2., 1.]]
        spgemm.write_mtx(path, spgemm.COO.fromdense(dense))
        assert 'general' in path.read_text().splitlines()[0]
        np.testing.assert_array_equal(dense_of(spgemm.read_mtx(path)), dense)

    def test_duplicates_are_written(self, tmp_path):
        path = tmp_path / 'dup.mtx'
        spgemm.write_mtx(path, spgemm.COO([0, 0], [1, 1], [1., 2.], shape=(1, 2)))
        coo = spgemm.read_mtx(path)
        assert coo.nnz == 2
        assert dense_of(coo)[0, 1] == 3.

    def test_empty(self, tmp_path):
        path = tmp_path / 'e.mtx'
        spgemm.write_mtx(path, spgemm.COO.empty((3, 2)))
        coo = spgemm.read_mtx(path)
        assert coo.shape == (3, 2)
        assert coo.nnz == 0

    def test_dense_writes_non_zeros(self, tmp_path):
        path = tmp_path / 'd.mtx'
        spgemm.write_mtx(path, spgemm.Dense.fromarray([[0., 1.5], [0., 0.]]))
        assert spgemm.read_mtx(path).nnz == 1

    def test_rejects_arrays(self, tmp_path):
        with pytest.raises(TypeError):
            spgemm.write_mtx(tmp_path / 'x.mtx', np.eye(2))
