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

import math

import numpy as np
import pytest

import spgemm
from spgemm._benchmark import (
    DEFAULT_ENGINES,
    BenchmarkRecord,
    BenchmarkResult,
    benchmark_function,
    make_engine,
    run_engines,
)
from spgemm._test_util import dense_of, gen_csr


def _record(engine, mean_ms, success=True, label='p'):
    return BenchmarkRecord(
        engine=engine, label=label,
        mean_ms=mean_ms, std_ms=0.1, min_ms=mean_ms, max_ms=mean_ms,
        nnz=10 if success else None, success=success,
        error=None if success else 'RuntimeError: boom',
        data_kwargs={'density': 0.1},
    )


class TestBenchmarkFunction:
    def test_counts_calls(self):
        calls = []

        def fn():
            calls.append(1)
            return len(calls)

        mean, std, low, high, output = benchmark_function(fn, n_warmup=2, n_runs=3)
        assert len(calls) == 5
        assert output == 5
        assert 0. <= low <= mean <= high
        assert std >= 0.


class TestMakeEngine:
    @pytest.mark.parametrize('name', ['dense', 'sparse', 'sparse_par', 'coo_par', 'blas', 'jax'])
    def test_cpu_engines(self, name):
        a = gen_csr((10, 8), seed=0, integer=True)
        b = gen_csr((8, 6), seed=1, integer=True)
        fn = make_engine(name, num_workers=2)
        np.testing.assert_array_equal(dense_of(fn(a, b)), dense_of(spgemm.product(a, b)))

    def test_gpu_needs_context(self):
        with pytest.raises(ValueError, match='DeviceContext'):
            make_engine('gpu')

    def test_unknown(self):
        with pytest.raises(ValueError, match='Unknown engine'):
            make_engine('cusparse')


class TestBenchmarkResult:
    def test_fastest_skips_failures(self):
        result = BenchmarkResult([
            _record('sparse', 2.),
            _record('dense', 1., success=False),
            _record('coo_par', 1.5),
        ])
        assert result.fastest().engine == 'coo_par'
        assert result.fastest(label='other') is None

    def test_table(self):
        result = BenchmarkResult([_record('sparse', 2.), _record('dense', 1., success=False)])
        table = str(result)
        assert table.startswith('BenchmarkResult')
        assert 'FAILED' in table
        assert 'density' in table
        assert str(BenchmarkResult([])) == 'BenchmarkResult(0 records)'

    def test_save_and_load(self, tmp_path):
        result = BenchmarkResult([_record('sparse', 2.), _record('gpu', 1., success=False)])
        path = tmp_path / 'out' / 'bench.json'
        result.save(path)
        loaded = BenchmarkResult.load(path)
        assert loaded.records == result.records

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            BenchmarkResult.load(tmp_path / 'missing.json')


class TestRunEngines:
    def test_default_engines(self):
        a = gen_csr((20, 15), seed=2)
        b = gen_csr((15, 10), seed=3)
        result = run_engines(a, b, n_warmup=1, n_runs=2, label='20x15', num_workers=2)
        assert [r.engine for r in result.records] == list(DEFAULT_ENGINES)
        assert all(r.success for r in result.records)
        nnz = spgemm.product_sparse(a, b).nnz
        for r in result.records:
            assert r.label == '20x15'
            assert r.mean_ms >= 0.
            if r.engine != 'dense':
                assert r.nnz == nnz

    def test_failure_is_recorded(self, monkeypatch):
        def broken(a, b):
            raise RuntimeError('boom')

        monkeypatch.setattr('spgemm._benchmark.product', broken)
        a = gen_csr((5, 5))
        result = run_engines(a, a, engines=['dense', 'sparse'], n_warmup=0, n_runs=1)
        failed, ok = result.records
        assert not failed.success
        assert failed.error == 'RuntimeError: boom'
        assert math.isnan(failed.mean_ms)
        assert ok.success
        assert result.fastest() is ok

    def test_unknown_engine(self):
        a = gen_csr((5, 5))
        with pytest.raises(ValueError):
            run_engines(a, a, engines=['sparse', 'nope'])
