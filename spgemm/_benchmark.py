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

import json
import time
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import jax
import numpy as np

from spgemm._baseline import dense_matmul
from spgemm._csr import (
    CSR,
    product,
    product_sparse,
    product_sparse_par,
    product_sparse_to_coo_par,
)

__all__ = [
    'ENGINES',
    'DEFAULT_ENGINES',
    'BenchmarkRecord',
    'BenchmarkResult',
    'benchmark_function',
    'make_engine',
    'run_engines',
]

ENGINES = ('dense', 'sparse', 'sparse_par', 'coo_par', 'gpu', 'blas', 'jax')
DEFAULT_ENGINES = ('dense', 'sparse', 'sparse_par', 'coo_par')


@dataclass
class BenchmarkRecord:
    """One row in the benchmark result table.

    Attributes
    ----------
    engine : str
        Engine name, one of :data:`ENGINES`.
    label : str
        Problem label, e.g. ``'1000x1000 @ 1%'``.
    mean_ms : float
        Mean execution time in milliseconds.
    std_ms : float
        Standard deviation of execution time in milliseconds.
    min_ms : float
        Minimum execution time in milliseconds.
    max_ms : float
        Maximum execution time in milliseconds.
    nnz : int or None
        Stored entries of the result, ``None`` if the run failed.
    success : bool
        Whether the run completed without error.
    error : str or None
        Error message if the run failed.
    data_kwargs : dict
        Problem description (shapes, densities) for the table.
    """
    engine: str
    label: str
    mean_ms: float
    std_ms: float
    min_ms: float
    max_ms: float
    nnz: Optional[int]
    success: bool
    error: Optional[str] = None
    data_kwargs: Dict[str, Any] = field(default_factory=dict)


class BenchmarkResult:
    """Timing records of several engines, with table display and JSON persistence.

    Parameters
    ----------
    records : list of BenchmarkRecord
        All collected benchmark records.
    """

    def __init__(self, records: List[BenchmarkRecord]):
        self._records: List[BenchmarkRecord] = list(records)

    @property
    def records(self) -> List[BenchmarkRecord]:
        """Return a copy of all benchmark records."""
        return list(self._records)

    def fastest(self, label: Optional[str] = None) -> Optional[BenchmarkRecord]:
        """Return the fastest successful record, optionally restricted to ``label``."""
        candidates = [r for r in self._records if r.success]
        if label is not None:
            candidates = [r for r in candidates if r.label == label]
        if not candidates:
            return None
        return min(candidates, key=lambda r: r.mean_ms)

    def _to_flat_rows(self) -> List[OrderedDict]:
        data_keys = sorted({k for r in self._records for k in r.data_kwargs})
        rows = []
        for r in self._records:
            row: OrderedDict = OrderedDict()
            row['engine'] = r.engine
            for k in data_keys:
                row[k] = r.data_kwargs.get(k, '')
            row['label'] = r.label
            if r.success:
                row['mean_ms'] = round(r.mean_ms, 4)
                row['std_ms'] = round(r.std_ms, 4)
                row['min_ms'] = round(r.min_ms, 4)
                row['nnz'] = r.nnz
            else:
                row['mean_ms'] = 'FAILED'
                row['std_ms'] = ''
                row['min_ms'] = ''
                row['nnz'] = r.error or ''
            rows.append(row)
        return rows

    def _format_table(self) -> str:
        if not self._records:
            return 'BenchmarkResult(0 records)'
        rows = self._to_flat_rows()
        best = self.fastest()
        columns = list(rows[0].keys())
        col_widths = {
            c: max(len(str(c)), max(len(str(r.get(c, ''))) for r in rows))
            for c in columns
        }
        sep = ' | '
        header = sep.join(str(c).ljust(col_widths[c]) for c in columns)
        rule = '-+-'.join('-' * col_widths[c] for c in columns)
        lines = ['BenchmarkResult', header, rule]
        for record, row in zip(self._records, rows):
            line = sep.join(str(row.get(c, '')).ljust(col_widths[c]) for c in columns)
            if record is best:
                line += '  *'
            lines.append(line)
        return '\n'.join(lines)

    def __repr__(self) -> str:
        return self._format_table()

    def __str__(self) -> str:
        return self._format_table()

    def save(self, path: Union[str, Path]) -> None:
        """Write the records to ``path`` as JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump({'records': [asdict(r) for r in self._records]}, f, indent=2)
            f.write('\n')

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'BenchmarkResult':
        """Read records written by :meth:`save`."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        with open(path, 'r', encoding='utf-8') as f:
            payload = json.load(f)
        return cls([BenchmarkRecord(**r) for r in payload['records']])


def benchmark_function(
    fn,
    n_warmup: int,
    n_runs: int,
) -> Tuple[float, float, float, float, Any]:
    """Benchmark a function and return timing statistics.

    Parameters
    ----------
    fn : callable
        A callable that takes no arguments and returns the result.
    n_warmup : int
        Number of warmup runs (not timed).  Warmup also triggers Numba
        compilation.
    n_runs : int
        Number of timed runs.

    Returns
    -------
    tuple of (float, float, float, float, Any)
        ``(mean_time, std_time, min_time, max_time, output)`` where
        times are in seconds.
    """
    output = None
    for _ in range(n_warmup):
        output = fn()
    jax.block_until_ready(output)

    times = []
    for _ in range(n_runs):
        start = time.perf_counter()
        output = fn()
        jax.block_until_ready(output)
        end = time.perf_counter()
        times.append(end - start)

    times = np.array(times)
    return (
        float(np.mean(times)),
        float(np.std(times)),
        float(np.min(times)),
        float(np.max(times)),
        output,
    )


def _result_nnz(output) -> int:
    if hasattr(output, 'nnz'):
        return output.nnz
    return int(np.count_nonzero(output.data))


def make_engine(name: str, num_workers: Optional[int] = None, context=None) -> Callable[[CSR, CSR], Any]:
    """
    Return a callable ``f(a, b)`` running engine ``name``.

    ``'blas'`` and ``'jax'`` densify their operands inside the call.
    ``'gpu'`` requires ``context``.
    """
    if name == 'dense':
        return product
    if name == 'sparse':
        return product_sparse
    if name == 'sparse_par':
        return lambda a, b: product_sparse_par(a, b, num_workers=num_workers)
    if name == 'coo_par':
        return lambda a, b: product_sparse_to_coo_par(a, b, num_workers=num_workers)
    if name in ('blas', 'jax'):
        backend = 'numpy' if name == 'blas' else 'jax'
        return lambda a, b: dense_matmul(a.todense(), b.todense(), backend=backend)[0]
    if name == 'gpu':
        if context is None:
            raise ValueError("The 'gpu' engine needs a DeviceContext.")
        from spgemm._gpu import gpu_multiply
        return lambda a, b: gpu_multiply(a, b, context=context)
    raise ValueError(f'Unknown engine {name!r}, expected one of {ENGINES}.')


def run_engines(
    a: CSR,
    b: CSR,
    engines: Sequence[str] = DEFAULT_ENGINES,
    n_warmup: int = 1,
    n_runs: int = 5,
    label: str = '',
    num_workers: Optional[int] = None,
    data_kwargs: Optional[Dict[str, Any]] = None,
) -> BenchmarkResult:
    """
    Time each engine on the same operands.

    A failing engine produces a record with ``success=False`` and the error
    message instead of aborting the run.  The ``'gpu'`` engine acquires one
    device for all of its runs and releases it afterwards.

    Parameters
    ----------
    a, b : CSR
        Operands.
    engines : sequence of str, optional
        Engine names from :data:`ENGINES`.
    n_warmup, n_runs : int, optional
        Passed to :func:`benchmark_function`.
    label : str, optional
        Problem label stored on every record.
    num_workers : int, optional
        Worker count for the parallel engines.
    data_kwargs : dict, optional
        Extra problem description stored on every record.

    Returns
    -------
    BenchmarkResult
    """
    for name in engines:
        if name not in ENGINES:
            raise ValueError(f'Unknown engine {name!r}, expected one of {ENGINES}.')
    data_kwargs = dict(data_kwargs or {})
    records = []
    for name in engines:
        context = None
        try:
            if name == 'gpu':
                from spgemm._gpu import DeviceContext
                context = DeviceContext.acquire()
            fn = make_engine(name, num_workers=num_workers, context=context)
            mean, std, low, high, output = benchmark_function(lambda: fn(a, b), n_warmup, n_runs)
            records.append(
                BenchmarkRecord(
                    engine=name,
                    label=label,
                    mean_ms=mean * 1e3,
                    std_ms=std * 1e3,
                    min_ms=low * 1e3,
                    max_ms=high * 1e3,
                    nnz=_result_nnz(output),
                    success=True,
                    data_kwargs=data_kwargs,
                )
            )
        except Exception as e:
            records.append(
                BenchmarkRecord(
                    engine=name,
                    label=label,
                    mean_ms=float('nan'),
                    std_ms=float('nan'),
                    min_ms=float('nan'),
                    max_ms=float('nan'),
                    nnz=None,
                    success=False,
                    error=f'{type(e).__name__}: {e}',
                    data_kwargs=data_kwargs,
                )
            )
        finally:
            if context is not None:
                context.close()
    return BenchmarkResult(records)
