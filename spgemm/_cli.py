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

"""CLI entry point for spgemm.

Usage:
    spgemm multiply A.mtx B.mtx [--engine sparse] [--output C.mtx]
    spgemm benchmark --rows 1000 --inner 1000 --cols 1000 --density 0.01
"""

import argparse
import sys
import time
from typing import List, Optional

__all__ = ['main']


def _build_parser() -> argparse.ArgumentParser:
    from spgemm._benchmark import DEFAULT_ENGINES, ENGINES

    parser = argparse.ArgumentParser(
        prog='spgemm',
        description='spgemm: sparse matrix-matrix multiplication on CPU and GPU.',
    )
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    mul = subparsers.add_parser('multiply', help='Multiply two MatrixMarket files.')
    mul.add_argument('a', help='Left operand (.mtx).')
    mul.add_argument('b', help='Right operand (.mtx).')
    mul.add_argument(
        '--engine',
        default=None,
        choices=list(ENGINES),
        help="Engine to use. Defaults to the persisted 'engine' user default, then 'sparse'.",
    )
    mul.add_argument('--num-workers', type=int, default=None, help='Workers for the parallel engines.')
    mul.add_argument('--output', type=str, default=None, help='Write the product to this .mtx file.')

    bench = subparsers.add_parser('benchmark', help='Benchmark engines on random matrices.')
    bench.add_argument('--rows', type=int, default=1000, help='Rows of A.')
    bench.add_argument('--inner', type=int, default=1000, help='Columns of A and rows of B.')
    bench.add_argument('--cols', type=int, default=1000, help='Columns of B.')
    bench.add_argument('--density', type=float, default=0.01, help='Fraction of non-zero entries.')
    bench.add_argument('--seed', type=int, default=0, help='Random seed.')
    bench.add_argument(
        '--engines',
        default=','.join(DEFAULT_ENGINES),
        help=f"Comma-separated engines from {', '.join(ENGINES)}.",
    )
    bench.add_argument('--num-workers', type=int, default=None, help='Workers for the parallel engines.')
    bench.add_argument('--n-warmup', type=int, default=1, help='Number of warmup runs.')
    bench.add_argument('--n-runs', type=int, default=5, help='Number of timed runs.')
    bench.add_argument('--output', type=str, default=None, help='Output file path for JSON results.')
    bench.add_argument(
        '--persist',
        action='store_true',
        default=False,
        help="Persist the fastest engine as the 'engine' user default.",
    )
    return parser


def _run_multiply(args) -> int:
    import spgemm
    from spgemm._benchmark import make_engine
    from spgemm.config import get_user_default

    engine = args.engine or get_user_default('engine', 'sparse')
    try:
        a = spgemm.CSR.from_coo(spgemm.read_mtx(args.a))
        b = spgemm.CSR.from_coo(spgemm.read_mtx(args.b))
        context = spgemm.DeviceContext.acquire() if engine == 'gpu' else None
        try:
            fn = make_engine(engine, num_workers=args.num_workers, context=context)
            start = time.perf_counter()
            result = fn(a, b)
            elapsed = time.perf_counter() - start
        finally:
            if context is not None:
                context.close()
    except (spgemm.SpGEMMError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"A: {a.shape[0]}x{a.shape[1]}, nnz={a.nnz}")
    print(f"B: {b.shape[0]}x{b.shape[1]}, nnz={b.nnz}")
    print(f"Engine: {engine}, predicted nnz={spgemm.predict_nnz(a, b)}, time={elapsed * 1000:.3f} ms")
    if args.output:
        spgemm.write_mtx(args.output, result, comment=f'{args.a} @ {args.b} ({engine})')
        print(f"Product written to {args.output}")
    return 0


def _run_benchmark(args) -> int:
    import spgemm
    from spgemm._benchmark import ENGINES, run_engines
    from spgemm.config import save_user_defaults

    engines = [e.strip() for e in args.engines.split(',') if e.strip()]
    unknown = [e for e in engines if e not in ENGINES]
    if unknown or not engines:
        print(f"Unknown engines {unknown}; choose from {', '.join(ENGINES)}.", file=sys.stderr)
        return 1

    a = spgemm.CSR.from_coo(spgemm.random_coo((args.rows, args.inner), args.density, seed=args.seed))
    b = spgemm.CSR.from_coo(spgemm.random_coo((args.inner, args.cols), args.density, seed=args.seed + 1))
    label = f'{args.rows}x{args.inner} @ {args.inner}x{args.cols}'

    print(f"spgemm benchmark: {label}, density={args.density}")
    print(f"Parameters: n_warmup={args.n_warmup}, n_runs={args.n_runs}, "
          f"predicted nnz={spgemm.predict_nnz(a, b)}")
    print()

    result = run_engines(
        a, b,
        engines=engines,
        n_warmup=args.n_warmup,
        n_runs=args.n_runs,
        label=label,
        num_workers=args.num_workers,
        data_kwargs={'density': args.density},
    )

    header = f"{'Engine':<15} {'Mean (ms)':>12} {'Std (ms)':>12} {'Min (ms)':>12} {'nnz':>10} {'Winner':>8}"
    print(header)
    print("-" * len(header))
    fastest = result.fastest()
    for record in sorted(result.records, key=lambda r: (not r.success, r.mean_ms)):
        if record.success:
            winner = '*' if record is fastest else ''
            print(f"{record.engine:<15} {record.mean_ms:>12.3f} {record.std_ms:>12.3f} "
                  f"{record.min_ms:>12.3f} {record.nnz:>10} {winner:>8}")
        else:
            error_short = record.error[:30] + '...' if record.error and len(record.error) > 30 else (record.error or '')
            print(f"{record.engine:<15} {'FAILED':>12} {'':>12} {'':>12} {'':>10} {error_short}")
    print()

    if args.persist and fastest is not None:
        save_user_defaults({'engine': fastest.engine})
        print(f"Fastest engine '{fastest.engine}' persisted to config file.")

    if args.output:
        result.save(args.output)
        print(f"Results written to {args.output}")

    return 0 if fastest is not None else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == 'multiply':
        return _run_multiply(args)
    if args.command == 'benchmark':
        return _run_benchmark(args)

    parser.print_help()
    return 1


if __name__ == '__main__':
    sys.exit(main())
