"""Command-line driver shared by the distributed multiplication variants."""

from __future__ import annotations

import sys
import time
from typing import Callable, List, Optional, Sequence, TextIO, Tuple

import numpy as np

from blockmatmul.kernel import DEFAULT_THRESHOLD, Problem, check, read_problem

Solver = Callable[[np.ndarray, np.ndarray, int], np.ndarray]

DEFAULT_NPROCS = 4


def report(problem: Problem, result: np.ndarray, elapsed: float, out: Optional[TextIO] = None) -> bool:
    """Check ``result`` against the reference and print the verdict and speed."""
    out = sys.stdout if out is None else out
    if check(result, problem.c_ref, DEFAULT_THRESHOLD, out):
        print("The answer is right !!!", file=out)
        gflops = problem.flops / elapsed / 1e9 if elapsed > 0 else float("inf")
        print(f"Elapsed time is {elapsed:f} s, {gflops:f} GFLOPS", file=out)
        return True
    print("The answer is wrong !!!", file=out)
    return False


def _parse_args(args: List[str]) -> Optional[Tuple[int, str]]:
    nprocs = DEFAULT_NPROCS
    if args and args[0] in ("-n", "--nprocs"):
        if len(args) < 2:
            return None
        try:
            nprocs = int(args[1])
        except ValueError:
            return None
        if nprocs < 1:
            return None
        args = args[2:]
    if len(args) != 1:
        return None
    return nprocs, args[0]


def run_cli(
    prog: str,
    solver: Solver,
    argv: Optional[Sequence[str]] = None,
    out: Optional[TextIO] = None,
) -> int:
    """Read a problem file, solve it with ``solver`` and report the outcome.

    Arguments are ``[-n NPROCS] file``; returns 0 when the answer is right.
    """
    out = sys.stdout if out is None else out
    args = sys.argv[1:] if argv is None else list(argv)
    parsed = _parse_args(args)
    if parsed is None:
        print(f"Usage: {prog} [-n NPROCS] file", file=out)
        return 0
    nprocs, path = parsed
    try:
        problem = read_problem(path)
    except (OSError, ValueError) as exc:
        print(f"{prog}: {exc}", file=out)
        return 1
    print(f"M = {problem.m}, P = {problem.p}, N = {problem.n}", file=out)
    start = time.perf_counter()
    try:
        result = solver(problem.a, problem.b, nprocs)
    except ValueError as exc:
        print(f"{prog}: {exc}", file=out)
        return 1
    elapsed = time.perf_counter() - start
    return 0 if report(problem, result, elapsed, out) else 1