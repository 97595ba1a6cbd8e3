"""Generation of random test problems and their files."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from blockmatmul.kernel import DTYPE, Problem, mat_mul

USAGE = "Usage: gendata M P N"


def generate(m: int, p: int, n: int, rng=None) -> Problem:
    """Random A and B with digits 0-9 and the product they give.

    ``rng`` may be a numpy Generator, a seed, or None for fresh entropy.
    """
    if min(m, p, n) < 0:
        raise ValueError("matrix dimensions must not be negative")
    rng = np.random.default_rng(rng)
    a = rng.integers(0, 10, size=(m, p)).astype(DTYPE)
    b = rng.integers(0, 10, size=(p, n)).astype(DTYPE)
    c = np.zeros((m, n), dtype=DTYPE)
    mat_mul(a, b, c)
    return Problem(a, b, c)


def write_problem(path, problem: Problem) -> Path:
    """Write ``problem`` as the dimension line followed by one value per line."""
    path = Path(path)
    with path.open("w") as fh:
        fh.write(f"{problem.m} {problem.p} {problem.n}\n")
        for matrix in (problem.a, problem.b, problem.c_ref):
            fh.writelines(f"{value:f}\n" for value in matrix.ravel())
    return path


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Write a random problem to ``data/matrix_M_P_N.txt``."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 3:
        print(USAGE)
        return 0
    try:
        m, p, n = (int(arg) for arg in args)
        problem = generate(m, p, n)
    except ValueError as exc:
        print(f"gendata: {exc}", file=sys.stderr)
        print(USAGE)
        return 2
    path = Path("data") / f"matrix_{m}_{p}_{n}.txt"
    path.parent.mkdir(parents=True, exist_ok=True)
    write_problem(path, problem)
    return 0


if __name__ == "__main__":
    sys.exit(main())