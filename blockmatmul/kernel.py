"""Dense block kernel, problem files and result checking."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from itertools import islice
from pathlib import Path
from typing import Iterator, Optional, TextIO, Tuple

import numpy as np

DTYPE = np.float32
DEFAULT_THRESHOLD = 1e-6
ERROR_LIMIT = 3


@dataclass
class Problem:
    """The product of A (m x p) and B (p x n) together with its expected result."""

    a: np.ndarray
    b: np.ndarray
    c_ref: np.ndarray

    def __post_init__(self) -> None:
        self.a = np.asarray(self.a, dtype=DTYPE)
        self.b = np.asarray(self.b, dtype=DTYPE)
        self.c_ref = np.asarray(self.c_ref, dtype=DTYPE)
        if self.a.ndim != 2 or self.b.ndim != 2 or self.c_ref.ndim != 2:
            raise ValueError("matrices must be two-dimensional")
        if self.a.shape[1] != self.b.shape[0]:
            raise ValueError(
                f"inner dimensions differ: {self.a.shape} and {self.b.shape}"
            )
        if self.c_ref.shape != (self.a.shape[0], self.b.shape[1]):
            raise ValueError(f"reference result has shape {self.c_ref.shape}")

    @property
    def m(self) -> int:
        return self.a.shape[0]

    @property
    def p(self) -> int:
        return self.a.shape[1]

    @property
    def n(self) -> int:
        return self.b.shape[1]

    @property
    def flops(self) -> float:
        """Floating point operations of the product."""
        return self.m * self.p * self.n * 2.0


def mat_mul(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> np.ndarray:
    """Accumulate ``a @ b`` into ``c`` in place and return ``c``.

    ``c`` may be a view of a larger matrix; only that block is updated.
    """
    if a.ndim != 2 or b.ndim != 2 or c.ndim != 2:
        raise ValueError("matrices must be two-dimensional")
    if a.shape[1] != b.shape[0] or c.shape != (a.shape[0], b.shape[1]):
        raise ValueError(
            f"cannot accumulate {a.shape} @ {b.shape} into {c.shape}"
        )
    c += np.matmul(a, b).astype(c.dtype, copy=False)
    return c


def read_problem(path) -> Problem:
    """Read a problem file: ``M P N`` followed by A, B and the expected C."""
    tokens = Path(path).read_text().split()
    if len(tokens) < 3:
        raise ValueError(f"{path}: missing matrix dimensions")
    try:
        m, p, n = (int(token) for token in tokens[:3])
    except ValueError as exc:
        raise ValueError(f"{path}: bad matrix dimensions") from exc
    if min(m, p, n) < 0:
        raise ValueError(f"{path}: negative matrix dimension")
    sizes = (m * p, p * n, m * n)
    needed = sum(sizes)
    body = tokens[3 : 3 + needed]
    if len(body) < needed:
        raise ValueError(f"{path}: expected {needed} values, found {len(body)}")
    values = np.fromiter((float(token) for token in body), dtype=DTYPE, count=needed)
    a, b, c_ref = np.split(values, [sizes[0], sizes[0] + sizes[1]])
    return Problem(a.reshape(m, p), b.reshape(p, n), c_ref.reshape(m, n))


def mismatches(
    ans: np.ndarray,
    ref: np.ndarray,
    threshold: float = DEFAULT_THRESHOLD,
    limit: Optional[int] = None,
) -> Iterator[Tuple[int, float, float]]:
    """Yield ``(index, answer, reference)`` where the flat values differ by more than ``threshold``."""
    flat_ans = np.asarray(ans, dtype=DTYPE).ravel()
    flat_ref = np.asarray(ref, dtype=DTYPE).ravel()
    if flat_ans.size != flat_ref.size:
        raise ValueError(
            f"answer has {flat_ans.size} values, reference has {flat_ref.size}"
        )
    bad = np.flatnonzero(np.abs(flat_ans - flat_ref) > threshold)
    for index in islice(bad, limit):
        yield int(index), float(flat_ans[index]), float(flat_ref[index])


def check(
    ans: np.ndarray,
    ref: np.ndarray,
    threshold: float = DEFAULT_THRESHOLD,
    out: Optional[TextIO] = None,
) -> bool:
    """Report up to three differing values and return whether there were none."""
    out = sys.stdout if out is None else out
    found = list(mismatches(ans, ref, threshold, ERROR_LIMIT))
    for index, got, expected in found:
        print(f"Error on index {index}, ans = {got:f} and ref = {expected:f}", file=out)
    if len(found) == ERROR_LIMIT:
        print("...", file=out)
    return not found