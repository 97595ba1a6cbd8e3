"""Distributed product with both A and B split into column blocks.

Every rank keeps its columns of B and passes its column block of A around a
ring, multiplying it with the matching row slice of its columns of B.
"""

from __future__ import annotations

import sys
from typing import Optional, Sequence

import numpy as np

from blockmatmul.comm import Communicator
from blockmatmul.kernel import DTYPE, mat_mul
from blockmatmul.row_col import _gather, _ring, _scatter_columns, _shape, _solve
from blockmatmul.runner import run_cli

_A_TAG_OFFSET = 1
_B_TAG_OFFSET = 2


def _rank_main(comm: Communicator, a: np.ndarray, b: np.ndarray) -> Optional[np.ndarray]:
    m, p, n = _shape(comm, a, b)
    pc, nc = p // comm.size, n // comm.size
    a_sub = _scatter_columns(comm, a, _A_TAG_OFFSET)
    b_sub = _scatter_columns(comm, b, _B_TAG_OFFSET)
    c_sub = np.zeros((m, nc), dtype=DTYPE)

    def accumulate(owner: int, a_block: np.ndarray) -> None:
        mat_mul(a_block, b_sub[owner * pc:(owner + 1) * pc, :], c_sub)

    _ring(comm, a_sub, accumulate)
    return _gather(comm, c_sub, np.hstack)


def multiply(a, b, nprocs: int) -> np.ndarray:
    """Return ``a @ b`` computed by ``nprocs`` ranks.

    The columns of ``a`` and of ``b`` must divide evenly among the ranks.
    """
    return _solve(_rank_main, a, b, nprocs, ((0, 1), (1, 1)))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Multiply the problem in a file and check the answer."""
    return run_cli("col_col", multiply, argv)


if __name__ == "__main__":
    sys.exit(main())