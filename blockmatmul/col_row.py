"""Distributed product with A split into column blocks and B into row blocks.

Every rank keeps its slices of A and B and passes partial column blocks of C
around a ring, so that each block collects the contribution of every rank.
"""

from __future__ import annotations

import sys
from typing import Optional, Sequence

import numpy as np

from blockmatmul.comm import Communicator
from blockmatmul.kernel import DTYPE, mat_mul
from blockmatmul.row_col import (
    _gather,
    _ring,
    _scatter_columns,
    _scatter_rows,
    _shape,
    _solve,
)
from blockmatmul.runner import run_cli


def _rank_main(comm: Communicator, a: np.ndarray, b: np.ndarray) -> Optional[np.ndarray]:
    m, _, n = _shape(comm, a, b)
    nc = n // comm.size
    a_sub = _scatter_columns(comm, a)
    b_sub = _scatter_rows(comm, b)

    def accumulate(owner: int, c_block: np.ndarray) -> None:
        mat_mul(a_sub, b_sub[:, owner * nc:(owner + 1) * nc], c_block)

    c_sub = _ring(comm, np.zeros((m, nc), dtype=DTYPE), accumulate, offset=1)
    return _gather(comm, c_sub, np.hstack)


def multiply(a, b, nprocs: int) -> np.ndarray:
    """Return ``a @ b`` computed by ``nprocs`` ranks.

    The columns of ``a`` and of ``b`` must divide evenly among the ranks.
    """
    return _solve(_rank_main, a, b, nprocs, ((0, 1), (1, 1)))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Multiply the problem in a file and check the answer."""
    return run_cli("col_row", multiply, argv)


if __name__ == "__main__":
    sys.exit(main())