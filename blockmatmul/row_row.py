"""Distributed product with both A and B split into row blocks.

Every rank keeps its rows of A and passes its row block of B around a ring,
multiplying it with the matching column slice of its rows of A.
"""

from __future__ import annotations

import sys
from typing import Optional, Sequence

import numpy as np

from blockmatmul.comm import Communicator
from blockmatmul.kernel import DTYPE, mat_mul
from blockmatmul.row_col import _gather, _ring, _scatter_rows, _shape, _solve
from blockmatmul.runner import run_cli


def _rank_main(comm: Communicator, a: np.ndarray, b: np.ndarray) -> Optional[np.ndarray]:
    m, p, n = _shape(comm, a, b)
    mr, pr = m // comm.size, p // comm.size
    a_sub = _scatter_rows(comm, a)
    b_sub = _scatter_rows(comm, b)
    c_sub = np.zeros((mr, n), dtype=DTYPE)

    def accumulate(owner: int, b_block: np.ndarray) -> None:
        mat_mul(a_sub[:, owner * pr:(owner + 1) * pr], b_block, c_sub)

    _ring(comm, b_sub, accumulate)
    return _gather(comm, c_sub, np.vstack)


def multiply(a, b, nprocs: int) -> np.ndarray:
    """Return ``a @ b`` computed by ``nprocs`` ranks.

    The rows of ``a`` and of ``b`` must divide evenly among the ranks.
    """
    return _solve(_rank_main, a, b, nprocs, ((0, 0), (1, 0)))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Multiply the problem in a file and check the answer."""
    return run_cli("row_row", multiply, argv)


if __name__ == "__main__":
    sys.exit(main())