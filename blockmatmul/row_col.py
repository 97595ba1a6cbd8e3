"""Distributed product with A split into row blocks and B into column blocks.

Every rank keeps its rows of A and passes its column block of B around a ring,
filling one column block of its rows of C per step.

The ring helpers defined here are shared by the other one-dimensional layouts.
"""

from __future__ import annotations

import sys
from typing import Any, Callable, Optional, Sequence, Tuple

import numpy as np

from blockmatmul.comm import Communicator, World
from blockmatmul.kernel import DTYPE, mat_mul
from blockmatmul.runner import run_cli

_SHIFT_TAG = 777
_MATRIX_NAMES = ("A", "B")
_AXIS_NAMES = ("rows", "columns")


def _operands(a, b, nprocs: int) -> Tuple[np.ndarray, np.ndarray]:
    if nprocs < 1:
        raise ValueError("at least one process is needed")
    a = np.asarray(a, dtype=DTYPE)
    b = np.asarray(b, dtype=DTYPE)
    if a.ndim != 2 or b.ndim != 2:
        raise ValueError("matrices must be two-dimensional")
    if a.shape[1] != b.shape[0]:
        raise ValueError(f"inner dimensions differ: {a.shape} and {b.shape}")
    return a, b


def _solve(rank_main: Callable, a, b, nprocs: int, splits: Sequence[Tuple[int, int]]):
    """Check that each (matrix, axis) in ``splits`` divides evenly, then run."""
    matrices = _operands(a, b, nprocs)
    if any(matrices[which].shape[axis] % nprocs for which, axis in splits):
        described = " and ".join(
            f"{matrices[which].shape[axis]} {_AXIS_NAMES[axis]} of {_MATRIX_NAMES[which]}"
            for which, axis in splits
        )
        raise ValueError(f"{described} do not divide among {nprocs} processes")
    return World(nprocs).run(rank_main, *matrices)[0]


def _shape(comm: Communicator, a: np.ndarray, b: np.ndarray) -> Tuple[int, int, int]:
    """Broadcast the problem dimensions (m, p, n) from rank 0."""
    return comm.bcast((a.shape[0], a.shape[1], b.shape[1]) if comm.rank == 0 else None, 0)


def _scatter_rows(comm: Communicator, matrix: np.ndarray) -> np.ndarray:
    return comm.scatter(np.split(matrix, comm.size, axis=0) if comm.rank == 0 else None, 0)


def _scatter_columns(comm: Communicator, matrix: np.ndarray, tag_offset: int = 0) -> np.ndarray:
    if comm.rank == 0:
        for dest, block in enumerate(np.hsplit(matrix, comm.size)):
            comm.send(np.ascontiguousarray(block), dest, dest + tag_offset)
    return comm.recv(0, comm.rank + tag_offset)


def _ring(
    comm: Communicator,
    moving: np.ndarray,
    step: Callable[[int, np.ndarray], Any],
    offset: int = 0,
) -> np.ndarray:
    """Call ``step(owner, moving)`` once per rank, shifting ``moving`` left in between."""
    nprocs = comm.size
    dest = (comm.rank - 1) % nprocs
    src = (comm.rank + 1) % nprocs
    for index in range(nprocs):
        step((comm.rank + offset + index) % nprocs, moving)
        if index < nprocs - 1:
            moving = comm.sendrecv(moving, dest, src, _SHIFT_TAG)
    return moving


def _gather(comm: Communicator, block: np.ndarray, combine: Callable) -> Optional[np.ndarray]:
    blocks = comm.gather(block, 0)
    return combine(blocks) if comm.rank == 0 else None


def _rank_main(comm: Communicator, a: np.ndarray, b: np.ndarray) -> Optional[np.ndarray]:
    m, _, n = _shape(comm, a, b)
    mr, nc = m // comm.size, n // comm.size
    a_sub = _scatter_rows(comm, a)
    b_sub = _scatter_columns(comm, b)
    c_sub = np.zeros((mr, n), dtype=DTYPE)

    def accumulate(owner: int, b_block: np.ndarray) -> None:
        mat_mul(a_sub, b_block, c_sub[:, owner * nc:(owner + 1) * nc])

    _ring(comm, b_sub, accumulate)
    return _gather(comm, c_sub, np.vstack)


def multiply(a, b, nprocs: int) -> np.ndarray:
    """Return ``a @ b`` computed by ``nprocs`` ranks.

    The rows of ``a`` and the columns of ``b`` must divide evenly among the ranks.
    """
    return _solve(_rank_main, a, b, nprocs, ((0, 0), (1, 1)))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Multiply the problem in a file and check the answer."""
    return run_cli("row_col", multiply, argv)


if __name__ == "__main__":
    sys.exit(main())