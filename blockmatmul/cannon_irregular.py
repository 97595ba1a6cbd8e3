"""Distributed product on a square grid of ranks for matrices of any size.

The rows and columns of every matrix are shared out by recursive halving, so
blocks may differ in size by one. Ranks form a ``side`` x ``side`` grid, where
``side`` is a power of two. Each grid row has its own communicator, and so does
each grid column. In step ``i`` the rank in column ``(i + row) % side``
broadcasts its block of A along its row. Each rank multiplies that block with
its current block of B, and the blocks of B move one row up the grid.
"""

from __future__ import annotations

import math
import sys
from itertools import accumulate
from typing import List, Optional, Sequence

import numpy as np

from blockmatmul.comm import Communicator, World, create_grid_comms
from blockmatmul.kernel import DTYPE, mat_mul
from blockmatmul.runner import run_cli

_SHIFT_TAG = 999


def halving_extents(length: int, parts: int) -> List[int]:
    """Sizes of the ``parts`` consecutive pieces made by halving ``length`` recursively.

    At each halving the first half keeps the larger share. ``parts`` must be a
    power of two.
    """
    if parts < 1 or parts & (parts - 1):
        raise ValueError(f"{parts} parts is not a power of two")
    if length < 0:
        raise ValueError("length must not be negative")
    if parts == 1:
        return [length]
    upper = length // 2
    half = parts // 2
    return halving_extents(length - upper, half) + halving_extents(upper, half)


def _split(matrix: np.ndarray, extents: List[int], axis: int) -> List[np.ndarray]:
    cuts = list(accumulate(extents))[:-1]
    return [np.ascontiguousarray(piece) for piece in np.split(matrix, cuts, axis=axis)]


def _scatter(
    matrix: Optional[np.ndarray],
    row_comm: Communicator,
    col_comm: Communicator,
    side: int,
) -> np.ndarray:
    """Hand block ``(row, col)`` of the matrix at grid rank (0, 0) to every rank."""
    band = None
    if row_comm.rank == 0:
        bands = None
        if col_comm.rank == 0:
            bands = _split(matrix, halving_extents(matrix.shape[0], side), 0)
        band = col_comm.scatter(bands, 0)
    blocks = None
    if row_comm.rank == 0:
        blocks = _split(band, halving_extents(band.shape[1], side), 1)
    return row_comm.scatter(blocks, 0)


def _gather(
    block: np.ndarray, row_comm: Communicator, col_comm: Communicator
) -> Optional[np.ndarray]:
    """Reassemble the grid of blocks at grid rank (0, 0); others get None."""
    pieces = row_comm.gather(block, 0)
    if row_comm.rank != 0:
        return None
    bands = col_comm.gather(np.hstack(pieces), 0)
    return np.vstack(bands) if col_comm.rank == 0 else None


def _rank_main(comm: Communicator, a: np.ndarray, b: np.ndarray) -> Optional[np.ndarray]:
    root = comm.rank == 0
    side = math.isqrt(comm.size)
    m, p, n = comm.bcast((a.shape[0], a.shape[1], b.shape[1]) if root else None, 0)
    row_comm, col_comm = create_grid_comms(comm, side)
    row, col = col_comm.rank, row_comm.rank

    a_sub = _scatter(a if root else None, row_comm, col_comm, side)
    b_sub = _scatter(b if root else None, row_comm, col_comm, side)
    c_sub = np.zeros((a_sub.shape[0], b_sub.shape[1]), dtype=DTYPE)

    dest = (row - 1) % side
    src = (row + 1) % side
    for step in range(side):
        owner = (step + row) % side
        a_block = row_comm.bcast(a_sub if col == owner else None, owner)
        if step > 0:
            b_sub = col_comm.sendrecv(b_sub, dest, src, _SHIFT_TAG)
        mat_mul(a_block, b_sub, c_sub)

    return _gather(c_sub, row_comm, col_comm)


def multiply(a, b, nprocs: int) -> np.ndarray:
    """Return ``a @ b`` computed by ``nprocs`` ranks on a square grid.

    ``nprocs`` must be the square of a power of two; the matrices may have
    any size.
    """
    if nprocs < 1:
        raise ValueError("at least one process is needed")
    a = np.asarray(a, dtype=DTYPE)
    b = np.asarray(b, dtype=DTYPE)
    if a.ndim != 2 or b.ndim != 2:
        raise ValueError("matrices must be two-dimensional")
    if a.shape[1] != b.shape[0]:
        raise ValueError(f"inner dimensions differ: {a.shape} and {b.shape}")
    side = math.isqrt(nprocs)
    if side * side != nprocs:
        raise ValueError(f"{nprocs} processes do not form a square grid")
    if side & (side - 1):
        raise ValueError(f"grid side {side} is not a power of two")
    return World(nprocs).run(_rank_main, a, b)[0]


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Multiply the problem in a file and check the answer."""
    return run_cli("cannon_irregular", multiply, argv)


if __name__ == "__main__":
    sys.exit(main())