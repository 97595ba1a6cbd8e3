"""Distributed product on a square grid of ranks with row broadcasts of A.

The ranks form a ``size`` x ``size`` grid and each holds one block of A, B and C.
In every step one block of A is passed along each grid row through a ring.
Each rank multiplies that block with its current block of B.
Then the blocks of B move one row up the grid.
"""

from __future__ import annotations

import math
import sys
from typing import Iterator, List, Optional, Sequence

import numpy as np

from blockmatmul.comm import Communicator, World
from blockmatmul.kernel import DTYPE, mat_mul
from blockmatmul.row_col import _gather, _operands, _shape
from blockmatmul.runner import run_cli

_B_TAG_OFFSET = 77
_ROW_TAG = 777
_COL_TAG = 778


def _grid_side(nprocs: int) -> int:
    side = math.isqrt(nprocs)
    if side * side != nprocs:
        raise ValueError(f"{nprocs} processes do not form a square grid")
    return side


def _tiles(matrix: np.ndarray, side: int) -> Iterator[np.ndarray]:
    """Yield the ``side`` x ``side`` blocks of ``matrix`` in row-major order."""
    for band in np.vsplit(matrix, side):
        for block in np.hsplit(band, side):
            yield np.ascontiguousarray(block)


def _assemble(blocks: List[np.ndarray], side: int) -> np.ndarray:
    return np.block([blocks[start:start + side] for start in range(0, len(blocks), side)])


def _rank_main(comm: Communicator, a: np.ndarray, b: np.ndarray) -> Optional[np.ndarray]:
    side = math.isqrt(comm.size)
    m, _, n = _shape(comm, a, b)
    mr, nc = m // side, n // side

    if comm.rank == 0:
        for dest, (a_block, b_block) in enumerate(zip(_tiles(a, side), _tiles(b, side))):
            comm.send(a_block, dest, dest)
            comm.send(b_block, dest, dest + _B_TAG_OFFSET)
    a_sub = comm.recv(0, comm.rank)
    b_sub = comm.recv(0, comm.rank + _B_TAG_OFFSET)

    row, col = divmod(comm.rank, side)
    next_col = (col + 1) % side
    right = row * side + next_col
    left = row * side + (col - 1) % side
    up = ((row - 1) % side) * side + col
    down = ((row + 1) % side) * side + col

    c_sub = np.zeros((mr, nc), dtype=DTYPE)
    for step in range(side):
        owner = (step + row) % side
        if col == owner:
            if side > 1:
                comm.send(a_sub, right, _ROW_TAG)
            block = a_sub
        else:
            block = comm.recv(left, _ROW_TAG)
            if next_col != owner:
                comm.send(block, right, _ROW_TAG)
        mat_mul(block, b_sub, c_sub)
        if step < side - 1:
            b_sub = comm.sendrecv(b_sub, up, down, _COL_TAG)

    return _gather(comm, c_sub, lambda blocks: _assemble(blocks, side))


def multiply(a, b, nprocs: int) -> np.ndarray:
    """Return ``a @ b`` computed by ``nprocs`` ranks on a square grid.

    ``nprocs`` must be a perfect square and every dimension must divide
    evenly by its square root.
    """
    a, b = _operands(a, b, nprocs)
    side = _grid_side(nprocs)
    m, p = a.shape
    n = b.shape[1]
    if m % side or p % side or n % side:
        raise ValueError(
            f"dimensions {m} x {p} x {n} do not divide into a {side} x {side} grid"
        )
    return World(nprocs).run(_rank_main, a, b)[0]


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Multiply the problem in a file and check the answer."""
    return run_cli("cannon", multiply, argv)


if __name__ == "__main__":
    sys.exit(main())