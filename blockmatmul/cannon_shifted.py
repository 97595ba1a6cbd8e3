"""Cannon's algorithm on a square grid of ranks with an initial skew.

Before the main loop, row ``r`` of the grid shifts its blocks of A ``r`` places
left and column ``c`` shifts its blocks of B ``c`` places up. Each shift takes
the shorter way round the ring. Every step then multiplies the local blocks and
moves A one place left and B one place up.
"""

from __future__ import annotations

import math
import sys
from typing import Iterator, List, Optional, Sequence

import numpy as np

from blockmatmul.comm import Communicator, World
from blockmatmul.kernel import DTYPE, mat_mul
from blockmatmul.runner import run_cli

_B_TAG_OFFSET = 77
_SKEW_A_RIGHT_TAG = 111
_SKEW_A_LEFT_TAG = 222
_SKEW_B_DOWN_TAG = 333
_SKEW_B_UP_TAG = 444
_SHIFT_A_TAG = 555
_SHIFT_B_TAG = 666


def _operands(a, b, nprocs: int):
    if nprocs < 1:
        raise ValueError("at least one process is needed")
    a = np.asarray(a, dtype=DTYPE)
    b = np.asarray(b, dtype=DTYPE)
    if a.ndim != 2 or b.ndim != 2:
        raise ValueError("matrices must be two-dimensional")
    if a.shape[1] != b.shape[0]:
        raise ValueError(f"inner dimensions differ: {a.shape} and {b.shape}")
    return a, b


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
    root = comm.rank == 0
    side = math.isqrt(comm.size)
    m, p, n = comm.bcast((a.shape[0], a.shape[1], b.shape[1]) if root else None, 0)
    mr, nc = m // side, n // side

    if root:
        for dest, (a_block, b_block) in enumerate(zip(_tiles(a, side), _tiles(b, side))):
            comm.send(a_block, dest, dest)
            comm.send(b_block, dest, dest + _B_TAG_OFFSET)
    a_sub = comm.recv(0, comm.rank)
    b_sub = comm.recv(0, comm.rank + _B_TAG_OFFSET)

    row, col = divmod(comm.rank, side)
    right = row * side + (col + 1) % side
    left = row * side + (col - 1) % side
    up = ((row - 1) % side) * side + col
    down = ((row + 1) % side) * side + col

    if row > side // 2:
        for _ in range(side - row):
            a_sub = comm.sendrecv(a_sub, right, left, _SKEW_A_RIGHT_TAG)
    else:
        for _ in range(row):
            a_sub = comm.sendrecv(a_sub, left, right, _SKEW_A_LEFT_TAG)

    if col > side // 2:
        for _ in range(side - col):
            b_sub = comm.sendrecv(b_sub, down, up, _SKEW_B_DOWN_TAG)
    else:
        for _ in range(col):
            b_sub = comm.sendrecv(b_sub, up, down, _SKEW_B_UP_TAG)

    c_sub = np.zeros((mr, nc), dtype=DTYPE)
    for step in range(side):
        mat_mul(a_sub, b_sub, c_sub)
        if step < side - 1:
            a_sub = comm.sendrecv(a_sub, left, right, _SHIFT_A_TAG)
            b_sub = comm.sendrecv(b_sub, up, down, _SHIFT_B_TAG)

    blocks = comm.gather(c_sub, 0)
    return _assemble(blocks, side) if root else None


def multiply(a, b, nprocs: int) -> np.ndarray:
    """Return ``a @ b`` computed by ``nprocs`` ranks with Cannon's algorithm.

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
    return run_cli("cannon_shifted", multiply, argv)


if __name__ == "__main__":
    sys.exit(main())