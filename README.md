# blockmatmul

Dense matrix multiplication `C = A @ B` computed by distributing blocks of the
operands over a group of ranks that exchange data only through messages. The
ranks run as threads inside one Python process and talk through a small
in-process communicator, so the data movement of each scheme can be studied
and checked without a cluster. Matrices are `float32` numpy arrays.

Eight commands are provided: one that generates test problems and seven that
multiply the matrices in a problem file and verify the result.

## Schemes

| Module | Command | Decomposition |
| --- | --- | --- |
| `blockmatmul.row_col` | `blockmatmul-row-col` | row blocks of A stay put, column blocks of B rotate around a ring |
| `blockmatmul.row_row` | `blockmatmul-row-row` | row blocks of A stay put, row blocks of B rotate around a ring |
| `blockmatmul.col_row` | `blockmatmul-col-row` | column blocks of A, row blocks of B, partial column blocks of C rotate |
| `blockmatmul.col_col` | `blockmatmul-col-col` | column blocks of A and B, the blocks of A rotate |
| `blockmatmul.cannon` | `blockmatmul-cannon` | square grid, A passed along grid rows, B shifted up grid columns |
| `blockmatmul.cannon_shifted` | `blockmatmul-cannon-shifted` | square grid, initial skew, then A shifted left and B shifted up (Cannon's algorithm) |
| `blockmatmul.cannon_irregular` | `blockmatmul-cannon-irregular` | square grid, blocks of uneven size made by recursive halving, A broadcast along grid rows |

Each module has `multiply(a, b, nprocs)`, which returns `a @ b` computed by
`nprocs` ranks, and raises `ValueError` when the layout does not fit:

- `row_col`: the rows of A and the columns of B must divide by `nprocs`.
- `row_row`: the rows of A and of B must divide by `nprocs`.
- `col_row`, `col_col`: the columns of A and of B must divide by `nprocs`.
- `cannon`, `cannon_shifted`: `nprocs` must be a perfect square and M, P and N
  must all divide by its square root.
- `cannon_irregular`: `nprocs` must be the square of a power of two; the
  matrices may have any size. `halving_extents(length, parts)` gives the block
  sizes it uses, the first half keeping the larger share at each halving.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Generating a problem

```
blockmatmul-gendata M P N
```

writes a random problem with `A` of shape `M x P` and `B` of shape `P x N`
(entries are integers 0 to 9) together with the reference product to
`data/matrix_M_P_N.txt`, creating the `data` directory if needed. The file
starts with a line `M P N` and then lists the entries of `A`, `B` and the
reference `C`, one per line, row by row. Given the wrong number of arguments
it prints a usage line.

## Running a scheme

```
blockmatmul-cannon data/matrix_64_64_64.txt
blockmatmul-row-col -n 8 data/matrix_64_64_64.txt
```

Each scheme command takes `[-n NPROCS] file` (also `--nprocs`); the default is
4 ranks. It prints the dimensions, multiplies, and compares the result element
by element with the reference, with a tolerance of `1e-6`. It then prints
either `The answer is right !!!` followed by the elapsed time and the GFLOPS
rate, or up to three mismatching entries and `The answer is wrong !!!`. The
exit status is 0 when the answer is right and 1 when it is wrong or the file
or layout is rejected.

## Using the library

```python
import numpy as np

from blockmatmul.cannon_shifted import multiply
from blockmatmul.kernel import check, mat_mul, read_problem

a = np.arange(16, dtype=np.float32).reshape(4, 4)
b = np.eye(4, dtype=np.float32)
c = multiply(a, b, 4)          # 2 x 2 grid of ranks

problem = read_problem("data/matrix_64_64_64.txt")
ok = check(multiply(problem.a, problem.b, 4), problem.c_ref)
```

- `blockmatmul.kernel`:
  - `Problem(a, b, c_ref)` holds a problem, with `m`, `p`, `n` and `flops`.
  - `mat_mul(a, b, c)` accumulates `a @ b` into `c` in place.
  - `read_problem(path)` loads a problem file.
  - `mismatches(ans, ref, threshold, limit)` yields `(index, answer, reference)`
    where the flattened results differ by more than `threshold`.
  - `check(ans, ref, threshold, out)` reports up to three of them and returns
    whether there were none.
- `blockmatmul.gendata`:
  - `generate(m, p, n, rng)` builds a random problem; `rng` is a numpy
    `Generator`, a seed or `None`.
  - `write_problem(path, problem)` saves it.
- `blockmatmul.runner`:
  - `report(problem, result, elapsed, out)` prints the verdict.
  - `run_cli(prog, solver, argv, out)` is the command driver shared by the
    schemes.
- `blockmatmul.comm`:
  - `World(size).run(target, *args)` runs `target(comm, *args)` on every rank
    and returns the results by rank, raising again the first error of any rank.
  - `Communicator` offers `send`, `recv`, `sendrecv`, `bcast`, `scatter`,
    `gather` and `split`. Sends are buffered and never block, and each message
    is a deep copy. A receive waits at most `World.timeout` seconds (60 by
    default) and then raises `TimeoutError`.
  - `create_grid_comms(comm, p)` splits a communicator into the row and column
    communicators of a `p x p` grid.

## What it does not do

The ranks are threads of one process, not separate processes, and there is no
way to spread them over several machines. The reported elapsed time and GFLOPS
rate therefore describe the in-process simulation, not a parallel speed-up.