import numpy as np
import pytest

from blockmatmul.col_row import main, multiply
from blockmatmul.gendata import generate, write_problem

CASES = [(5, 4, 6, 1), (5, 4, 6, 2), (3, 6, 9, 3), (1, 4, 8, 4), (7, 8, 8, 8)]


@pytest.mark.parametrize("case", CASES)
def test_reference_product(case):
    *dims, ranks = case
    problem = generate(*dims, rng=dims[1] * 10 + dims[2])
    np.testing.assert_array_equal(multiply(problem.a, problem.b, ranks), problem.c_ref)


def test_column_blocks_land_in_order():
    b = np.arange(16, dtype=np.float32).reshape(4, 4)
    np.testing.assert_array_equal(multiply(np.eye(4), b, 4), b)


def test_accepts_nested_lists():
    problem = generate(2, 2, 2, rng=9)
    nested = multiply(problem.a.tolist(), problem.b.tolist(), 2)
    np.testing.assert_array_equal(nested, problem.c_ref)


@pytest.mark.parametrize(
    "shapes, ranks",
    [(((2, 3), (3, 4)), 2), (((2, 4), (4, 3)), 2), (((2, 2), (2, 2)), -1)],
)
def test_uneven_or_empty_split(shapes, ranks):
    a, b = (np.ones(shape) for shape in shapes)
    with pytest.raises(ValueError):
        multiply(a, b, ranks)


@pytest.mark.parametrize(
    "count, code, expected",
    [("2", 0, "The answer is right !!!"), ("zero", 0, "Usage: col_row")],
)
def test_main(tmp_path, capsys, count, code, expected):
    path = write_problem(tmp_path / "problem.txt", generate(3, 4, 4, rng=4))
    assert main(["-n", count, str(path)]) == code
    assert expected in capsys.readouterr().out