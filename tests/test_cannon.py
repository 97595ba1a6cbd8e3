import io

import numpy as np
import pytest

from blockmatmul.cannon import main, multiply
from blockmatmul.gendata import generate, write_problem


def _matrices(m, p, n, seed=0):
    rng = np.random.default_rng(seed)
    a = rng.integers(0, 10, size=(m, p)).astype(np.float32)
    b = rng.integers(0, 10, size=(p, n)).astype(np.float32)
    return a, b


@pytest.mark.parametrize("nprocs", [1, 4, 9, 16])
def test_square_product_matches_numpy(nprocs):
    a, b = _matrices(12, 12, 12, seed=nprocs)
    result = multiply(a, b, nprocs)
    np.testing.assert_array_equal(result, a @ b)


@pytest.mark.parametrize("shape", [(4, 6, 8), (6, 2, 4), (2, 8, 2)])
def test_rectangular_product_matches_numpy(shape):
    a, b = _matrices(*shape, seed=3)
    result = multiply(a, b, 4)
    assert result.shape == (shape[0], shape[2])
    np.testing.assert_array_equal(result, a @ b)


def test_identity_leaves_matrix_unchanged():
    a, _ = _matrices(6, 6, 6, seed=7)
    result = multiply(a, np.eye(6, dtype=np.float32), 9)
    np.testing.assert_array_equal(result, a)


def test_result_dtype_is_float32():
    a, b = _matrices(4, 4, 4)
    assert multiply(a.astype(np.float64), b, 4).dtype == np.float32


def test_rejects_non_square_process_count():
    a, b = _matrices(6, 6, 6)
    with pytest.raises(ValueError, match="square grid"):
        multiply(a, b, 3)


def test_rejects_indivisible_dimensions():
    a, b = _matrices(5, 4, 4)
    with pytest.raises(ValueError, match="do not divide"):
        multiply(a, b, 4)


def test_rejects_mismatched_inner_dimensions():
    a = np.ones((4, 4), dtype=np.float32)
    b = np.ones((2, 4), dtype=np.float32)
    with pytest.raises(ValueError, match="inner dimensions"):
        multiply(a, b, 4)


def test_rejects_zero_processes():
    a, b = _matrices(2, 2, 2)
    with pytest.raises(ValueError):
        multiply(a, b, 0)


def test_main_reports_right_answer(tmp_path, capsys):
    path = write_problem(tmp_path / "problem.txt", generate(4, 8, 6, rng=11))
    assert main(["-n", "4", str(path)]) == 0
    output = capsys.readouterr().out
    assert "M = 4, P = 8, N = 6" in output
    assert "The answer is right !!!" in output


def test_main_fails_on_bad_process_count(tmp_path, capsys):
    path = write_problem(tmp_path / "problem.txt", generate(4, 4, 4, rng=1))
    assert main(["-n", "3", str(path)]) == 1
    assert "square grid" in capsys.readouterr().out


def test_main_prints_usage_without_file(capsys):
    assert main([]) == 0
    assert capsys.readouterr().out.startswith("Usage: cannon")