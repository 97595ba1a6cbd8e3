import numpy as np
import pytest

from blockmatmul.cannon_shifted import main, multiply
from blockmatmul.gendata import generate, write_problem


def _matrices(m, p, n, seed=0):
    rng = np.random.default_rng(seed)
    a = rng.integers(0, 10, size=(m, p)).astype(np.float32)
    b = rng.integers(0, 10, size=(p, n)).astype(np.float32)
    return a, b


@pytest.mark.parametrize("nprocs", [1, 4, 9, 16, 25])
def test_square_product_matches_numpy(nprocs):
    a, b = _matrices(20, 20, 20, seed=nprocs) if nprocs in (1, 4, 16, 25) else _matrices(18, 18, 18, seed=nprocs)
    result = multiply(a, b, nprocs)
    np.testing.assert_array_equal(result, a @ b)


@pytest.mark.parametrize("shape", [(4, 6, 8), (6, 2, 4), (2, 8, 2)])
def test_rectangular_product_matches_numpy(shape):
    a, b = _matrices(*shape, seed=5)
    result = multiply(a, b, 4)
    assert result.shape == (shape[0], shape[2])
    np.testing.assert_array_equal(result, a @ b)


def test_rectangular_product_on_larger_grid():
    a, b = _matrices(9, 6, 3, seed=8)
    np.testing.assert_array_equal(multiply(a, b, 9), a @ b)


def test_identity_leaves_matrix_unchanged():
    _, b = _matrices(8, 8, 8, seed=2)
    result = multiply(np.eye(8, dtype=np.float32), b, 16)
    np.testing.assert_array_equal(result, b)


def test_rejects_non_square_process_count():
    a, b = _matrices(6, 6, 6)
    with pytest.raises(ValueError, match="square grid"):
        multiply(a, b, 2)


def test_rejects_indivisible_dimensions():
    a, b = _matrices(4, 4, 5)
    with pytest.raises(ValueError, match="do not divide"):
        multiply(a, b, 4)


def test_rejects_mismatched_inner_dimensions():
    a = np.ones((4, 2), dtype=np.float32)
    b = np.ones((4, 4), dtype=np.float32)
    with pytest.raises(ValueError, match="inner dimensions"):
        multiply(a, b, 4)


def test_rejects_one_dimensional_input():
    with pytest.raises(ValueError, match="two-dimensional"):
        multiply(np.ones(4), np.ones(4), 1)


def test_main_reports_right_answer(tmp_path, capsys):
    path = write_problem(tmp_path / "problem.txt", generate(6, 3, 9, rng=4))
    assert main(["--nprocs", "9", str(path)]) == 0
    output = capsys.readouterr().out
    assert "M = 6, P = 3, N = 9" in output
    assert "The answer is right !!!" in output


def test_main_reports_wrong_reference(tmp_path, capsys):
    problem = generate(4, 4, 4, rng=6)
    problem.c_ref[0, 0] += 1
    path = write_problem(tmp_path / "problem.txt", problem)
    assert main(["-n", "4", str(path)]) == 1
    output = capsys.readouterr().out
    assert "Error on index 0" in output
    assert "The answer is wrong !!!" in output


def test_main_prints_usage_without_file(capsys):
    assert main([]) == 0
    assert capsys.readouterr().out.startswith("Usage: cannon_shifted")