import numpy as np
import pytest

from matbench.adapters import NumpyAdapter
from matbench.bench.generators import get_generator, residual_error
from matbench.data import Operation, OutputError

NUMPY_OPERATIONS = [op for op in Operation if op != Operation.LU]


def reference_lu(a):
    """Doolittle factorization with partial pivoting, returning P, L, U with A = P L U."""
    n = a.shape[0]
    u = a.copy()
    lower = np.eye(n)
    perm = np.arange(n)
    for k in range(n - 1):
        pivot = k + int(np.argmax(np.abs(u[k:, k])))
        if pivot != k:
            u[[k, pivot], :] = u[[pivot, k], :]
            lower[[k, pivot], :k] = lower[[pivot, k], :k]
            perm[[k, pivot]] = perm[[pivot, k]]
        for i in range(k + 1, n):
            lower[i, k] = u[i, k] / u[k, k]
            u[i, :] -= lower[i, k] * u[k, :]
    p = np.eye(n)[:, perm]
    return p, lower, u


def run_numpy(op, inputs):
    fn = NumpyAdapter().operation(op)
    _, outputs = fn(inputs, 1)
    return [np.asarray(o) for o in outputs]


@pytest.mark.parametrize("op", NUMPY_OPERATIONS, ids=lambda op: op.value)
def test_numpy_outputs_pass_check(op):
    gen = get_generator(op)
    inputs = gen.create_inputs(np.random.default_rng(0), 6)
    outputs = run_numpy(op, inputs)
    assert gen.check_results(inputs, outputs, 1e-8) == OutputError.NO_ERROR


def test_lu_check():
    gen = get_generator(Operation.LU)
    inputs = gen.create_inputs(np.random.default_rng(0), 5)
    outputs = reference_lu(inputs[0])
    assert gen.check_results(inputs, outputs, 1e-8) == OutputError.NO_ERROR


@pytest.mark.parametrize("op", [Operation.MULT, Operation.INVERT, Operation.SVD, Operation.QR])
def test_perturbed_output_is_large_error(op):
    gen = get_generator(op)
    inputs = gen.create_inputs(np.random.default_rng(1), 6)
    outputs = run_numpy(op, inputs)
    outputs[0] = outputs[0] + 0.5
    assert gen.check_results(inputs, outputs, 1e-8) == OutputError.LARGE_ERROR


def test_non_finite_output_is_uncountable():
    gen = get_generator(Operation.ADD)
    inputs = gen.create_inputs(np.random.default_rng(0), 3)
    found = inputs[0] + inputs[1]
    found[1, 1] = np.inf
    assert gen.check_results(inputs, [found], 1e-8) == OutputError.UNCOUNTABLE


def test_missing_outputs_are_misc():
    gen = get_generator(Operation.QR)
    inputs = gen.create_inputs(np.random.default_rng(0), 3)
    assert gen.check_results(inputs, None, 1e-8) == OutputError.MISC
    assert gen.check_results(inputs, [np.eye(3)], 1e-8) == OutputError.MISC
    assert gen.check_results(inputs, [np.eye(3), None], 1e-8) == OutputError.MISC


def test_wrong_shape_is_misc():
    gen = get_generator(Operation.MULT)
    inputs = gen.create_inputs(np.random.default_rng(0), 4)
    assert gen.check_results(inputs, [np.zeros((3, 3))], 1e-8) == OutputError.MISC


def test_inputs_have_expected_shapes():
    rng = np.random.default_rng(0)
    a, b = get_generator(Operation.SOLVE_OVER).create_inputs(rng, 5)
    assert a.shape == (10, 5)
    assert b.shape == (10, 1)
    (spd,) = get_generator(Operation.CHOL).create_inputs(rng, 5)
    assert np.allclose(spd, spd.T)
    assert np.all(np.linalg.eigvalsh(spd) > 0)


def test_inputs_depend_only_on_rng_state():
    gen = get_generator(Operation.MULT)
    first = gen.create_inputs(np.random.default_rng(3), 4)
    second = gen.create_inputs(np.random.default_rng(3), 4)
    assert all(np.array_equal(a, b) for a, b in zip(first, second))


def test_required_memory_grows_with_size():
    gen = get_generator(Operation.ADD)
    assert gen.required_memory(1000) == 3 * 1000 * 1000 * 8
    assert get_generator(Operation.SOLVE_OVER).required_memory(10) == 3 * 100 * 8


def test_residual_error():
    a = np.ones((2, 2))
    assert residual_error(a, a) == 0.0
    assert residual_error(2 * a, a) == pytest.approx(1.0)
    assert residual_error(a, np.zeros((2, 2))) == pytest.approx(2.0)


def test_inverse_check_accounts_for_conditioning():
    rng = np.random.default_rng(5)
    n = 8
    u, _ = np.linalg.qr(rng.standard_normal((n, n)))
    v, _ = np.linalg.qr(rng.standard_normal((n, n)))
    a = u @ np.diag(np.logspace(0, -12, n)) @ v.T
    gen = get_generator(Operation.INVERT)
    assert gen.check_results([a], [np.linalg.inv(a)], 1e-6) == OutputError.NO_ERROR
