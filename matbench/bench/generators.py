"""Random input generation and output checks for every benchmarked operation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

import numpy as np

from matbench.adapters.numpy_adapter import SCALE_ALPHA
from matbench.data import Operation, OutputError

_BYTES_PER_ELEMENT = 8


def residual_error(found: np.ndarray, expected: np.ndarray) -> float:
    """Frobenius norm of the difference relative to the norm of ``expected``."""
    denom = float(np.linalg.norm(expected))
    diff = float(np.linalg.norm(found - expected))
    if denom == 0.0:
        return diff
    return diff / denom


def _random(rng: np.random.Generator, rows: int, cols: int) -> np.ndarray:
    return rng.uniform(-1.0, 1.0, size=(rows, cols))


def _random_spd(rng: np.random.Generator, n: int) -> np.ndarray:
    a = _random(rng, n, n)
    return a.T @ a + n * np.eye(n)


def _random_symmetric(rng: np.random.Generator, n: int) -> np.ndarray:
    a = _random(rng, n, n)
    return (a + a.T) / 2.0


class InputOutputGenerator(ABC):
    """Creates the inputs of one operation and validates its outputs."""

    num_outputs: int = 1
    matrices_per_size: int = 2
    """Number of n-by-n sized matrices alive during one trial, inputs and outputs."""

    @abstractmethod
    def create_inputs(self, rng: np.random.Generator, size: int) -> List[np.ndarray]: ...

    @abstractmethod
    def check(
        self, inputs: Sequence[np.ndarray], outputs: Sequence[np.ndarray], tol: float
    ) -> OutputError:
        """Check outputs that are already known to be complete and finite."""
        ...

    def required_memory(self, size: int) -> int:
        """Estimated bytes needed by the inputs and outputs at ``size``."""
        return self.matrices_per_size * size * size * _BYTES_PER_ELEMENT

    def check_results(
        self,
        inputs: Sequence[np.ndarray],
        outputs: Optional[Sequence[Optional[np.ndarray]]],
        tol: float,
    ) -> OutputError:
        if outputs is None or len(outputs) < self.num_outputs:
            return OutputError.MISC
        outputs = list(outputs[: self.num_outputs])
        if any(o is None for o in outputs):
            return OutputError.MISC
        if any(not np.all(np.isfinite(o)) for o in outputs):
            return OutputError.UNCOUNTABLE
        try:
            return self.check(inputs, outputs, tol)
        except ValueError:
            # shape mismatches surface as broadcasting / matmul errors
            return OutputError.MISC


def _compare(found: np.ndarray, expected: np.ndarray, tol: float) -> OutputError:
    if found.shape != expected.shape:
        return OutputError.MISC
    if residual_error(found, expected) > tol:
        return OutputError.LARGE_ERROR
    return OutputError.NO_ERROR


class AddGenerator(InputOutputGenerator):
    matrices_per_size = 3

    def create_inputs(self, rng, size):
        return [_random(rng, size, size), _random(rng, size, size)]

    def check(self, inputs, outputs, tol):
        return _compare(outputs[0], inputs[0] + inputs[1], tol)


class ScaleGenerator(InputOutputGenerator):
    def create_inputs(self, rng, size):
        return [_random(rng, size, size)]

    def check(self, inputs, outputs, tol):
        return _compare(outputs[0], SCALE_ALPHA * inputs[0], tol)


class MultGenerator(InputOutputGenerator):
    matrices_per_size = 3

    def __init__(self, transpose_a: bool = False) -> None:
        self._transpose_a = transpose_a

    def create_inputs(self, rng, size):
        return [_random(rng, size, size), _random(rng, size, size)]

    def check(self, inputs, outputs, tol):
        a = inputs[0].T if self._transpose_a else inputs[0]
        return _compare(outputs[0], a @ inputs[1], tol)


class TransposeGenerator(InputOutputGenerator):
    def create_inputs(self, rng, size):
        return [_random(rng, size, size)]

    def check(self, inputs, outputs, tol):
        return _compare(outputs[0], inputs[0].T, tol)


class DetGenerator(InputOutputGenerator):
    matrices_per_size = 1

    def create_inputs(self, rng, size):
        return [_random(rng, size, size)]

    def check(self, inputs, outputs, tol):
        expected = float(np.linalg.det(inputs[0]))
        found = float(np.asarray(outputs[0]).reshape(-1)[0])
        err = abs(found - expected) / max(abs(expected), np.finfo(np.float64).tiny)
        return OutputError.LARGE_ERROR if err > tol else OutputError.NO_ERROR


class InvertGenerator(InputOutputGenerator):
    def __init__(self, spd: bool = False) -> None:
        self._spd = spd

    def create_inputs(self, rng, size):
        if self._spd:
            return [_random_spd(rng, size)]
        return [_random(rng, size, size)]

    def check(self, inputs, outputs, tol):
        n = inputs[0].shape[0]
        if not self._spd:
            # the residual of a correct inverse grows with the condition number
            tol = tol * max(1.0, float(np.linalg.cond(inputs[0])))
        return _compare(inputs[0] @ outputs[0], np.eye(n), tol)


class CholGenerator(InputOutputGenerator):
    def create_inputs(self, rng, size):
        return [_random_spd(rng, size)]

    def check(self, inputs, outputs, tol):
        lower = outputs[0]
        return _compare(lower @ lower.T, inputs[0], tol)


class LuGenerator(InputOutputGenerator):
    num_outputs = 3
    matrices_per_size = 4

    def create_inputs(self, rng, size):
        return [_random(rng, size, size)]

    def check(self, inputs, outputs, tol):
        p, lower, upper = outputs
        return _compare(p @ lower @ upper, inputs[0], tol)


class QrGenerator(InputOutputGenerator):
    num_outputs = 2
    matrices_per_size = 3

    def create_inputs(self, rng, size):
        return [_random(rng, size, size)]

    def check(self, inputs, outputs, tol):
        q, r = outputs
        return _compare(q @ r, inputs[0], tol)


class SvdGenerator(InputOutputGenerator):
    num_outputs = 3
    matrices_per_size = 4

    def create_inputs(self, rng, size):
        return [_random(rng, size, size)]

    def check(self, inputs, outputs, tol):
        u, w, v = outputs
        return _compare(u @ w @ v.T, inputs[0], tol)


class EigSymmGenerator(InputOutputGenerator):
    num_outputs = 2
    matrices_per_size = 3

    def create_inputs(self, rng, size):
        return [_random_symmetric(rng, size)]

    def check(self, inputs, outputs, tol):
        d, v = outputs
        return _compare(inputs[0] @ v, v @ d, tol)


class SolveGenerator(InputOutputGenerator):
    """Solves ``A x = b``; over determined systems have twice as many rows as columns."""

    def __init__(self, over_determined: bool = False) -> None:
        self._rows_factor = 2 if over_determined else 1
        self.matrices_per_size = 1 + self._rows_factor

    def create_inputs(self, rng, size):
        rows = self._rows_factor * size
        return [_random(rng, rows, size), _random(rng, rows, 1)]

    def check(self, inputs, outputs, tol):
        a, b = inputs
        if self._rows_factor == 1:
            return _compare(a @ outputs[0], b, tol)
        expected = np.linalg.lstsq(a, b, rcond=None)[0]
        return _compare(outputs[0], expected, tol)


_GENERATORS: Dict[Operation, InputOutputGenerator] = {
    Operation.ADD: AddGenerator(),
    Operation.SCALE: ScaleGenerator(),
    Operation.MULT: MultGenerator(),
    Operation.MULT_TRANS_A: MultGenerator(transpose_a=True),
    Operation.TRANSPOSE: TransposeGenerator(),
    Operation.DET: DetGenerator(),
    Operation.INVERT: InvertGenerator(),
    Operation.INVERT_SPD: InvertGenerator(spd=True),
    Operation.CHOL: CholGenerator(),
    Operation.LU: LuGenerator(),
    Operation.QR: QrGenerator(),
    Operation.SVD: SvdGenerator(),
    Operation.EIG_SYMM: EigSymmGenerator(),
    Operation.SOLVE_EXACT: SolveGenerator(),
    Operation.SOLVE_OVER: SolveGenerator(over_determined=True),
}


def get_generator(op: Operation) -> InputOutputGenerator:
    return _GENERATORS[op]
