from __future__ import annotations

from typing import Any, Dict, Optional

import numpy as np

from matbench.data import Operation

from .base import LibraryAdapter, OperationFn, timed

SCALE_ALPHA = 2.5


def _inv_spd(a: np.ndarray) -> np.ndarray:
    l_inv = np.linalg.inv(np.linalg.cholesky(a))
    return l_inv.T @ l_inv


def _svd_outputs(r: Any) -> tuple:
    u, s, vh = r
    return u, np.diag(s), vh.T


def _eigh_outputs(r: Any) -> tuple:
    w, v = r
    return np.diag(w), v


class NumpyAdapter(LibraryAdapter):
    """Dense float64 matrices backed by ``numpy.linalg``."""

    name = "numpy"

    def __init__(self) -> None:
        self._ops: Dict[Operation, OperationFn] = {
            Operation.ADD: timed(lambda a, b: a + b),
            Operation.SCALE: timed(lambda a: SCALE_ALPHA * a),
            Operation.MULT: timed(lambda a, b: a @ b),
            Operation.MULT_TRANS_A: timed(lambda a, b: a.T @ b),
            Operation.TRANSPOSE: timed(lambda a: np.ascontiguousarray(a.T)),
            Operation.DET: timed(np.linalg.det),
            Operation.INVERT: timed(np.linalg.inv),
            Operation.INVERT_SPD: timed(_inv_spd),
            Operation.CHOL: timed(np.linalg.cholesky),
            Operation.QR: timed(np.linalg.qr, lambda r: (r[0], r[1])),
            Operation.SVD: timed(np.linalg.svd, _svd_outputs),
            Operation.EIG_SYMM: timed(np.linalg.eigh, _eigh_outputs),
            Operation.SOLVE_EXACT: timed(np.linalg.solve),
            Operation.SOLVE_OVER: timed(
                lambda a, b: np.linalg.lstsq(a, b, rcond=None), lambda r: (r[0],)
            ),
        }

    @staticmethod
    def is_available() -> bool:
        return True

    def version(self) -> str:
        return np.__version__

    def wrap(self, array: np.ndarray) -> np.ndarray:
        return np.array(array, dtype=np.float64, copy=True)

    def unwrap(self, native: Any) -> np.ndarray:
        return np.asarray(native, dtype=np.float64)

    def operation(self, op: Operation) -> Optional[OperationFn]:
        # numpy has no LU decomposition
        return self._ops.get(op)
