from __future__ import annotations

import importlib.util
from typing import Any, Dict, Optional

import numpy as np

from matbench.data import Operation

from .base import LibraryAdapter, OperationFn, timed
from .numpy_adapter import SCALE_ALPHA


class TorchAdapter(LibraryAdapter):
    """Dense float64 CPU tensors backed by ``torch.linalg``."""

    name = "torch"

    def __init__(self) -> None:
        import torch

        self._torch = torch
        la = torch.linalg
        self._ops: Dict[Operation, OperationFn] = {
            Operation.ADD: timed(lambda a, b: a + b),
            Operation.SCALE: timed(lambda a: SCALE_ALPHA * a),
            Operation.MULT: timed(lambda a, b: a @ b),
            Operation.MULT_TRANS_A: timed(lambda a, b: a.T @ b),
            Operation.TRANSPOSE: timed(lambda a: a.T.contiguous()),
            Operation.DET: timed(la.det),
            Operation.INVERT: timed(la.inv),
            Operation.INVERT_SPD: timed(lambda a: torch.cholesky_inverse(la.cholesky(a))),
            Operation.CHOL: timed(la.cholesky),
            Operation.LU: timed(la.lu, lambda r: (r[0], r[1], r[2])),
            Operation.QR: timed(la.qr, lambda r: (r[0], r[1])),
            Operation.SVD: timed(
                lambda a: la.svd(a, full_matrices=False),
                lambda r: (r[0], torch.diag(r[1]), r[2].T),
            ),
            Operation.EIG_SYMM: timed(la.eigh, lambda r: (torch.diag(r[0]), r[1])),
            Operation.SOLVE_EXACT: timed(la.solve),
            Operation.SOLVE_OVER: timed(la.lstsq, lambda r: (r.solution,)),
        }

    @staticmethod
    def is_available() -> bool:
        return importlib.util.find_spec("torch") is not None

    def version(self) -> str:
        return self._torch.__version__

    def wrap(self, array: np.ndarray) -> Any:
        return self._torch.from_numpy(np.array(array, dtype=np.float64, copy=True))

    def unwrap(self, native: Any) -> np.ndarray:
        if isinstance(native, self._torch.Tensor):
            return native.detach().cpu().numpy().astype(np.float64, copy=False)
        return np.asarray(native, dtype=np.float64)

    def operation(self, op: Operation) -> Optional[OperationFn]:
        return self._ops.get(op)
