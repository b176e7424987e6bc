"""Strong-typed definitions of benchmark cases and the plans handed to workers."""

from enum import Enum
from typing import List

from pydantic import ConfigDict, Field, field_validator

from .utils import BaseModelWithDocstrings, NonEmptyString, PositiveInt, safe_file_stem


class Operation(str, Enum):
    """The fixed menu of matrix operations that can be benchmarked."""

    ADD = "add"
    """C = A + B"""
    SCALE = "scale"
    """C = alpha * A"""
    MULT = "mult"
    """C = A * B"""
    MULT_TRANS_A = "mult_trans_a"
    """C = A^T * B"""
    TRANSPOSE = "transpose"
    """C = A^T"""
    DET = "det"
    """Determinant of a square matrix."""
    INVERT = "invert"
    """Inverse of a general square matrix."""
    INVERT_SPD = "invert_spd"
    """Inverse of a symmetric positive definite matrix."""
    CHOL = "chol"
    """Cholesky decomposition A = L * L^T."""
    LU = "lu"
    """LU decomposition with partial pivoting, A = P * L * U."""
    QR = "qr"
    """QR decomposition A = Q * R."""
    SVD = "svd"
    """Singular value decomposition A = U * W * V^T."""
    EIG_SYMM = "eig_symm"
    """Eigen decomposition of a symmetric matrix."""
    SOLVE_EXACT = "solve_exact"
    """Solve the square system A * x = b."""
    SOLVE_OVER = "solve_over"
    """Least-squares solution of an over determined system A * x = b."""


class BenchmarkCase(BaseModelWithDocstrings):
    """One operation for one implementation under test, swept across several sizes.

    A case is immutable once constructed. The sizes are the matrix dimensions that are
    benchmarked in order, smallest first.
    """

    model_config = ConfigDict(frozen=True)

    operation: Operation
    """The operation that is benchmarked."""
    library: NonEmptyString
    """Name of the library adapter that implements the operation."""
    sizes: List[int] = Field(min_length=1)
    """Matrix sizes to sweep, strictly increasing."""
    max_trials: PositiveInt
    """Number of trials after which a size is considered done."""

    @field_validator("sizes")
    @classmethod
    def _validate_sizes(cls, v: List[int]) -> List[int]:
        if any(s <= 0 for s in v):
            raise ValueError("sizes must be positive")
        if any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError("sizes must be strictly increasing")
        return v

    @property
    def name(self) -> str:
        """Human readable identifier, e.g. ``mult[numpy]``."""
        return f"{self.operation.value}[{self.library}]"

    @property
    def file_name(self) -> str:
        """File name (without extension) of the persisted record of this case."""
        return safe_file_stem(f"{self.operation.value}_{self.library}")


class BlockPlan(BaseModelWithDocstrings):
    """Everything an isolated worker needs to run one block.

    The plan is written to disk by the controlling process and read back by the worker.
    """

    operation: Operation
    """The operation to benchmark."""
    library: NonEmptyString
    """Name of the library adapter to load inside the worker."""
    size: PositiveInt
    """Matrix size of every trial in the block."""
    seed: int = Field(ge=0)
    """Master seed; combined with the request id and the size to seed the trials."""
    trial_time: float = Field(gt=0.0)
    """Target duration of one trial in seconds."""
    max_trial_time: float = Field(gt=0.0)
    """A trial that takes longer than this stops the block as too slow."""
    sanity_check: bool = False
    """If true the output of every trial is validated."""
    tolerance: float = Field(default=1e-6, gt=0.0)
    """Residual tolerance used by the validation."""
