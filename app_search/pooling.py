# pooling.py
"""
Turns a model's per-token hidden states into one unit-length vector.

Everything here is a pure function of its input, so it is safe to call
from several request threads at once.
"""
from dataclasses import dataclass

import numpy as np

from app_search.errors import DegenerateVectorError, InvalidTokenOutputsError


@dataclass(frozen=True)
class TokenOutputs:
    """
    Raw model output for one text: a flat float buffer plus its shape.

    `shape` is `(L, D)` or `(1, L, D)` when the model keeps a batch axis;
    `data` holds the `L * D` values in row-major order.
    """
    shape: tuple
    data: np.ndarray

    def __post_init__(self):
        shape = tuple(int(s) for s in self.shape)
        if len(shape) not in (2, 3):
            raise InvalidTokenOutputsError(f"expected (L, D) or (1, L, D), got {shape}")
        if len(shape) == 3 and shape[0] != 1:
            raise InvalidTokenOutputsError(f"batch of {shape[0]} texts, expected 1")
        if any(s < 0 for s in shape):
            raise InvalidTokenOutputsError(f"negative dimension in {shape}")
        data = np.asarray(self.data, dtype=np.float32).reshape(-1)
        if data.size != int(np.prod(shape)):
            raise InvalidTokenOutputsError(
                f"shape {shape} needs {int(np.prod(shape))} values, got {data.size}"
            )
        object.__setattr__(self, "shape", shape)
        object.__setattr__(self, "data", data)

    @classmethod
    def from_array(cls, arr) -> "TokenOutputs":
        arr = np.asarray(arr, dtype=np.float32)
        return cls(shape=arr.shape, data=arr.reshape(-1))

    @property
    def num_tokens(self) -> int:
        return self.shape[-2]

    @property
    def dim(self) -> int:
        return self.shape[-1]

    def token_matrix(self) -> np.ndarray:
        """(L, D) view of the data."""
        return self.data.reshape(self.num_tokens, self.dim)


# ── pooling ───────────────────────────────────────────────────────────
def mean_pool(outputs: TokenOutputs) -> np.ndarray:
    """Average the L token vectors dimension by dimension -> (D,)."""
    if outputs.num_tokens == 0:
        raise DegenerateVectorError("no tokens to pool")
    # accumulate in float64, the sum over long sequences loses precision in fp32
    return outputs.token_matrix().astype(np.float64).mean(axis=0)


# ── L2 helper ─────────────────────────────────────────────────────────
def l2_normalize(vec) -> np.ndarray:
    v = np.asarray(vec, dtype=np.float64)
    norm = np.linalg.norm(v)
    if not np.isfinite(norm) or norm == 0.0:
        raise DegenerateVectorError(f"cannot normalise a vector with norm {norm}")
    return (v / norm).astype(np.float32)


def pool_and_normalize(outputs: TokenOutputs) -> np.ndarray:
    return l2_normalize(mean_pool(outputs))
