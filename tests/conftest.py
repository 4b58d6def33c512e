import numpy as np
import pytest

from app_search.catalog import Item
from app_search.embedder import EmbeddingProvider
from app_search.pooling import TokenOutputs

# axis 0: footwear, axis 1: furniture, axis 2: colour
VOCAB = {
    "sneakers": [1.0, 0.0, 0.0],
    "running":  [1.0, 0.0, 0.0],
    "shoes":    [1.0, 0.0, 0.0],
    "office":   [0.0, 1.0, 0.0],
    "chair":    [0.0, 1.0, 0.0],
    "desk":     [0.0, 1.0, 0.0],
    "red":      [0.0, 0.0, 1.0],
    "blue":     [0.0, 0.0, 1.0],
}


class FakeProvider(EmbeddingProvider):
    """Word -> fixed concept vector; unknown words map to zero rows."""

    dim = 3

    def __init__(self, fail_on: str | None = None):
        self.calls: list[str] = []
        self.fail_on = fail_on

    def embed_raw(self, text: str) -> TokenOutputs:
        self.calls.append(text)
        if self.fail_on is not None and self.fail_on in text:
            raise RuntimeError("model exploded")
        rows = [VOCAB.get(tok, [0.0] * self.dim) for tok in text.lower().split()]
        return TokenOutputs.from_array(np.array(rows, dtype=np.float32).reshape(-1, self.dim))


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def items() -> list[Item]:
    return [
        Item(id="a", name="red running shoes"),
        Item(id="b", name="blue office chair"),
    ]


class MalformedProvider(FakeProvider):
    """Good output for catalog text, broken output for texts containing `bad_on`."""

    def __init__(self, bad_on: str, untyped: bool = False):
        super().__init__()
        self.bad_on = bad_on
        self.untyped = untyped

    def embed_raw(self, text: str):
        if self.bad_on not in text:
            return super().embed_raw(text)
        self.calls.append(text)
        if self.untyped:
            return np.ones((1, self.dim))
        return TokenOutputs(shape=(2, self.dim), data=[1.0, 2.0])
