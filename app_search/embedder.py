# embedder.py
"""
Text -> token-level hidden states, and text -> pooled unit vector.

The ONNX provider loads its tokenizer and inference session on first use;
the load happens at most once per provider even when several threads
ask for an embedding at the same time.
"""
from pathlib import Path
import hashlib
import logging
import os
import threading

import numpy as np
import onnxruntime as ort
from transformers import AutoTokenizer

from app_search import config
from app_search.errors import EmbeddingProviderError
from app_search.pooling import TokenOutputs, pool_and_normalize

logger = logging.getLogger(__name__)


class EmbeddingProvider:
    """Anything with `embed_raw(text) -> TokenOutputs`."""

    def embed_raw(self, text: str) -> TokenOutputs:
        raise NotImplementedError


# ── ONNX transformer ──────────────────────────────────────────────────
class OnnxEmbeddingProvider(EmbeddingProvider):
    def __init__(
        self,
        model_dir: str | os.PathLike = config.MODEL_DIR,
        onnx_path: str | os.PathLike = config.ONNX_MODEL_PATH,
        max_length: int = config.MAX_LENGTH,
    ):
        self.model_dir  = Path(model_dir)
        self.onnx_path  = Path(onnx_path)
        self.max_length = max_length
        self._tokenizer = None
        self._session   = None
        self._lock      = threading.Lock()

    def _load(self):
        if self._session is not None:
            return self._tokenizer, self._session
        with self._lock:
            if self._session is None:
                logger.info("loading tokenizer from %s and model %s", self.model_dir, self.onnx_path)
                try:
                    tokenizer = AutoTokenizer.from_pretrained(
                        self.model_dir.as_posix(), local_files_only=True
                    )
                    opts = ort.SessionOptions()
                    opts.intra_op_num_threads     = os.cpu_count() or 1
                    opts.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
                    session = ort.InferenceSession(
                        self.onnx_path.as_posix(),
                        sess_options=opts,
                        providers=["CPUExecutionProvider"],
                    )
                except Exception as e:
                    raise EmbeddingProviderError(f"failed to load embedding model: {e}") from e
                # tokenizer first: readers check _session only
                self._tokenizer = tokenizer
                self._session   = session
        return self._tokenizer, self._session

    def embed_raw(self, text: str) -> TokenOutputs:
        tokenizer, session = self._load()
        try:
            toks = tokenizer(
                text,
                return_tensors="np",
                truncation=True,
                max_length=self.max_length,
            )
            feed = {}
            for inp in session.get_inputs():
                if inp.name in toks:
                    feed[inp.name] = toks[inp.name].astype(np.int64)
                elif inp.name == "token_type_ids":
                    feed[inp.name] = np.zeros_like(toks["input_ids"], dtype=np.int64)
            hidden = session.run(None, feed)[0]   # last_hidden_state, (1, L, D)
            return TokenOutputs.from_array(hidden)
        except Exception as e:
            raise EmbeddingProviderError(f"embedding failed: {e}") from e


# ── hashed bag-of-words ───────────────────────────────────────────────
class HashingEmbeddingProvider(EmbeddingProvider):
    """
    Light-weight, deterministic stand-in for a real model: every
    lower-cased whitespace token becomes a one-hot row at an MD5-hashed
    position. No download, no semantics beyond shared words.
    """

    def __init__(self, dim: int = 384):
        self.dim = dim

    def embed_raw(self, text: str) -> TokenOutputs:
        tokens = text.lower().split()
        rows = np.zeros((len(tokens), self.dim), dtype=np.float32)
        for i, token in enumerate(tokens):
            h = int(hashlib.md5(token.encode()).hexdigest(), 16)
            rows[i, h % self.dim] = 1.0
        return TokenOutputs.from_array(rows)


def embed_text(provider: EmbeddingProvider, text: str) -> np.ndarray:
    """Provider + mean pooling + L2 normalisation -> unit vector of length D."""
    try:
        outputs = provider.embed_raw(text)
    except EmbeddingProviderError:
        raise
    except Exception as e:
        raise EmbeddingProviderError(f"embedding provider failed: {e}") from e
    if not isinstance(outputs, TokenOutputs):
        raise EmbeddingProviderError(
            f"provider returned {type(outputs).__name__}, expected TokenOutputs"
        )
    return pool_and_normalize(outputs)
