from __future__ import annotations

import hashlib
import re
from typing import List

import numpy as np

_WORD = re.compile(r"[A-Za-zÁÉÍÓÚÜÑáéíóúüñ0-9_]+")

DEFAULT_DIM = 384


def tokenize(text: str) -> List[str]:
    return [t.lower() for t in _WORD.findall(text or "")]


class HashingEmbedder:
    """
    Offline bag-of-words embedder: each token lands in a sha256-derived bucket
    with a sha256-derived sign, then the vector is L2-normalised.
    Same text -> same vector, across processes.
    """

    def __init__(self, dim: int = DEFAULT_DIM):
        if int(dim) <= 0:
            raise ValueError("dim must be positive")
        self._dim = int(dim)

    @property
    def dim(self) -> int:
        return self._dim

    def text_to_vector(self, text: str) -> np.ndarray:
        v = np.zeros(self._dim, dtype=np.float32)
        for tok in tokenize(text):
            h = hashlib.sha256(tok.encode("utf-8")).digest()
            ix = int.from_bytes(h[:8], "big") % self._dim
            v[ix] += 1.0 if h[8] & 1 else -1.0
        n = float(np.linalg.norm(v))
        if n > 0.0:
            v /= n
        return v

    async def embed(self, text: str) -> List[float]:
        return self.text_to_vector(text).tolist()
