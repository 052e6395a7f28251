from __future__ import annotations

import asyncio
from typing import Any, List, Optional

import numpy as np

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


class SentenceTransformerEmbedder:
    """
    Semantic embeddings via sentence-transformers (install the `embeddings` extra).
    The model loads on first use; encoding runs in a worker thread.
    """

    def __init__(self, model_name: str = DEFAULT_MODEL, model: Optional[Any] = None):
        self.model_name = model_name
        self._model = model

    @property
    def model(self) -> Any:
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            self._model = SentenceTransformer(self.model_name)
        return self._model

    @property
    def dim(self) -> int:
        return int(self.model.get_sentence_embedding_dimension())

    def text_to_vector(self, text: str) -> np.ndarray:
        emb = self.model.encode([text], convert_to_numpy=True, normalize_embeddings=True)
        return np.asarray(emb, dtype=np.float32)[0]

    async def embed(self, text: str) -> List[float]:
        vec = await asyncio.to_thread(self.text_to_vector, text)
        return vec.tolist()
