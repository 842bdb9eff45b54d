"""Text embedders for es2qdrant."""

from __future__ import annotations

from typing import Protocol


class Embedder(Protocol):
    """Text to fixed-length vector embedding."""

    @property
    def dimension(self) -> int: ...

    def embed(self, text: str) -> list[float]: ...

    def embed_batch(self, texts: list[str]) -> list[list[float]]: ...


class ZeroEmbedder:
    """Placeholder embedder returning an all-zero vector for every text."""

    def __init__(self, dimension: int) -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> list[float]:
        return [0.0] * self._dimension

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self.embed(t) for t in texts]


class OnnxEmbedder:
    """ONNX MiniLM-L6-V2 embedder (384 dimensions). Needs the ``onnx`` extra."""

    def __init__(self) -> None:
        from chromadb.utils.embedding_functions import ONNXMiniLM_L6_V2

        self._fn = ONNXMiniLM_L6_V2()

    @property
    def dimension(self) -> int:
        return 384

    def embed(self, text: str) -> list[float]:
        return self._fn([text])[0].tolist()

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [e.tolist() for e in self._fn(texts)]


def build_embedder(name: str, dimension: int) -> Embedder:
    """Create the embedder selected in the pipeline config."""
    if name == "zero":
        return ZeroEmbedder(dimension)
    if name == "onnx":
        return OnnxEmbedder()
    raise ValueError(f"Unknown embedder: {name}")
