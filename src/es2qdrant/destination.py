"""Qdrant destination for es2qdrant."""

from __future__ import annotations

import logging
import math
from typing import Protocol

from qdrant_client import QdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams

from es2qdrant.config import DestinationConfig
from es2qdrant.errors import ProvisionError, WriteError
from es2qdrant.records import Point

logger = logging.getLogger(__name__)


class DestinationWriter(Protocol):
    """Collection provisioning plus point upserts."""

    def ensure_collection(self) -> None: ...

    def upsert_point(self, point: Point) -> None: ...


def create_client(config: DestinationConfig) -> QdrantClient:
    """Build a QdrantClient for a server, or a local store when ``location`` is set."""
    if config.location:
        return QdrantClient(location=config.location)
    return QdrantClient(
        host=config.host,
        port=config.port,
        grpc_port=config.grpc_port,
        prefer_grpc=config.prefer_grpc,
        api_key=config.api_key,
        timeout=math.ceil(config.timeout),
    )


class QdrantWriter:
    """DestinationWriter backed by a Qdrant collection."""

    def __init__(self, config: DestinationConfig, client: QdrantClient | None = None) -> None:
        self._config = config
        self._collection = config.collection_name
        self._client = client if client is not None else create_client(config)

    def __enter__(self) -> QdrantWriter:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def collection_name(self) -> str:
        return self._collection

    def close(self) -> None:
        self._client.close()

    def ensure_collection(self) -> None:
        """Create the collection with cosine distance unless it already exists."""
        try:
            if self._client.collection_exists(self._collection):
                logger.info("Collection '%s' already exists", self._collection)
                return
            self._client.create_collection(
                collection_name=self._collection,
                vectors_config=VectorParams(
                    size=self._config.vector_size,
                    distance=Distance.COSINE,
                ),
            )
        except Exception as exc:
            raise ProvisionError(
                f"could not provision collection '{self._collection}': {exc}"
            ) from exc
        logger.info(
            "Created collection '%s' (size=%d, distance=cosine)",
            self._collection,
            self._config.vector_size,
        )

    def upsert_point(self, point: Point) -> None:
        self.upsert_points([point])

    def upsert_points(self, points: list[Point]) -> None:
        """Insert or replace points by id. Existing vectors and payloads are overwritten."""
        if not points:
            return
        try:
            self._client.upsert(
                collection_name=self._collection,
                points=[
                    PointStruct(id=p.id, vector=p.vector, payload=p.payload)
                    for p in points
                ],
                wait=True,
            )
        except Exception as exc:
            ids = [p.id for p in points]
            raise WriteError(f"upsert of points {ids} failed: {exc}", point_ids=ids) from exc
