"""Configuration management for es2qdrant."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path

import yaml

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.es2qdrant/config.yaml")

DEFAULT_SOURCE_URL = "https://localhost:9200"
DEFAULT_INDEX = "index"
DEFAULT_PAGE_SIZE = 1000
DEFAULT_TIMEOUT = 10.0

DEFAULT_QDRANT_HOST = "localhost"
DEFAULT_QDRANT_PORT = 6333
DEFAULT_QDRANT_GRPC_PORT = 6334
DEFAULT_COLLECTION = "documents"
DEFAULT_VECTOR_SIZE = 1536

DEFAULT_MAX_FETCH_ERRORS = 5
DEFAULT_BATCH_PAUSE = 0.01
DEFAULT_PROGRESS_EVERY = 100


@dataclass(frozen=True)
class SourceConfig:
    url: str = DEFAULT_SOURCE_URL
    index: str = DEFAULT_INDEX
    username: str = ""
    password: str = ""
    id_field: str = "id"
    text_field: str = "text"
    page_size: int = DEFAULT_PAGE_SIZE
    timeout: float = DEFAULT_TIMEOUT
    verify_tls: bool = True
    ca_cert: str | None = None

    @property
    def search_url(self) -> str:
        return f"{self.url.rstrip('/')}/{self.index}/_search"


@dataclass(frozen=True)
class DestinationConfig:
    host: str = DEFAULT_QDRANT_HOST
    port: int = DEFAULT_QDRANT_PORT
    grpc_port: int = DEFAULT_QDRANT_GRPC_PORT
    prefer_grpc: bool = False
    api_key: str | None = None
    location: str | None = None
    collection_name: str = DEFAULT_COLLECTION
    vector_size: int = DEFAULT_VECTOR_SIZE
    payload_key: str = "text"
    timeout: float = DEFAULT_TIMEOUT


@dataclass(frozen=True)
class PipelineConfig:
    embedder: str = "zero"
    max_fetch_errors: int = DEFAULT_MAX_FETCH_ERRORS
    batch_pause: float = DEFAULT_BATCH_PAUSE
    workers: int = 1
    progress_every: int = DEFAULT_PROGRESS_EVERY


def _section(cls, raw: dict | None):
    """Build a section dataclass from raw YAML, ignoring unknown keys."""
    raw = raw or {}
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in raw.items() if k in known})


@dataclass(frozen=True)
class ExportConfig:
    config_path: str = DEFAULT_CONFIG_PATH
    source: SourceConfig = field(default_factory=SourceConfig)
    destination: DestinationConfig = field(default_factory=DestinationConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    @classmethod
    def load(cls, config_path: str = DEFAULT_CONFIG_PATH) -> ExportConfig:
        path = Path(config_path)
        if not path.exists():
            return cls(config_path=config_path)

        with open(path) as f:
            raw = yaml.safe_load(f) or {}

        source = _section(SourceConfig, raw.get("source"))
        if source.ca_cert:
            # Expand ~ in the CA bundle path
            source = replace(source, ca_cert=os.path.expanduser(source.ca_cert))

        return cls(
            config_path=config_path,
            source=source,
            destination=_section(DestinationConfig, raw.get("destination")),
            pipeline=_section(PipelineConfig, raw.get("pipeline")),
        )

    def save(self) -> None:
        path = Path(self.config_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        raw: dict = {
            "source": asdict(self.source),
            "destination": asdict(self.destination),
            "pipeline": asdict(self.pipeline),
        }
        with open(path, "w") as f:
            yaml.dump(raw, f, default_flow_style=False)
