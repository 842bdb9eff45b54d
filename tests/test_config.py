import os

import pytest
import yaml

from es2qdrant.config import (
    DEFAULT_MAX_FETCH_ERRORS,
    DEFAULT_PAGE_SIZE,
    DEFAULT_VECTOR_SIZE,
    DestinationConfig,
    ExportConfig,
    SourceConfig,
)


def _write(path, raw):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(raw, f)


def test_load_config_defaults_when_missing(tmp_config_path):
    config = ExportConfig.load(tmp_config_path)
    assert config.config_path == tmp_config_path
    assert config.source.page_size == DEFAULT_PAGE_SIZE
    assert config.destination.vector_size == DEFAULT_VECTOR_SIZE
    assert config.pipeline.max_fetch_errors == DEFAULT_MAX_FETCH_ERRORS
    assert config.pipeline.embedder == "zero"


def test_load_config_reads_existing(tmp_config_path):
    _write(tmp_config_path, {
        "source": {
            "url": "https://es.internal:9200",
            "index": "articles",
            "username": "elastic",
            "password": "secret",
            "text_field": "texto",
            "page_size": 250,
            "verify_tls": False,
        },
        "destination": {
            "host": "qdrant",
            "port": 6333,
            "collection_name": "articles",
            "vector_size": 384,
        },
        "pipeline": {"workers": 4, "batch_pause": 0},
    })

    config = ExportConfig.load(tmp_config_path)
    assert config.source.search_url == "https://es.internal:9200/articles/_search"
    assert config.source.username == "elastic"
    assert config.source.text_field == "texto"
    assert config.source.page_size == 250
    assert config.source.verify_tls is False
    assert config.destination.host == "qdrant"
    assert config.destination.collection_name == "articles"
    assert config.destination.vector_size == 384
    assert config.pipeline.workers == 4
    assert config.pipeline.batch_pause == 0


def test_load_config_ignores_unknown_keys(tmp_config_path):
    _write(tmp_config_path, {"source": {"index": "a", "shards": 3}, "extra": True})
    config = ExportConfig.load(tmp_config_path)
    assert config.source.index == "a"


def test_load_config_empty_file(tmp_config_path):
    os.makedirs(os.path.dirname(tmp_config_path), exist_ok=True)
    open(tmp_config_path, "w").close()
    config = ExportConfig.load(tmp_config_path)
    assert config.source == SourceConfig()


def test_load_config_expands_ca_cert(tmp_config_path):
    _write(tmp_config_path, {"source": {"ca_cert": "~/certs/ca.pem"}})
    config = ExportConfig.load(tmp_config_path)
    assert config.source.ca_cert == os.path.expanduser("~/certs/ca.pem")


def test_save_config_round_trip(tmp_config_path):
    config = ExportConfig(
        config_path=tmp_config_path,
        source=SourceConfig(index="docs", page_size=10),
        destination=DestinationConfig(collection_name="docs_vectors"),
    )
    config.save()

    with open(tmp_config_path) as f:
        raw = yaml.safe_load(f)
    assert raw["source"]["index"] == "docs"
    assert raw["destination"]["collection_name"] == "docs_vectors"

    assert ExportConfig.load(tmp_config_path) == config


def test_config_is_immutable():
    config = ExportConfig()
    with pytest.raises(AttributeError):
        config.source.page_size = 5


def test_search_url_strips_trailing_slash():
    assert SourceConfig(url="http://es:9200/", index="i").search_url == "http://es:9200/i/_search"
