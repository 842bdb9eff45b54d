"""Paginated reads from an Elasticsearch index."""

from __future__ import annotations

import logging
import ssl
from typing import Protocol

import httpx

from es2qdrant.config import SourceConfig
from es2qdrant.errors import FetchError
from es2qdrant.records import Page

logger = logging.getLogger(__name__)


class SourceReader(Protocol):
    """Anything that can return page N of size S of the source collection."""

    def fetch_page(self, offset: int, page_size: int) -> Page: ...


class ElasticsearchReader:
    """SourceReader issuing match-all ``_search`` requests with from/size paging."""

    def __init__(self, config: SourceConfig, transport: httpx.BaseTransport | None = None) -> None:
        self._config = config
        verify: bool | ssl.SSLContext = config.verify_tls
        if config.ca_cert:
            verify = ssl.create_default_context(cafile=config.ca_cert)
        self._client = httpx.Client(
            auth=httpx.BasicAuth(config.username, config.password),
            timeout=config.timeout,
            verify=verify,
            transport=transport,
        )

    def __enter__(self) -> ElasticsearchReader:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def build_query(self, offset: int, page_size: int) -> dict:
        return {
            "size": page_size,
            "from": offset,
            "track_total_hits": True,
            "_source": [self._config.id_field, self._config.text_field],
            "query": {"match_all": {}},
        }

    def fetch_page(self, offset: int, page_size: int) -> Page:
        url = self._config.search_url
        logger.debug("Searching %s from=%d size=%d", url, offset, page_size)
        try:
            response = self._client.post(
                url,
                json=self.build_query(offset, page_size),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise FetchError(f"search request failed: {exc}", cause=exc) from exc

        if response.status_code != httpx.codes.OK:
            raise FetchError(
                f"HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return self._parse(response.json())
        except (KeyError, ValueError, TypeError, AttributeError) as exc:
            raise FetchError(f"could not decode search response: {exc}", cause=exc) from exc

    @staticmethod
    def _parse(data: dict) -> Page:
        hits = data["hits"]
        total = hits.get("total", 0)
        # ES 7+ reports {"value": n, "relation": ...}, ES 6 a bare integer
        if isinstance(total, dict):
            total = total.get("value", 0)
        records = [hit.get("_source") or {} for hit in hits.get("hits", [])]
        return Page(total_count=int(total), records=records)
