"""Export every document of the source index into the destination collection."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum

from es2qdrant.config import DEFAULT_PAGE_SIZE, ExportConfig, PipelineConfig
from es2qdrant.destination import DestinationWriter, QdrantWriter
from es2qdrant.embedder import Embedder, build_embedder
from es2qdrant.errors import EmbeddingError, ExportError, FetchError, ProvisionError, WriteError
from es2qdrant.records import Point, Record, decode
from es2qdrant.source import ElasticsearchReader, SourceReader

logger = logging.getLogger(__name__)


class ExportState(Enum):
    INIT = "init"
    PROVISION_COLLECTION = "provision_collection"
    FETCH_PAGE = "fetch_page"
    PROCESS_RECORDS = "process_records"
    DONE = "done"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


@dataclass
class RunCounters:
    offset: int = 0
    total_processed: int = 0
    total_errors: int = 0
    consecutive_fetch_errors: int = 0
    pages_fetched: int = 0


@dataclass
class ExportResult:
    state: ExportState
    counters: RunCounters = field(default_factory=RunCounters)
    error: ExportError | None = None

    @property
    def exit_code(self) -> int:
        if self.state is ExportState.DONE:
            return 0
        if self.state is ExportState.CANCELLED:
            return 130
        return 1


class Exporter:
    """Drives fetch → decode → embed → upsert until the source runs dry.

    Fetch failures share one consecutive-error budget; reaching
    ``max_fetch_errors`` aborts the run. Per-record failures are counted
    and skipped. The only normal stop is an empty page: the source's total
    count is logged but never used to decide termination.
    """

    def __init__(
        self,
        reader: SourceReader,
        writer: DestinationWriter,
        embedder: Embedder,
        vector_size: int,
        page_size: int = DEFAULT_PAGE_SIZE,
        pipeline: PipelineConfig | None = None,
        id_field: str = "id",
        text_field: str = "text",
        payload_key: str = "text",
        cancel_event: threading.Event | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self._reader = reader
        self._writer = writer
        self._embedder = embedder
        self._vector_size = vector_size
        self._page_size = page_size
        self._pipeline = pipeline or PipelineConfig()
        self._id_field = id_field
        self._text_field = text_field
        self._payload_key = payload_key
        self._cancel = cancel_event or threading.Event()
        self._sleep = sleep
        self.counters = RunCounters()
        self.state = ExportState.INIT

    def run(self) -> ExportResult:
        self.counters = RunCounters()
        self.state = ExportState.INIT
        logger.info("Starting export")

        self.state = ExportState.PROVISION_COLLECTION
        try:
            self._provision()
        except ProvisionError as exc:
            logger.error("Could not prepare destination: %s", exc)
            return self._finish(ExportState.ABORTED, exc)

        self.state = ExportState.FETCH_PAGE
        while True:
            if self._cancel.is_set():
                logger.warning("Export cancelled at offset %d", self.counters.offset)
                return self._finish(ExportState.CANCELLED)

            logger.info(
                "Fetching documents %d to %d...",
                self.counters.offset,
                self.counters.offset + self._page_size,
            )
            try:
                page = self._reader.fetch_page(self.counters.offset, self._page_size)
            except FetchError as exc:
                self.counters.consecutive_fetch_errors += 1
                logger.error(
                    "Fetch at offset %d failed (%d/%d): %s",
                    self.counters.offset,
                    self.counters.consecutive_fetch_errors,
                    self._pipeline.max_fetch_errors,
                    exc,
                )
                if self.counters.consecutive_fetch_errors >= self._pipeline.max_fetch_errors:
                    logger.error("Too many consecutive fetch errors, giving up")
                    return self._finish(ExportState.ABORTED, exc)
                self._pause()
                continue

            if not page.records:
                logger.info("No more documents to process")
                return self._finish(ExportState.DONE)

            self.counters.consecutive_fetch_errors = 0
            self.counters.pages_fetched += 1
            logger.info("Source reports %d matching documents", page.total_count)

            self.state = ExportState.PROCESS_RECORDS
            successes, errors = self._process_page(page.records)
            self.counters.total_processed += successes
            self.counters.total_errors += errors
            self.counters.offset += self._page_size
            logger.info(
                "Batch done: %d ok, %d failed. Total processed: %d, total errors: %d",
                successes,
                errors,
                self.counters.total_processed,
                self.counters.total_errors,
            )

            self.state = ExportState.FETCH_PAGE
            self._pause()

    def _provision(self) -> None:
        if self._embedder.dimension != self._vector_size:
            raise ProvisionError(
                f"embedder produces {self._embedder.dimension}-dimensional vectors "
                f"but the collection is configured for {self._vector_size}"
            )
        self._writer.ensure_collection()

    def _pause(self) -> None:
        if self._pipeline.batch_pause > 0:
            self._sleep(self._pipeline.batch_pause)

    def _process_page(self, raw_records: list[dict]) -> tuple[int, int]:
        """Write every record of a page. Returns (successes, errors)."""
        records = [decode(raw, self._id_field, self._text_field) for raw in raw_records]
        vectors = self._embed_page(records)
        outcomes: list[bool] = []
        if self._pipeline.workers > 1:
            # All futures are resolved before the pool exits, so the page
            # is complete before the offset advances.
            with ThreadPoolExecutor(max_workers=self._pipeline.workers) as pool:
                for ok in pool.map(self._process_record, records, vectors):
                    outcomes.append(ok)
                    self._log_progress(len(outcomes), len(records))
        else:
            for record, vector in zip(records, vectors):
                outcomes.append(self._process_record(record, vector))
                self._log_progress(len(outcomes), len(records))
        successes = sum(1 for ok in outcomes if ok)
        return successes, len(outcomes) - successes

    def _log_progress(self, done: int, total: int) -> None:
        every = self._pipeline.progress_every
        if every and done % every == 0:
            logger.info("Processed %d/%d documents of the current batch", done, total)

    def _embed_page(self, records: list[Record]) -> list[list[float] | None]:
        """Embed a whole page at once; None entries are embedded one by one later."""
        try:
            vectors = self._embedder.embed_batch([r.text for r in records])
        except Exception as exc:
            logger.warning("Batch embedding failed, falling back to per-document: %s", exc)
            return [None] * len(records)
        if len(vectors) != len(records):
            logger.warning(
                "Batch embedding returned %d vectors for %d documents, falling back to per-document",
                len(vectors),
                len(records),
            )
            return [None] * len(records)
        return list(vectors)

    def _process_record(self, record: Record, vector: list[float] | None = None) -> bool:
        try:
            self._writer.upsert_point(self._to_point(record, vector))
        except (EmbeddingError, WriteError) as exc:
            logger.error("Failed to export document %d: %s", record.id, exc)
            return False
        return True

    def _to_point(self, record: Record, vector: list[float] | None = None) -> Point:
        if vector is None:
            try:
                vector = self._embedder.embed(record.text)
            except Exception as exc:
                raise EmbeddingError(f"embedding failed: {exc}") from exc
        if len(vector) != self._vector_size:
            raise EmbeddingError(
                f"expected {self._vector_size}-dimensional vector, got {len(vector)}"
            )
        return Point(id=record.id, vector=list(vector), payload={self._payload_key: record.text})

    def _finish(self, state: ExportState, error: ExportError | None = None) -> ExportResult:
        self.state = state
        logger.info("Export finished: %s", state.value)
        logger.info("Total documents processed: %d", self.counters.total_processed)
        logger.info("Total errors: %d", self.counters.total_errors)
        return ExportResult(state=state, counters=self.counters, error=error)


def run_export(config: ExportConfig, cancel_event: threading.Event | None = None) -> ExportResult:
    """Export the configured Elasticsearch index into the configured Qdrant collection."""
    src, dst = config.source, config.destination
    embedder = build_embedder(config.pipeline.embedder, dst.vector_size)
    with ElasticsearchReader(src) as reader, QdrantWriter(dst) as writer:
        exporter = Exporter(
            reader,
            writer,
            embedder,
            vector_size=dst.vector_size,
            page_size=src.page_size,
            pipeline=config.pipeline,
            id_field=src.id_field,
            text_field=src.text_field,
            payload_key=dst.payload_key,
            cancel_event=cancel_event,
        )
        return exporter.run()
