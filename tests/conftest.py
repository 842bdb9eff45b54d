import pytest

from es2qdrant.errors import FetchError, WriteError
from es2qdrant.records import Page, Point


@pytest.fixture
def tmp_config_path(tmp_path):
    """Provide a temporary config file path."""
    return str(tmp_path / "config.yaml")


class FakeReader:
    """In-memory source serving fixed-size slices of a document list.

    ``failures`` is a list of offsets; each entry makes the next fetch at
    that offset raise FetchError once.
    """

    def __init__(self, docs: list[dict], total: int | None = None, failures: list[int] | None = None) -> None:
        self.docs = docs
        self.total = len(docs) if total is None else total
        self.failures = list(failures or [])
        self.calls: list[tuple[int, int]] = []

    def fetch_page(self, offset: int, page_size: int) -> Page:
        self.calls.append((offset, page_size))
        if offset in self.failures:
            self.failures.remove(offset)
            raise FetchError("injected failure", status_code=503, body="unavailable")
        return Page(total_count=self.total, records=self.docs[offset:offset + page_size])


class AlwaysFailingReader:
    def __init__(self) -> None:
        self.calls = 0

    def fetch_page(self, offset: int, page_size: int) -> Page:
        self.calls += 1
        raise FetchError("connection refused")


class FakeWriter:
    """In-memory destination keyed by point id; ``fail_ids`` reject upserts."""

    def __init__(self, fail_ids: set[int] | None = None, provision_error: Exception | None = None) -> None:
        self.points: dict[int, Point] = {}
        self.upserts: list[int] = []
        self.ensure_calls = 0
        self.fail_ids = fail_ids or set()
        self.provision_error = provision_error

    def ensure_collection(self) -> None:
        self.ensure_calls += 1
        if self.provision_error is not None:
            raise self.provision_error

    def upsert_point(self, point: Point) -> None:
        self.upserts.append(point.id)
        if point.id in self.fail_ids:
            raise WriteError(f"rejected {point.id}", point_ids=[point.id])
        self.points[point.id] = point


def make_docs(n: int, start: int = 1) -> list[dict]:
    return [{"id": i, "text": f"document {i}"} for i in range(start, start + n)]
