"""Unit tests for SnapshotExporter pagination and file output."""

import json
import tempfile
import threading
from pathlib import Path

import pytest

from etcd_snapshot.components.exporter import (
    SnapshotExporter,
    normalize_limit,
    normalize_prefix,
)
from etcd_snapshot.components.memory_store import MemoryStoreClient
from etcd_snapshot.core.errors import (
    MalformedSnapshotError,
    OperationCancelledError,
    RangeReadError,
)
from etcd_snapshot.core.types import RangePage, ScanCursor, ScanState


@pytest.fixture
def temp_dir():
    """Create a temporary directory for snapshot files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def make_store(count=23, prefix="/app/", max_page=0):
    """Build a store with `count` keys under prefix plus unrelated keys."""
    store = MemoryStoreClient(max_page=max_page)
    for i in range(count):
        store.put(f"{prefix}{i:03d}".encode(), f"value{i}".encode())
    store.put(b"/apple", b"not-under-app-slash")
    store.put(b"/zzz", b"other")
    store.put(b"outside", b"no-leading-slash")
    return store


class RecordingStore(MemoryStoreClient):
    """Memory store that records every range-read call."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    def range_read(self, prefix, *, limit=0, resume_after=None, revision=0):
        self.calls.append((prefix, limit, resume_after, revision))
        return super().range_read(
            prefix, limit=limit, resume_after=resume_after, revision=revision
        )


class FailingStore(MemoryStoreClient):
    """Memory store whose Nth range read raises."""

    def __init__(self, fail_on_call, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_on_call = fail_on_call
        self.calls = 0

    def range_read(self, prefix, **kwargs):
        self.calls += 1
        if self.calls == self.fail_on_call:
            raise OSError("connection reset")
        return super().range_read(prefix, **kwargs)


def read_json(path):
    return json.loads(Path(path).read_text(encoding="utf-8"))


def test_normalize_prefix():
    """Test prefix normalization to the root prefix."""
    assert normalize_prefix("") == "/"
    assert normalize_prefix(None) == "/"
    assert normalize_prefix("app") == "/"
    assert normalize_prefix("/app") == "/app"


def test_normalize_limit():
    """Test negative limits are clamped to unlimited."""
    assert normalize_limit(-5) == 0
    assert normalize_limit(None) == 0
    assert normalize_limit(0) == 0
    assert normalize_limit(12) == 12


def test_pagination_three_plus_rounds(temp_dir):
    """Test prefix completeness when the scan needs several pages.

    23 keys with page size 7 forces pages of 7, 7, 7 and 2.
    """
    store = make_store(count=23)
    exporter = SnapshotExporter(store, page_size=7)

    result = exporter.export("/app/", 0, temp_dir / "out.json")

    data = read_json(result.path)
    expected = {f"/app/{i:03d}": f"value{i}" for i in range(23)}
    assert data == expected
    assert result.count == 23
    assert result.pages == 4


def test_pagination_resumes_after_last_key(temp_dir):
    """Test that each page resumes strictly after the previous page's last key."""
    store = RecordingStore()
    for i in range(10):
        store.put(f"/k/{i:02d}".encode(), b"v")
    exporter = SnapshotExporter(store, page_size=4)

    exporter.export("/k/", 0, temp_dir / "out.json")

    resume_keys = [call[2] for call in store.calls]
    assert resume_keys == [None, b"/k/03", b"/k/07"]
    assert all(call[1] == 4 for call in store.calls)


def test_store_side_page_cap(temp_dir):
    """Test that a store truncating responses is paged through via `more`."""
    store = make_store(count=17, max_page=5)
    exporter = SnapshotExporter(store, page_size=0)

    result = exporter.export("/app/", 0, temp_dir / "out.json")

    assert result.count == 17
    assert result.pages == 4
    assert len(read_json(result.path)) == 17


def test_root_prefix_exports_rooted_keys(temp_dir):
    """Test that the root prefix exports every key starting with '/'."""
    store = make_store(count=3)
    exporter = SnapshotExporter(store, page_size=2)

    result = exporter.export("/", 0, temp_dir / "out.json")

    data = read_json(result.path)
    assert "outside" not in data
    assert data["/apple"] == "not-under-app-slash"
    assert result.count == 5


@pytest.mark.parametrize("prefix", ["", "app", "no-slash/"])
def test_prefix_normalization_matches_root(temp_dir, prefix):
    """Test empty or unrooted prefixes export the same set as '/'."""
    store = make_store(count=5)
    exporter = SnapshotExporter(store, page_size=3)

    root = exporter.export("/", 0, temp_dir / "root.json")
    other = exporter.export(prefix, 0, temp_dir / "other.json")

    assert read_json(other.path) == read_json(root.path)


def test_limit_truncation(temp_dir):
    """Test exporting with a limit yields exactly limit matching records."""
    store = make_store(count=23)
    exporter = SnapshotExporter(store, page_size=7)

    result = exporter.export("/app/", 10, temp_dir / "out.json")

    data = read_json(result.path)
    assert len(data) == 10
    assert all(k.startswith("/app/") for k in data)
    assert sorted(data) == [f"/app/{i:03d}" for i in range(10)]


def test_limit_requests_only_remaining(temp_dir):
    """Test the final page asks only for the remaining budget."""
    store = RecordingStore()
    for i in range(30):
        store.put(f"/k/{i:02d}".encode(), b"v")
    exporter = SnapshotExporter(store, page_size=7)

    exporter.export("/k/", 10, temp_dir / "out.json")

    assert [call[1] for call in store.calls] == [7, 3]


def test_limit_larger_than_matches(temp_dir):
    """Test a limit above the match count returns all matches."""
    store = make_store(count=4)
    exporter = SnapshotExporter(store, page_size=3)

    result = exporter.export("/app/", 50, temp_dir / "out.json")

    assert result.count == 4


def test_negative_limit_is_unlimited(temp_dir):
    """Test negative limit exports everything."""
    store = make_store(count=12)
    exporter = SnapshotExporter(store, page_size=5)

    result = exporter.export("/app/", -1, temp_dir / "out.json")

    assert result.count == 12


def test_store_over_delivery_is_truncated():
    """Test records beyond the limit are never accepted."""

    class GreedyStore:
        def range_read(self, prefix, *, limit=0, resume_after=None, revision=0):
            records = [(f"/k/{i}".encode(), b"v") for i in range(10)]
            return RangePage(records=records, more=True, revision=9)

    exporter = SnapshotExporter(GreedyStore(), page_size=100)
    cursor = ScanCursor(prefix=b"/k/", limit=4)

    snapshot = exporter.scan(cursor)

    assert len(snapshot) == 4
    assert cursor.state is ScanState.DONE


def test_empty_page_with_more_terminates():
    """Test an empty page ends the scan even if the store claims more."""

    class EmptyStore:
        def range_read(self, prefix, *, limit=0, resume_after=None, revision=0):
            return RangePage(records=[], more=True, revision=3)

    exporter = SnapshotExporter(EmptyStore(), page_size=10)
    cursor = ScanCursor(prefix=b"/", limit=0)

    assert exporter.scan(cursor) == {}
    assert cursor.state is ScanState.DONE
    assert cursor.pages == 1


def test_reads_pinned_to_first_revision(temp_dir):
    """Test writes made mid-scan do not appear in the snapshot."""

    class WritingStore(RecordingStore):
        def range_read(self, prefix, **kwargs):
            page = super().range_read(prefix, **kwargs)
            self.put(b"/k/00", b"changed")
            self.put(b"/k/99", b"late")
            return page

    store = WritingStore()
    for i in range(6):
        store.put(f"/k/{i:02d}".encode(), b"orig")
    first_rev = store.revision
    exporter = SnapshotExporter(store, page_size=2)

    result = exporter.export("/k/", 0, temp_dir / "out.json")

    data = read_json(result.path)
    assert data == {f"/k/{i:02d}": "orig" for i in range(6)}
    assert result.revision == first_rev
    assert all(call[3] in (0, first_rev) for call in store.calls)


def test_range_failure_writes_no_file(temp_dir):
    """Test a failing page aborts export and leaves no file behind."""
    store = FailingStore(fail_on_call=3)
    for i in range(20):
        store.put(f"/k/{i:02d}".encode(), b"v")
    exporter = SnapshotExporter(store, page_size=5)
    destination = temp_dir / "out.json"

    with pytest.raises(RangeReadError) as exc_info:
        exporter.export("/k/", 0, destination)

    assert not destination.exists()
    assert list(temp_dir.iterdir()) == []
    assert exc_info.value.prefix == "/k/"
    assert exc_info.value.resume_after == "/k/09"
    assert isinstance(exc_info.value.__cause__, OSError)


def test_range_failure_keeps_existing_file(temp_dir):
    """Test an aborted export does not touch a previous snapshot."""
    destination = temp_dir / "out.json"
    destination.write_text('{"/old": "1"}', encoding="utf-8")
    store = FailingStore(fail_on_call=1, records=[(b"/a", b"1")])

    with pytest.raises(RangeReadError):
        SnapshotExporter(store).export("/", 0, destination)

    assert read_json(destination) == {"/old": "1"}


def test_export_overwrites_existing_file(temp_dir):
    """Test a successful export replaces the destination file."""
    destination = temp_dir / "out.json"
    destination.write_text('{"/old": "1"}', encoding="utf-8")
    store = MemoryStoreClient(records=[(b"/new", b"2")])

    SnapshotExporter(store).export("/", 0, destination)

    assert read_json(destination) == {"/new": "2"}


def test_export_reports_resolved_path(temp_dir, monkeypatch):
    """Test the result carries an absolute path."""
    monkeypatch.chdir(temp_dir)
    store = MemoryStoreClient(records=[(b"/a", b"1")])

    result = SnapshotExporter(store).export("/", 0, "load.json")

    assert Path(result.path).is_absolute()
    assert Path(result.path) == (temp_dir / "load.json").resolve()


def test_export_empty_prefix_writes_empty_object(temp_dir):
    """Test a prefix with no matches still writes a valid snapshot."""
    store = MemoryStoreClient(records=[(b"/a", b"1")])

    result = SnapshotExporter(store).export("/missing/", 0, temp_dir / "out.json")

    assert result.count == 0
    assert read_json(result.path) == {}


def test_export_rejects_binary_values(temp_dir):
    """Test values that are not UTF-8 text abort the export."""
    store = MemoryStoreClient(records=[(b"/bin", b"\xff\xfe")])
    destination = temp_dir / "out.json"

    with pytest.raises(MalformedSnapshotError):
        SnapshotExporter(store).export("/", 0, destination)

    assert not destination.exists()


def test_export_cancelled(temp_dir):
    """Test a set cancel event stops the scan before any read."""
    store = RecordingStore(records=[(b"/a", b"1")])
    cancel = threading.Event()
    cancel.set()
    destination = temp_dir / "out.json"

    with pytest.raises(OperationCancelledError):
        SnapshotExporter(store).export("/", 0, destination, cancel=cancel)

    assert store.calls == []
    assert not destination.exists()


def test_exporter_does_not_close_client(temp_dir):
    """Test the borrowed client stays open after export."""
    store = MemoryStoreClient(records=[(b"/a", b"1")])

    SnapshotExporter(store).export("/", 0, temp_dir / "out.json")

    assert not store.closed


def test_negative_page_size_rejected():
    """Test invalid page sizes are rejected up front."""
    with pytest.raises(ValueError):
        SnapshotExporter(MemoryStoreClient(), page_size=-1)


def test_export_creates_missing_directories(temp_dir):
    """Test exporting into a nested directory that does not exist yet."""
    store = MemoryStoreClient(records=[(b"/a", b"1")])
    destination = temp_dir / "backups" / "daily" / "load.json"

    result = SnapshotExporter(store).export("/", 0, destination)

    assert read_json(destination) == {"/a": "1"}
    assert Path(result.path) == destination.resolve()


def test_export_leaves_sibling_files_alone(temp_dir):
    """Test the temporary file never clobbers a neighbour and is cleaned up."""
    sibling = temp_dir / "out.json.tmp"
    sibling.write_text("keep me", encoding="utf-8")
    store = MemoryStoreClient(records=[(b"/a", b"1")])

    SnapshotExporter(store).export("/", 0, temp_dir / "out.json")

    assert sibling.read_text(encoding="utf-8") == "keep me"
    assert sorted(p.name for p in temp_dir.iterdir()) == ["out.json", "out.json.tmp"]
