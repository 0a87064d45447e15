import io
import threading
import time

import pytest

from blobjack.base.config import CoreConfig
from blobjack.base.exceptions import (
    DepthExceeded,
    StoreTimeoutError,
    TransferError,
    TransferKind,
    ValidationError,
)
from blobjack.base.models import Group, Leaf, LifecycleOutcome
from blobjack.base.retry import RetryPolicy
from blobjack.memory.store import MemoryBackend, MemoryObjectStore
from blobjack.orchestrator import TEXT_CONTENT_TYPE, Orchestrator

FAST = CoreConfig(retry=RetryPolicy(base_delay=0, max_delay=0, jitter=0), session_grace_period=0)


class SlowStore(MemoryObjectStore):
    def __init__(self, delay):
        super().__init__(backend=MemoryBackend())
        self.delay = delay

    def put_object(self, container_name, key, data, content_type=None, idempotency_token=None, timeout=None):
        if timeout is not None and timeout < self.delay:
            time.sleep(timeout)
            raise StoreTimeoutError(f"timed out after {timeout}s")
        time.sleep(self.delay)
        return super().put_object(container_name, key, data, content_type, idempotency_token, timeout)


@pytest.fixture
def store():
    return MemoryObjectStore(backend=MemoryBackend())


@pytest.fixture
def orch(store):
    with Orchestrator.for_store(store, FAST) as orch:
        orch.create_container("box")
        yield orch


class TestContainers:
    def test_create_and_delete_idempotent(self, store):
        with Orchestrator.for_store(store, FAST) as orch:
            assert orch.create_container("c") is LifecycleOutcome.CREATED
            assert orch.create_container("c") is LifecycleOutcome.ALREADY_EXISTS
            assert orch.delete_container("c") is LifecycleOutcome.DELETED
            assert orch.delete_container("c") is LifecycleOutcome.ALREADY_ABSENT

    def test_empty_name_rejected(self, orch):
        with pytest.raises(ValidationError, match="container name"):
            orch.create_container("")

    def test_shared_store_survives_session_teardown(self, store):
        with Orchestrator.for_store(store, FAST) as orch:
            orch.create_container("c")
            orch.write("c", "k", "v")
        assert store.get_object("c", "k").body.read() == b"v"


class TestBlobs:
    def test_write_then_read_text(self, orch):
        orch.write("box", "greeting", "héllo")
        result = orch.read("box", "greeting")
        assert result.payload == "héllo".encode("utf-8")
        assert result.metadata.content_type == TEXT_CONTENT_TYPE

    def test_write_bytes_keeps_content_type(self, orch):
        orch.write("box", "img", b"\x89PNG", "image/png")
        assert orch.read("box", "img").metadata.content_type == "image/png"

    def test_write_stream(self, orch):
        result = orch.write("box", "s", io.BytesIO(b"streamed"))
        assert result.bytes_transferred == 8

    def test_read_missing(self, orch):
        with pytest.raises(TransferError) as exc_info:
            orch.read("box", "missing")
        assert exc_info.value.kind is TransferKind.NOT_FOUND
        assert not exc_info.value.retryable

    def test_write_to_missing_container(self, orch):
        with pytest.raises(TransferError) as exc_info:
            orch.write("nowhere", "k", "v")
        assert exc_info.value.kind is TransferKind.NOT_FOUND

    def test_delete(self, orch):
        orch.write("box", "k", "v")
        orch.delete("box", "k")
        with pytest.raises(TransferError):
            orch.read("box", "k")

    def test_empty_key_rejected(self, orch):
        with pytest.raises(ValidationError, match="blob key"):
            orch.write("box", "", "v")
        with pytest.raises(ValidationError):
            orch.read("box", "  ")


class TestBatches:
    def test_write_read_delete_many(self, orch):
        items = [(f"k{i}", f"value {i}") for i in range(20)]
        writes = orch.write_many("box", items)
        assert all(r.ok for r in writes)
        reads = orch.read_many("box", [key for key, _ in items] + ["missing"])
        assert [r.payload for r in reads[:-1]] == [v.encode() for _, v in items]
        assert reads[-1].kind is TransferKind.NOT_FOUND
        deletes = orch.delete_many("box", [key for key, _ in items])
        assert all(r.ok for r in deletes)
        assert orch.list("box") == []

    def test_empty_key_in_batch_rejected(self, orch):
        with pytest.raises(ValidationError):
            orch.write_many("box", [("ok", "1"), ("", "2")])


class TestListing:
    def test_hierarchy(self, orch):
        orch.write_many("box", [(k, "x") for k in ("a/b", "a/c", "a/b/d", "x")])
        listing = orch.list("box")
        assert [(depth, node.key) for depth, node in listing] == [
            (0, "a/"), (1, "a/b"), (1, "a/b/"), (2, "a/b/d"), (1, "a/c"), (0, "x"),
        ]
        assert isinstance(listing[0][1], Group)
        assert isinstance(listing[1][1], Leaf)

    def test_prefix(self, orch):
        orch.write_many("box", [(k, "x") for k in ("a/b", "a/c", "a/b/d", "x")])
        assert [node.key for _, node in orch.list("box", "a/b/")] == ["a/b/d"]

    def test_custom_delimiter(self, orch):
        orch.write_many("box", [("a.b", "1"), ("a.c", "2")])
        assert [node.key for _, node in orch.list("box", delimiter=".")] == ["a.", "a.b", "a.c"]

    def test_depth_cap(self, orch):
        orch.write("box", "/".join("abcdefgh"), "deep")
        with pytest.raises(DepthExceeded):
            orch.list("box", max_depth=3)

    def test_explicit_zero_depth_is_honoured(self, orch):
        orch.write_many("box", [("a/b", "x"), ("top", "x")])
        with pytest.raises(DepthExceeded) as exc_info:
            orch.list("box", max_depth=0)
        assert exc_info.value.max_depth == 0

    def test_missing_container(self, orch):
        with pytest.raises(TransferError):
            orch.list("nowhere")


class TestCancellation:
    def test_cancel_in_flight_batch(self):
        store = SlowStore(0.1)
        store.create_container("box")
        config = CoreConfig(max_concurrency=1, retry=FAST.retry, session_grace_period=0)
        with Orchestrator.for_store(store, config) as orch:
            threading.Timer(0.15, orch.cancel).start()
            results = orch.write_many("box", [(f"k{i}", "v") for i in range(10)])
            assert results[0].ok
            assert results[-1].kind is TransferKind.CANCELLED
            # later operations run under a fresh token
            assert orch.write("box", "after", "v").ok

    def test_operation_timeout(self):
        store = SlowStore(0.5)
        store.create_container("box")
        config = CoreConfig(operation_timeout=0.05, retry=FAST.retry, session_grace_period=0)
        with Orchestrator.for_store(store, config) as orch:
            start = time.monotonic()
            with pytest.raises(TransferError) as exc_info:
                orch.write("box", "k", "v")
            assert exc_info.value.kind is TransferKind.CANCELLED
            assert time.monotonic() - start < 0.5


class TestForProvider:
    @pytest.fixture(autouse=True)
    def clean_backend(self):
        MemoryBackend.reset()
        yield
        MemoryBackend.reset()

    def test_sessions_share_account_data(self):
        with Orchestrator.for_provider("memory", {"account_id": "acct"}, FAST) as orch:
            assert orch.account_id == "acct"
            orch.create_container("c")
            orch.write("c", "k", "v")
        with Orchestrator.for_provider("memory", {"account_id": "acct"}, FAST) as orch:
            assert orch.read("c", "k").payload == b"v"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported provider"):
            Orchestrator.for_provider("dropbox", {})
