import io
from unittest.mock import patch, MagicMock

import pytest
from google.api_core.exceptions import (
    Conflict,
    DeadlineExceeded,
    Forbidden,
    NotFound,
    TooManyRequests,
)
from google.cloud.exceptions import GoogleCloudError

from blobjack.base.config import GCPConfig
from blobjack.base.exceptions import (
    AccessDeniedError,
    ContainerAlreadyExistsError,
    ContainerNotFoundError,
    ObjectNotFoundError,
    StorageError,
    StoreTimeoutError,
    ThrottledError,
)
from blobjack.gcp.store import GCSObjectStore


@pytest.fixture
def store():
    with patch("blobjack.gcp.store.gcs") as mock_gcs:
        mock_client = MagicMock()
        mock_gcs.Client.return_value = mock_client
        instance = GCSObjectStore(GCPConfig(project_id="my-project"))
        yield instance, mock_client


def _blob(name="k", size=4, content_type="text/plain"):
    blob = MagicMock()
    blob.name = name
    blob.size = size
    blob.content_type = content_type
    blob.etag = "etag"
    return blob


def test_account_id(store):
    instance, _ = store
    assert instance.account_id == "my-project"


# --- Bucket operations ---


class TestCreateContainer:
    def test_success(self, store):
        instance, client = store
        instance.create_container("my-bucket")
        client.create_bucket.assert_called_once_with("my-bucket")

    def test_conflict(self, store):
        instance, client = store
        client.create_bucket.side_effect = Conflict("exists")
        with pytest.raises(ContainerAlreadyExistsError):
            instance.create_container("dup")

    def test_generic_error(self, store):
        instance, client = store
        client.create_bucket.side_effect = GoogleCloudError("fail")
        with pytest.raises(StorageError):
            instance.create_container("fail")


class TestDeleteContainer:
    def test_success(self, store):
        instance, client = store
        mock_bucket = MagicMock()
        client.get_bucket.return_value = mock_bucket
        instance.delete_container("my-bucket")
        client.get_bucket.assert_called_once_with("my-bucket")
        mock_bucket.delete.assert_called_once()

    def test_not_found(self, store):
        instance, client = store
        client.get_bucket.side_effect = NotFound("bucket not found")
        with pytest.raises(ContainerNotFoundError):
            instance.delete_container("missing")


# --- Object operations ---


class TestPutObject:
    def test_uploads_with_token(self, store):
        instance, client = store
        blob = client.bucket.return_value.blob.return_value
        blob.name = "k"
        data = io.BytesIO(b"data")
        info = instance.put_object("b", "k", data, "text/plain", idempotency_token="tok", timeout=3)
        client.bucket.assert_called_with("b")
        client.bucket.return_value.blob.assert_called_once_with("k")
        blob.upload_from_file.assert_called_once_with(data, content_type="text/plain", timeout=3)
        assert blob.metadata == {"idempotency-token": "tok"}
        assert info.key == "k"

    @pytest.mark.parametrize("exc, error", [
        (Forbidden("no"), AccessDeniedError),
        (TooManyRequests("slow"), ThrottledError),
        (DeadlineExceeded("late"), StoreTimeoutError),
        (NotFound("bucket missing"), ContainerNotFoundError),
    ])
    def test_error_mapping(self, store, exc, error):
        instance, client = store
        client.bucket.return_value.blob.return_value.upload_from_file.side_effect = exc
        with pytest.raises(error):
            instance.put_object("b", "k", io.BytesIO(b"x"))


class TestGetObject:
    def test_success(self, store):
        instance, client = store
        blob = _blob()
        blob.download_as_bytes.return_value = b"data"
        client.bucket.return_value.get_blob.return_value = blob
        obj = instance.get_object("b", "k")
        assert obj.body.read() == b"data"
        assert obj.info.content_type == "text/plain"

    def test_missing_blob(self, store):
        instance, client = store
        client.bucket.return_value.get_blob.return_value = None
        with pytest.raises(ObjectNotFoundError):
            instance.get_object("b", "missing")

    def test_object_not_found_error(self, store):
        instance, client = store
        client.bucket.return_value.get_blob.side_effect = NotFound("No such object")
        with pytest.raises(ObjectNotFoundError):
            instance.get_object("b", "missing")


class TestDeleteObject:
    def test_success(self, store):
        instance, client = store
        instance.delete_object("b", "k")
        client.bucket.return_value.blob.return_value.delete.assert_called_once_with()


class TestListObjects:
    def test_lists_with_prefix(self, store):
        instance, client = store
        client.list_blobs.return_value = [_blob("a/1"), _blob("a/2")]
        objects = instance.list_objects("b", "a/")
        assert [o.key for o in objects] == ["a/1", "a/2"]
        client.list_blobs.assert_called_once_with("b", prefix="a/")

    def test_empty_prefix_is_none(self, store):
        instance, client = store
        client.list_blobs.return_value = []
        instance.list_objects("b")
        client.list_blobs.assert_called_once_with("b", prefix=None)


def test_close(store):
    instance, client = store
    instance.close()
    client.close.assert_called_once()
