import io
from unittest.mock import patch, MagicMock

import pytest
from botocore.exceptions import ClientError, ReadTimeoutError

from blobjack.aws.store import S3ObjectStore
from blobjack.base.config import AWSConfig
from blobjack.base.exceptions import (
    AccessDeniedError,
    ContainerAlreadyExistsError,
    ContainerNotFoundError,
    ObjectNotFoundError,
    StorageError,
    StoreTimeoutError,
    ThrottledError,
)


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "err"}}, "op")


@pytest.fixture
def store():
    with patch("blobjack.aws.store.boto3") as mock_boto:
        mock_client = MagicMock()
        mock_boto.client.return_value = mock_client
        instance = S3ObjectStore(AWSConfig(
            aws_access_key_id="key",
            aws_secret_access_key="secret",
            region_name="ap-south-1",
        ))
        yield instance, mock_client


def test_account_id(store):
    instance, _ = store
    assert instance.account_id == "key"


# --- Bucket operations ---


class TestCreateContainer:
    def test_success(self, store):
        instance, client = store
        instance.create_container("my-bucket")
        client.create_bucket.assert_called_once_with(
            Bucket="my-bucket",
            CreateBucketConfiguration={"LocationConstraint": "ap-south-1"},
        )

    def test_us_east_1_has_no_constraint(self):
        with patch("blobjack.aws.store.boto3") as mock_boto:
            client = mock_boto.client.return_value
            S3ObjectStore(AWSConfig(region_name="us-east-1")).create_container("b")
            client.create_bucket.assert_called_once_with(Bucket="b")

    @pytest.mark.parametrize("code", ["BucketAlreadyExists", "BucketAlreadyOwnedByYou"])
    def test_already_exists(self, store, code):
        instance, client = store
        client.create_bucket.side_effect = _client_error(code)
        with pytest.raises(ContainerAlreadyExistsError):
            instance.create_container("dup")

    def test_access_denied(self, store):
        instance, client = store
        client.create_bucket.side_effect = _client_error("AccessDenied")
        with pytest.raises(AccessDeniedError):
            instance.create_container("fail")


class TestDeleteContainer:
    def test_success(self, store):
        instance, client = store
        instance.delete_container("my-bucket")
        client.delete_bucket.assert_called_once_with(Bucket="my-bucket")

    def test_not_found(self, store):
        instance, client = store
        client.delete_bucket.side_effect = _client_error("NoSuchBucket")
        with pytest.raises(ContainerNotFoundError):
            instance.delete_container("missing")


class TestContainerExists:
    def test_true(self, store):
        instance, _ = store
        assert instance.container_exists("b")

    def test_false(self, store):
        instance, client = store
        client.head_bucket.side_effect = _client_error("404")
        assert not instance.container_exists("b")


# --- Object operations ---


class TestPutObject:
    def test_sends_token_and_type(self, store):
        instance, client = store
        client.put_object.return_value = {"ETag": '"abc"'}
        body = io.BytesIO(b"data")
        info = instance.put_object("b", "k", body, "text/plain", idempotency_token="tok")
        client.put_object.assert_called_once_with(
            Bucket="b", Key="k", Body=body, ContentType="text/plain",
            Metadata={"idempotency-token": "tok"},
        )
        assert info.etag == '"abc"'

    @pytest.mark.parametrize("code, error", [
        ("SlowDown", ThrottledError),
        ("503", ThrottledError),
        ("RequestTimeout", StoreTimeoutError),
        ("InternalError", StorageError),
    ])
    def test_error_mapping(self, store, code, error):
        instance, client = store
        client.put_object.side_effect = _client_error(code)
        with pytest.raises(error):
            instance.put_object("b", "k", io.BytesIO(b"x"))

    def test_read_timeout(self, store):
        instance, client = store
        client.put_object.side_effect = ReadTimeoutError(endpoint_url="https://s3")
        with pytest.raises(StoreTimeoutError):
            instance.put_object("b", "k", io.BytesIO(b"x"))


class TestGetObject:
    def test_success(self, store):
        instance, client = store
        client.get_object.return_value = {
            "Body": io.BytesIO(b"hello"),
            "ContentLength": 5,
            "ContentType": "text/plain",
            "ETag": '"e"',
        }
        obj = instance.get_object("b", "k")
        assert obj.body.read() == b"hello"
        assert obj.info.size == 5
        assert obj.info.content_type == "text/plain"

    def test_not_found(self, store):
        instance, client = store
        client.get_object.side_effect = _client_error("NoSuchKey")
        with pytest.raises(ObjectNotFoundError):
            instance.get_object("b", "missing")


class TestDeleteObject:
    def test_success(self, store):
        instance, client = store
        instance.delete_object("b", "k")
        client.delete_object.assert_called_once_with(Bucket="b", Key="k")


class TestListObjects:
    def test_paginates(self, store):
        instance, client = store
        paginator = MagicMock()
        client.get_paginator.return_value = paginator
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "a", "Size": 1}, {"Key": "b", "Size": 2}]},
            {"Contents": [{"Key": "c", "Size": 3}]},
            {},
        ]
        objects = instance.list_objects("b", "pre")
        assert [o.key for o in objects] == ["a", "b", "c"]
        paginator.paginate.assert_called_once_with(Bucket="b", Prefix="pre")

    def test_missing_bucket(self, store):
        instance, client = store
        client.get_paginator.return_value.paginate.side_effect = _client_error("NoSuchBucket")
        with pytest.raises(ContainerNotFoundError):
            instance.list_objects("missing")


def test_close(store):
    instance, client = store
    instance.close()
    client.close.assert_called_once()


def test_socket_timeouts_reach_client():
    with patch("blobjack.aws.store.boto3") as mock_boto:
        S3ObjectStore(AWSConfig(region_name="us-east-1", connect_timeout=2, read_timeout=7))
        boto_config = mock_boto.client.call_args.kwargs["config"]
        assert boto_config.connect_timeout == 2
        assert boto_config.read_timeout == 7
