"""
Tests for account and bucket operations.
"""

from io import BytesIO
from unittest.mock import patch

import pytest

from b2storage_sdk import B2Client, B2Error, Bucket, BucketType, NotFoundError, ServiceError
from b2storage_sdk.retry import NoRetryPolicy, RetryPolicy

from fake_b2 import ACCOUNT_ID, APPLICATION_KEY, DOWNLOAD_HOST


class TestClientSetup:
    """Test client construction."""

    def test_from_credentials(self, fake_b2):
        client = B2Client.from_credentials(
            ACCOUNT_ID, APPLICATION_KEY, host="https://api.fake-b2.test", session=fake_b2.session()
        )
        assert client.config.account_id == ACCOUNT_ID
        assert isinstance(client.executor.retry_policy, RetryPolicy)
        assert not isinstance(client.executor.retry_policy, NoRetryPolicy)

    def test_user_agent(self, client):
        assert client.http.headers["User-Agent"].startswith("b2storage-sdk/")

    def test_pool_sized_from_config(self, config):
        with patch("b2storage_sdk.client.HTTPAdapter") as adapter:
            B2Client(config.with_overrides(max_connections=25))
        adapter.assert_called_once_with(pool_connections=25, pool_maxsize=25)

    def test_authorize_account(self, fake_b2, client):
        state = client.authorize_account()
        assert state.account_id == ACCOUNT_ID
        assert client.account_id == ACCOUNT_ID
        assert client.download_url == DOWNLOAD_HOST
        assert fake_b2.authorize_count == 1


class TestBuckets:
    """Test bucket management."""

    def test_create_and_list(self, client):
        created = client.create_bucket("my-bucket-1", BucketType.ALL_PUBLIC)
        client.create_bucket("another-bucket")

        assert isinstance(created, Bucket)
        assert created.is_public
        assert created.account_id == ACCOUNT_ID
        assert [b.name for b in client.list_buckets()] == ["another-bucket", "my-bucket-1"]

    def test_duplicate_name(self, client):
        client.create_bucket("my-bucket-1")
        with pytest.raises(ServiceError) as exc_info:
            client.create_bucket("my-bucket-1")
        assert exc_info.value.code == "duplicate_bucket_name"

    def test_lookup(self, client, bucket):
        assert client.bucket("test-bucket").bucket_id == bucket.bucket_id
        assert client.bucket("absent") is None
        with pytest.raises(NotFoundError):
            client.get_bucket("absent")

    def test_update(self, client, bucket):
        bucket.update(BucketType.ALL_PUBLIC)
        assert bucket.is_public
        assert bucket.revision == 2
        assert client.get_bucket("test-bucket").bucket_type is BucketType.ALL_PUBLIC

    def test_delete(self, client, bucket):
        bucket.delete()
        assert client.list_buckets() == []

    def test_delete_non_empty(self, bucket):
        bucket.upload_file("a.txt", BytesIO(b"x"))
        with pytest.raises(ServiceError) as exc_info:
            bucket.delete()
        assert exc_info.value.code == "cannot_delete_non_empty_bucket"

    def test_unknown_bucket_type(self, client):
        with pytest.raises(B2Error) as exc_info:
            Bucket.from_dict(client, {"bucketId": "b1", "bucketName": "x", "bucketType": "mystery"})
        assert exc_info.value.error_code == "BAD_BUCKET_TYPE"

    def test_repr(self, bucket):
        assert "test-bucket" in repr(bucket)


class TestFiles:
    """Test file-level operations."""

    def test_get_file_info(self, client, bucket):
        uploaded = bucket.upload_file("a.txt", BytesIO(b"abc"), {"k": "v"})
        info = bucket.get_file_info(uploaded.file_id)
        assert info.name == "a.txt"
        assert info.file_info == {"k": "v"}
        assert info.bucket_id == bucket.bucket_id

    def test_get_missing_file_info(self, client):
        with pytest.raises(NotFoundError):
            client.get_file_info("no-such-id")

    def test_delete_file_version(self, bucket):
        old = bucket.upload_file("a.txt", BytesIO(b"v1"))
        new = bucket.upload_file("a.txt", BytesIO(b"v2"))

        deleted = bucket.delete_file_version("a.txt", new.file_id)
        assert deleted.file_id == new.file_id

        # the previous version becomes current
        _, stream = bucket.download_file_by_name("a.txt")
        with stream:
            assert stream.read() == b"v1"
        assert [v.file_id for v in bucket.iter_file_versions()] == [old.file_id]

    def test_delete_missing_version(self, bucket):
        with pytest.raises(ServiceError):
            bucket.delete_file_version("a.txt", "no-such-id")

    def test_hide_file(self, bucket):
        bucket.upload_file("a.txt", BytesIO(b"v1"))
        hidden = bucket.hide_file("a.txt")
        assert hidden.is_hidden
        assert list(bucket.iter_file_names()) == []

    def test_hide_missing_file(self, bucket):
        with pytest.raises(ServiceError) as exc_info:
            bucket.hide_file("absent.txt")
        assert exc_info.value.code == "no_such_file"
