"""Tests for the R2 storage gateway."""

from datetime import datetime, timezone
from unittest.mock import patch

import boto3
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from botocore.stub import ANY, Stubber

from image2url.config import CACHE_CONTROL, load_config
from image2url.errors import NotFoundError, StorageReadError, StorageWriteError
from image2url.storage import ObjectInfo, R2Storage, StoredObject, encode_metadata_value, get_r2_client


def client_error(code: str, operation: str = "HeadObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def real_client():
    """A real boto3 S3 client, so botocore's own parameter checks run."""
    return boto3.client(
        "s3",
        endpoint_url="https://acct123.r2.cloudflarestorage.com",
        aws_access_key_id="AKIDEXAMPLE",
        aws_secret_access_key="secret",
        region_name="auto",
    )


class TestGetR2Client:
    def test_points_boto3_at_account_endpoint(self, config):
        with patch("image2url.storage.boto3.client") as mock_client:
            get_r2_client(config)

        mock_client.assert_called_once_with(
            "s3",
            endpoint_url="https://acct123.r2.cloudflarestorage.com",
            aws_access_key_id="AKIDEXAMPLE",
            aws_secret_access_key="secret",
            region_name="auto",
        )


class TestPut:
    def test_writes_object_and_returns_public_url(self, storage, s3_client):
        result = storage.put("images/a.png", b"abc", "image/png", {"upload-source": "url"})

        assert result == StoredObject(key="images/a.png", url="https://cdn.example.com/images/a.png")
        kwargs = s3_client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "images-bucket"
        assert kwargs["Key"] == "images/a.png"
        assert kwargs["Body"] == b"abc"
        assert kwargs["ContentType"] == "image/png"
        assert kwargs["ContentLength"] == 3
        assert kwargs["CacheControl"] == CACHE_CONTROL
        assert kwargs["Metadata"]["upload-source"] == "url"
        assert kwargs["Metadata"]["upload-time"].endswith("Z")

    def test_client_error_is_wrapped(self, storage, s3_client):
        s3_client.put_object.side_effect = client_error("AccessDenied", "PutObject")

        with pytest.raises(StorageWriteError, match="R2 upload failed"):
            storage.put("images/a.png", b"abc", "image/png")

    def test_transport_error_is_wrapped(self, storage, s3_client):
        s3_client.put_object.side_effect = EndpointConnectionError(endpoint_url="https://r2")

        with pytest.raises(StorageWriteError):
            storage.put("images/a.png", b"abc", "image/png")

    def test_non_ascii_metadata_is_percent_encoded(self, storage, s3_client):
        storage.put("images/a.jpg", b"abc", "image/jpeg", {
            "original-filename": "café.jpg",
            "original-url": "https://example.com/ünï.png?q=a b",
        })

        metadata = s3_client.put_object.call_args.kwargs["Metadata"]
        assert metadata["original-filename"] == "caf%C3%A9.jpg"
        assert metadata["original-url"] == "https://example.com/%C3%BCn%C3%AF.png?q=a b"

    def test_non_ascii_metadata_accepted_by_boto3(self, config):
        client = real_client()
        storage = R2Storage(config, client=client)

        with Stubber(client) as stubber:
            stubber.add_response("put_object", {}, {
                "Bucket": "images-bucket",
                "Key": "images/a.jpg",
                "Body": b"abc",
                "ContentType": "image/jpeg",
                "ContentLength": 3,
                "CacheControl": CACHE_CONTROL,
                "Metadata": {"upload-time": ANY, "original-filename": "caf%C3%A9.jpg"},
            })
            result = storage.put("images/a.jpg", b"abc", "image/jpeg", {"original-filename": "café.jpg"})
            stubber.assert_no_pending_responses()

        assert result.url == "https://cdn.example.com/images/a.jpg"


class TestEncodeMetadataValue:
    def test_ascii_is_unchanged(self):
        assert encode_metadata_value("https://example.com/a.png?x=1&y=2") == "https://example.com/a.png?x=1&y=2"
        assert encode_metadata_value("My Cat.jpg") == "My Cat.jpg"

    def test_percent_is_escaped(self):
        assert encode_metadata_value("My%20File.png") == "My%2520File.png"

    def test_control_characters_are_escaped(self):
        assert encode_metadata_value("a\nb") == "a%0Ab"


class TestHead:
    def test_returns_object_info(self, storage, s3_client):
        modified = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        s3_client.head_object.return_value = {
            "ContentLength": 42,
            "ContentType": "image/png",
            "LastModified": modified,
            "Metadata": {"upload-source": "base64"},
        }

        info = storage.head("images/a.png")

        assert info == ObjectInfo(
            size=42,
            content_type="image/png",
            last_modified=modified,
            metadata={"upload-source": "base64"},
        )
        s3_client.head_object.assert_called_once_with(Bucket="images-bucket", Key="images/a.png")

    @pytest.mark.parametrize("code", ["404", "NotFound", "NoSuchKey"])
    def test_missing_object(self, storage, s3_client, code):
        s3_client.head_object.side_effect = client_error(code)

        with pytest.raises(NotFoundError, match="File not found"):
            storage.head("images/missing.png")

    def test_other_client_error(self, storage, s3_client):
        s3_client.head_object.side_effect = client_error("403")

        with pytest.raises(StorageReadError, match="Failed to get file info"):
            storage.head("images/a.png")

    def test_transport_error(self, storage, s3_client):
        s3_client.head_object.side_effect = EndpointConnectionError(endpoint_url="https://r2")

        with pytest.raises(StorageReadError):
            storage.head("images/a.png")


class TestPublicUrl:
    def test_joins_base_and_key(self, storage):
        assert storage.public_url_for("temp/x.txt") == "https://cdn.example.com/temp/x.txt"

    def test_trailing_slash_in_base(self, environ, s3_client):
        environ["R2_PUBLIC_URL"] = "https://cdn.example.com/"
        storage = R2Storage(load_config(environ), client=s3_client)

        assert storage.public_url_for("images/a.png") == "https://cdn.example.com/images/a.png"
