from __future__ import annotations

import boto3
import pytest
from botocore.stub import ANY, Stubber

from imagerelay.exceptions import StorageUnavailable
from imagerelay.storage.s3 import S3Storage


@pytest.fixture()
def s3_client():
    client = boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    with Stubber(client) as stubber:
        yield client, stubber
        stubber.assert_no_pending_responses()


def _storage(client) -> S3Storage:
    return S3Storage(
        "images",
        prefix="uploads",
        public_base_url="https://cdn.example.com/",
        naming=lambda name, now=None: f"1700000000000-{name}",
        client=client,
    )


def test_save_puts_object_under_prefix(s3_client):
    client, stubber = s3_client
    stubber.add_response(
        "put_object",
        {},
        {"Bucket": "images", "Key": "uploads/1700000000000-cat.png", "Body": ANY, "ContentType": "image/png"},
    )

    stored = _storage(client).save("cat.png", b"meow", "image/png")

    assert stored.stored_name == "1700000000000-cat.png"
    assert stored.location == "s3://images/uploads/1700000000000-cat.png"
    assert stored.url == "https://cdn.example.com/uploads/1700000000000-cat.png"
    assert stored.size == 4


def test_list_queries_prefix_and_filters_images(s3_client):
    client, stubber = s3_client
    stubber.add_response(
        "list_objects_v2",
        {
            "IsTruncated": False,
            "KeyCount": 3,
            "Contents": [
                {"Key": "uploads/2-dog.JPG", "Size": 7},
                {"Key": "uploads/notes.txt", "Size": 1},
                {"Key": "uploads/1-cat.png", "Size": 4},
            ],
        },
        {"Bucket": "images", "Prefix": "uploads/"},
    )

    entries = _storage(client).list()

    assert [(entry.name, entry.size) for entry in entries] == [("1-cat.png", 4), ("2-dog.JPG", 7)]
    assert entries[0].url == "https://cdn.example.com/uploads/1-cat.png"


def test_rejected_credential_is_storage_unavailable(s3_client):
    client, stubber = s3_client
    stubber.add_client_error("put_object", service_error_code="InvalidAccessKeyId", http_status_code=403)

    with pytest.raises(StorageUnavailable) as excinfo:
        _storage(client).save("cat.png", b"meow", "image/png")

    assert excinfo.value.details["bucket"] == "images"


def test_missing_credential_is_storage_unavailable():
    storage = S3Storage("images", prefix="uploads")

    with pytest.raises(StorageUnavailable):
        storage.save("cat.png", b"meow")
    with pytest.raises(StorageUnavailable):
        storage.list()


def test_missing_bucket_is_storage_unavailable():
    storage = S3Storage("", access_key_id="key", secret_access_key="secret")

    with pytest.raises(StorageUnavailable):
        storage.save("cat.png", b"meow")
