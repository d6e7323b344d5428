# tests/test_blob_store.py

"""
Tests for the S3 blob store adapter.
"""

from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError

from core.blob_store import S3BlobStore, project_attachment_path, task_attachment_path
from core.errors import CollaboratorError


def client_error(code="AccessDenied", message="Access Denied", operation="DeleteObject"):
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def test_attachment_paths_are_scoped_and_sanitised():
    assert project_attachment_path("p1", "a1", "Site Plan (v2).pdf") == "projects/p1/attachments/a1/Site_Plan__v2_.pdf"
    assert task_attachment_path("p1", "t1", "a1", "photo.jpg") == "projects/p1/tasks/t1/attachments/a1/photo.jpg"


async def test_upload_puts_object_and_returns_public_url():
    s3 = Mock()
    store = S3BlobStore(s3, "bucket", "us-west-2", url_style="public")

    url = await store.upload("projects/p1/attachments/a1/plan.pdf", b"data", "application/pdf")

    s3.put_object.assert_called_once_with(
        Bucket="bucket",
        Key="projects/p1/attachments/a1/plan.pdf",
        Body=b"data",
        ContentType="application/pdf",
    )
    assert url == "https://bucket.s3.us-west-2.amazonaws.com/projects/p1/attachments/a1/plan.pdf"


def test_public_url_in_us_east_1_has_no_region():
    store = S3BlobStore(Mock(), "bucket", "us-east-1", url_style="public")

    assert store.public_url("a/b.pdf") == "https://bucket.s3.amazonaws.com/a/b.pdf"


async def test_upload_can_return_presigned_url():
    s3 = Mock()
    s3.generate_presigned_url.return_value = "https://signed.example.com/x?sig=1"
    store = S3BlobStore(s3, "bucket", "us-west-2", url_style="presigned", presigned_expiry=60)

    url = await store.upload("x", b"data", "text/plain")

    assert url == "https://signed.example.com/x?sig=1"
    s3.generate_presigned_url.assert_called_once_with(
        "get_object", Params={"Bucket": "bucket", "Key": "x"}, ExpiresIn=60
    )


@pytest.mark.parametrize(
    "ref",
    [
        "projects/p1/attachments/a1/plan.pdf",
        "https://bucket.s3.us-west-2.amazonaws.com/projects/p1/attachments/a1/plan.pdf",
        "https://bucket.s3.us-west-2.amazonaws.com/projects/p1/attachments/a1/plan.pdf?X-Amz-Signature=abc",
    ],
)
async def test_delete_accepts_key_or_url(ref):
    s3 = Mock()
    store = S3BlobStore(s3, "bucket", "us-west-2")

    await store.delete(ref)

    s3.delete_object.assert_called_once_with(Bucket="bucket", Key="projects/p1/attachments/a1/plan.pdf")


async def test_s3_errors_become_collaborator_errors():
    s3 = Mock()
    s3.delete_object.side_effect = client_error()
    store = S3BlobStore(s3, "bucket", "us-west-2")

    with pytest.raises(CollaboratorError) as exc:
        await store.delete("a/b.pdf")

    assert exc.value.detail == "AccessDenied Access Denied"
    assert exc.value.operation == "Failed to delete a/b.pdf"


async def test_upload_errors_become_collaborator_errors():
    s3 = Mock()
    s3.put_object.side_effect = client_error("QuotaExceeded", "Too much", "PutObject")
    store = S3BlobStore(s3, "bucket", "us-west-2")

    with pytest.raises(CollaboratorError, match="QuotaExceeded"):
        await store.upload("a/b.pdf", b"x", "text/plain")


def test_default_client_comes_from_settings():
    s3 = Mock()
    with patch("core.s3_client.get_s3", return_value=(s3, "cfg-bucket", "eu-west-1")) as get_s3:
        store = S3BlobStore()

    get_s3.assert_called_once_with()
    assert store.public_url("k") == "https://cfg-bucket.s3.eu-west-1.amazonaws.com/k"
