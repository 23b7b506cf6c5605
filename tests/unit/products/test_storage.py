"""Unit tests for product image storage.

Covers:
- validate_image: content type allow-list and size limit
- S3Storage upload/delete requests and public URLs
- URLs outside the bucket are refused
- InMemoryStorage round trip
"""

import boto3
import pytest
from botocore.stub import Stubber

from modules.core.exceptions import UpstreamError
from modules.products.exceptions import InvalidUpload
from modules.products.storage import InMemoryStorage, S3Storage, validate_image

pytestmark = pytest.mark.unit

MB = 1024 * 1024


class TestValidateImage:
    def test_accepts_png(self):
        validate_image("tee.png", "image/png", 1024, 5 * MB)

    def test_rejects_pdf(self):
        with pytest.raises(InvalidUpload, match="allowed"):
            validate_image("tee.pdf", "application/pdf", 1024, 5 * MB)

    def test_rejects_oversized(self):
        with pytest.raises(InvalidUpload, match="5MB"):
            validate_image("tee.jpg", "image/jpeg", 5 * MB + 1, 5 * MB)


@pytest.fixture()
def s3():
    client = boto3.client(
        "s3",
        region_name="ap-south-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    with Stubber(client) as stubber:
        yield S3Storage("storefront-media", "ap-south-1", client=client), stubber


class TestS3Storage:
    def test_upload_returns_public_url(self, s3):
        storage, stubber = s3
        stubber.add_response("put_object", {})

        url = storage.upload(b"img", "tie dye.png", "image/png")

        assert url.startswith("https://storefront-media.s3.ap-south-1.amazonaws.com/products/")
        assert url.endswith("-tie-dye.png")

    def test_delete_uses_key_from_url(self, s3):
        storage, stubber = s3
        stubber.add_response(
            "delete_object",
            {},
            {"Bucket": "storefront-media", "Key": "products/1-tee.png"},
        )

        storage.delete("https://storefront-media.s3.ap-south-1.amazonaws.com/products/1-tee.png")

        stubber.assert_no_pending_responses()

    def test_foreign_url_rejected(self, s3):
        storage, _ = s3
        with pytest.raises(InvalidUpload):
            storage.delete("https://elsewhere.example.com/products/1-tee.png")

    def test_upload_failure_is_upstream_error(self, s3):
        storage, stubber = s3
        stubber.add_client_error("put_object", service_error_code="AccessDenied")

        with pytest.raises(UpstreamError):
            storage.upload(b"img", "tee.png", "image/png")


class TestInMemoryStorage:
    def test_upload_then_delete(self):
        storage = InMemoryStorage()
        url = storage.upload(b"img", "tee.png", "image/png")

        assert url.startswith("memory://storage/products/")
        storage.delete(url)
        assert storage.objects == {}

    def test_delete_unknown(self):
        with pytest.raises(InvalidUpload):
            InMemoryStorage().delete("memory://storage/products/missing.png")
