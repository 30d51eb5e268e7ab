from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from leasegen.core.config import Settings
from leasegen.documents.exceptions import StorageException
from leasegen.utils.s3_utils import S3Utils, build_package_identifier


@pytest.fixture()
def s3_client():
    client = MagicMock()
    client.generate_presigned_url.side_effect = (
        lambda operation, Params, ExpiresIn: f"https://s3.test/{Params['Key']}?expires={ExpiresIn}"
    )
    return client


@pytest.fixture()
def storage(test_settings, s3_client) -> S3Utils:
    return S3Utils(test_settings, s3_client=s3_client)


def test_identifier_prefers_lease_id():
    assert build_package_identifier({"lease_id": "TEST-001", "lease_number": "LS-9"}) == "TEST-001"


def test_identifier_falls_back_to_lease_number():
    assert build_package_identifier({"lease_id": "", "lease_number": "LS 2024/07"}) == "LS-2024-07"


def test_identifier_falls_back_to_timestamp():
    now = datetime(2026, 10, 19, 14, 5, 9, tzinfo=timezone.utc)
    assert build_package_identifier({}, now=now) == "20261019T140509Z"


def test_publish_uploads_and_signs(storage, s3_client, lease_data):
    published = storage.publish_package(b"%PDF-package", lease_data)

    assert published["fileName"] == "lease_TEST-001.pdf"
    assert published["key"] == "leases/lease_TEST-001.pdf"

    args, kwargs = s3_client.upload_fileobj.call_args
    assert args[0].getvalue() == b"%PDF-package"
    assert args[1:] == ("lease-bucket", "leases/lease_TEST-001.pdf")
    assert kwargs["ExtraArgs"] == {"ContentType": "application/pdf"}

    assert published["pdfUrl"] == "https://s3.test/leases/lease_TEST-001.pdf?expires=3600"
    dispositions = [
        call.kwargs["Params"]["ResponseContentDisposition"]
        for call in s3_client.generate_presigned_url.call_args_list
    ]
    assert dispositions == [
        'attachment; filename="lease_TEST-001.pdf"',
        'inline; filename="lease_TEST-001.pdf"',
    ]


def test_upload_failure_raises_storage_error(storage, s3_client, lease_data):
    s3_client.upload_fileobj.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject"
    )

    with pytest.raises(StorageException) as exc_info:
        storage.publish_package(b"%PDF-package", lease_data)
    assert "Failed to upload document" in exc_info.value.message
    s3_client.generate_presigned_url.assert_not_called()


def test_missing_bucket(s3_client, lease_data, tmp_path):
    settings = Settings(_env_file=None, s3_bucket_name="", temp_dir=str(tmp_path))
    storage = S3Utils(settings, s3_client=s3_client)

    with pytest.raises(StorageException) as exc_info:
        storage.publish_package(b"%PDF-package", lease_data)
    assert exc_info.value.message == "Storage bucket is not configured"
    s3_client.upload_fileobj.assert_not_called()
