"""Tests for signed download links."""

from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from music_storefront.domain.errors import UpstreamError
from music_storefront.domain.payments import DownloadSigner, sanitize_endpoint


@pytest.mark.parametrize(
    "endpoint, expected",
    [
        ("https://acct.r2.cloudflarestorage.com", "https://acct.r2.cloudflarestorage.com"),
        ("https://acct.r2.cloudflarestorage.com/bucket", "https://acct.r2.cloudflarestorage.com"),
        ("https://acct.r2.cloudflarestorage.com/bucket/", "https://acct.r2.cloudflarestorage.com"),
        ("http://localhost:9000/music?x=1", "http://localhost:9000"),
    ],
)
def test_sanitize_endpoint(endpoint, expected):
    assert sanitize_endpoint(endpoint) == expected


def test_sanitize_rejects_garbage():
    with pytest.raises(ValueError):
        sanitize_endpoint("not a url")


def test_sign_uses_exact_key_and_expiry():
    s3 = Mock()
    s3.generate_presigned_url.return_value = "https://signed"
    signer = DownloadSigner(
        "https://acct.r2.cloudflarestorage.com/bucket", "id", "secret", "bucket", s3_client=s3
    )

    assert signer.sign("1_Orion.mp3") == "https://signed"
    s3.generate_presigned_url.assert_called_once_with(
        "get_object",
        Params={"Bucket": "bucket", "Key": "1_Orion.mp3"},
        ExpiresIn=300,
    )
    assert signer.endpoint_url == "https://acct.r2.cloudflarestorage.com"


def test_real_client_signs_path_style_url():
    signer = DownloadSigner(
        "https://acct.r2.cloudflarestorage.com/music", "AKIDEXAMPLE", "secret", "music", expires_in=120
    )

    url = signer.sign("1_Orion.mp3")

    assert url.startswith("https://acct.r2.cloudflarestorage.com/music/1_Orion.mp3?")
    assert "X-Amz-Expires=120" in url


def test_signing_failure_is_upstream_error():
    s3 = Mock()
    s3.generate_presigned_url.side_effect = ClientError({"Error": {"Code": "Boom"}}, "GetObject")
    signer = DownloadSigner("https://r2.example", "id", "secret", "bucket", s3_client=s3)

    with pytest.raises(UpstreamError):
        signer.sign("k")
