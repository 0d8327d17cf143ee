"""
Signed download links for purchased files on Cloudflare R2.

R2 is S3-compatible, so a boto3 S3 client with region "auto" and
path-style addressing signs GET URLs for it.
"""

from typing import Optional
from urllib.parse import urlparse

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from ..errors import UpstreamError

DEFAULT_EXPIRY = 300


def sanitize_endpoint(endpoint: str) -> str:
    """Reduce an endpoint URL to scheme://host[:port].

    A bucket name left in the path would otherwise end up in signed URLs
    twice (endpoint/bucket/bucket/key).
    """
    parsed = urlparse(endpoint.strip())
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid storage endpoint: {endpoint!r}")
    return f"{parsed.scheme}://{parsed.netloc}"


class DownloadSigner:
    def __init__(
        self,
        endpoint: str,
        access_key_id: str,
        secret_access_key: str,
        bucket_name: str,
        expires_in: int = DEFAULT_EXPIRY,
        s3_client=None,
    ):
        self.endpoint_url = sanitize_endpoint(endpoint)
        self.bucket_name = bucket_name
        self.expires_in = expires_in
        self.s3_client = s3_client or boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name="auto",  # R2 uses 'auto' region
            config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
        )

    def sign(self, file_key: str, expires_in: Optional[int] = None) -> str:
        """Return a time-limited GET URL for exactly file_key."""
        try:
            url = self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": file_key},
                ExpiresIn=expires_in or self.expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to sign download URL for {file_key}: {e}")
            raise UpstreamError("Could not create a download link.") from e
        logger.debug(f"Signed download URL for {file_key} ({expires_in or self.expires_in}s)")
        return url
