# app/utils/aws.py
from __future__ import annotations

"""
🧊 StreamGate • Object Storage (Cloudflare R2 via boto3)
=======================================================

Thin S3-compatible wrapper the playback service uses to hand out
time-bounded URLs for media it does not own.

🔗 Contract
-----------
- Class: `S3Client`, `S3StorageError`
- Methods: `S3Client.normalize_key(key)`
           `S3Client.request_download_url(key, ttl)`
           `S3Client.request_upload_url(key, content_type, ttl)`
           `S3Client.delete_object(key)`

Implementation notes
--------------------
- Presigned URLs are computed locally (SigV4); no network round trip.
- Keys are normalized (no leading slash, no `..`).
- R2 requires path-style addressing and region "auto".
"""

from typing import Any, Dict, Optional
import logging
import re

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# 🧱 Exceptions
# ─────────────────────────────────────────────────────────────────────────────

class S3StorageError(RuntimeError):
    """Raised when a storage operation fails (configuration, signing, network)."""


# ─────────────────────────────────────────────────────────────────────────────
# 🧰 Key validation
# ─────────────────────────────────────────────────────────────────────────────

_KEY_ALLOWED_RE = re.compile(r"[A-Za-z0-9._\-/+=@() ]+")


def _normalize_key(key: str) -> str:
    """
    Normalize and validate object keys.

    Strips whitespace and leading '/', collapses '//' runs, rejects '..' and
    characters outside a conservative allow-list.
    """
    k = str(key or "").strip().lstrip("/")
    k = re.sub(r"/{2,}", "/", k)
    if not k:
        raise S3StorageError("Invalid storage key: empty")
    if ".." in k:
        raise S3StorageError("Invalid storage key: path traversal detected")
    if not _KEY_ALLOWED_RE.fullmatch(k):
        raise S3StorageError("Invalid storage key: contains forbidden characters")
    return k


# ─────────────────────────────────────────────────────────────────────────────
# 📦 S3 Client
# ─────────────────────────────────────────────────────────────────────────────

class S3Client:
    """
    S3-compatible client bound to one bucket.

    Parameters
    ----------
    bucket : str | None
        Defaults to `settings.R2_BUCKET_NAME`.
    endpoint_url : str | None
        Defaults to `settings.R2_ENDPOINT`.
    region_name : str | None
        Defaults to `settings.R2_REGION` ("auto" for R2).

    Credentials come from `R2_ACCESS_KEY_ID` / `R2_SECRET_ACCESS_KEY` when set,
    otherwise from the standard AWS credential chain.
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        *,
        endpoint_url: Optional[str] = None,
        region_name: Optional[str] = None,
    ) -> None:
        self.bucket = bucket or settings.R2_BUCKET_NAME
        if not self.bucket:
            raise S3StorageError("R2_BUCKET_NAME not configured")

        endpoint_cfg = endpoint_url or settings.R2_ENDPOINT
        cfg = BotoConfig(
            signature_version="s3v4",
            retries={"max_attempts": 5, "mode": "standard"},
            connect_timeout=3,
            read_timeout=10,
            s3={"addressing_style": "path"},
        )

        client_kwargs: Dict[str, Any] = {
            "config": cfg,
            "region_name": region_name or settings.R2_REGION,
        }
        if endpoint_cfg:
            client_kwargs["endpoint_url"] = endpoint_cfg
        if settings.R2_ACCESS_KEY_ID and settings.R2_SECRET_ACCESS_KEY:
            client_kwargs["aws_access_key_id"] = settings.R2_ACCESS_KEY_ID
            client_kwargs["aws_secret_access_key"] = settings.R2_SECRET_ACCESS_KEY.get_secret_value()

        try:
            self.client = boto3.client("s3", **client_kwargs)
        except (BotoCoreError, ValueError) as e:  # pragma: no cover
            raise S3StorageError(f"Failed to create S3 client: {e}") from e

        self._repr = f"S3Client(bucket={self.bucket}, endpoint={'yes' if endpoint_cfg else 'no'})"

    # ────────────────────────────────────────────────────────────────────────
    # 🔐 Signed URL helpers
    # ────────────────────────────────────────────────────────────────────────

    def normalize_key(self, key: str) -> str:
        """Validated form of `key`; raises `S3StorageError` for keys that can never be signed."""
        return _normalize_key(key)

    def request_download_url(self, key: str, ttl: int) -> str:
        """Presigned GET for `key`, valid for `ttl` seconds."""
        k = _normalize_key(key)
        try:
            return self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": k},
                ExpiresIn=int(ttl),
            )
        except (BotoCoreError, ClientError) as e:
            raise S3StorageError(f"Failed to create presigned GET: {e}") from e

    def request_upload_url(self, key: str, content_type: str, ttl: int = 3600) -> str:
        """Presigned PUT; uploaders must send the same `Content-Type`."""
        k = _normalize_key(key)
        try:
            return self.client.generate_presigned_url(
                ClientMethod="put_object",
                Params={"Bucket": self.bucket, "Key": k, "ContentType": content_type},
                ExpiresIn=int(ttl),
                HttpMethod="PUT",
            )
        except (BotoCoreError, ClientError) as e:
            raise S3StorageError(f"Failed to create presigned PUT: {e}") from e

    # ────────────────────────────────────────────────────────────────────────
    # 🚀 Direct server-side ops
    # ────────────────────────────────────────────────────────────────────────

    def delete_object(self, key: str) -> bool:
        """
        Idempotent delete.

        Returns True when the request was accepted (including "NoSuchKey"),
        False on other client errors (logged at WARNING).
        """
        k = _normalize_key(key)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=k)
            return True
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in {"404", "NoSuchKey", "NotFound"}:
                return True
            logger.warning("delete_object failed (non-fatal): %s", e)
            return False

    def __repr__(self) -> str:  # pragma: no cover
        return self._repr


__all__ = ["S3Client", "S3StorageError"]
