from __future__ import annotations

"""
Streaming credential issuer
===========================

For an admitted stream this mints:
- a **presigned retrieval URL** for the media object, and
- a **signed streaming credential** (HS256 JWT) the storage gateway can verify
  without calling back.

Both are derived from a single clock reading with the same TTL, so they expire
at the same instant. There is no revocation channel: stopping a stream frees
its slot but the credential stays valid until `exp`.

Object keys are validated by `check_key` before a stream is admitted; a stored
key storage can never sign is a missing rendition (`NotFoundError`). A signing
failure on a valid key is `StorageUnavailableError`.

Claims
------
userId, contentId, contentType, seriesId?, seasonId?, streamId, deviceId,
quality, iat, exp
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional
import logging

from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.core.exceptions import AuthError, NotFoundError, StorageUnavailableError
from app.core.storage import StorageProtocol
from app.services.entitlement import utcnow
from app.services.media_keys import subtitle_key
from app.utils.aws import S3StorageError

logger = logging.getLogger(__name__)

STREAM_TOKEN_ALGORITHM = "HS256"


@dataclass(frozen=True)
class StreamGrant:
    stream_url: str
    token: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class SignedUrl:
    url: str
    expires_at: datetime


class CredentialIssuer:
    def __init__(
        self,
        storage: StorageProtocol,
        *,
        secret: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        subtitle_ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.storage = storage
        self._secret = secret or settings.streaming_secret
        self.ttl_seconds = ttl_seconds or settings.STREAM_TOKEN_TTL_SECONDS
        self.subtitle_ttl_seconds = subtitle_ttl_seconds or settings.SUBTITLE_URL_TTL_SECONDS
        self.clock = clock

    def check_key(self, object_key: str) -> str:
        """Normalized key, or `NotFoundError` when storage would refuse to sign it."""
        try:
            return self.storage.normalize_key(object_key)
        except S3StorageError as e:
            logger.warning("Unusable media key %r: %s", object_key, e)
            raise NotFoundError("Media not available")

    def _presign(self, key: str, ttl: int) -> str:
        try:
            return self.storage.request_download_url(key, ttl)
        except S3StorageError as e:
            logger.error("Presign failed for %r: %s", key, e)
            raise StorageUnavailableError() from e

    def issue(
        self,
        *,
        object_key: str,
        account_id: str,
        content_id: str,
        content_type: str,
        stream_id: str,
        device_id: str,
        quality: str,
        series_id: Optional[str] = None,
        season_id: Optional[str] = None,
    ) -> StreamGrant:
        now = self.clock().replace(microsecond=0)
        expires_at = now + timedelta(seconds=self.ttl_seconds)

        claims: Dict[str, Any] = {
            "userId": account_id,
            "contentId": content_id,
            "contentType": content_type,
            "streamId": stream_id,
            "deviceId": device_id,
            "quality": quality,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        if series_id:
            claims["seriesId"] = series_id
        if season_id:
            claims["seasonId"] = season_id

        token = jwt.encode(claims, self._secret, algorithm=STREAM_TOKEN_ALGORITHM)
        url = self._presign(object_key, self.ttl_seconds)
        return StreamGrant(stream_url=url, token=token, issued_at=now, expires_at=expires_at)

    def verify(self, token: str) -> Dict[str, Any]:
        """Signature + expiry check; what the storage gateway does on every segment fetch."""
        try:
            claims = jwt.decode(token, self._secret, algorithms=[STREAM_TOKEN_ALGORITHM])
        except ExpiredSignatureError:
            raise AuthError("Streaming token has expired")
        except JWTError as e:
            logger.info("Rejected streaming token: %s", e)
            raise AuthError("Invalid streaming token")
        if not claims.get("streamId") or not claims.get("userId"):
            raise AuthError("Invalid streaming token")
        return claims

    def subtitle_url(self, subtitle_id: str) -> SignedUrl:
        now = self.clock()
        url = self._presign(subtitle_key(subtitle_id), self.subtitle_ttl_seconds)
        return SignedUrl(url=url, expires_at=now + timedelta(seconds=self.subtitle_ttl_seconds))


__all__ = ["CredentialIssuer", "StreamGrant", "SignedUrl", "STREAM_TOKEN_ALGORITHM"]
