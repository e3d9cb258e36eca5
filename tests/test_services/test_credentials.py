# tests/test_services/test_credentials.py

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from app.core.exceptions import AuthError
from app.services.credentials import CredentialIssuer
from tests.fixtures.state import FakeStorage

SECRET = "unit-test-streaming-secret"


def _issue(issuer, **kw):
    params = dict(
        object_key="movies/m1/1080p/index.m3u8",
        account_id="a1",
        content_id="m1",
        content_type="movie",
        stream_id="s-1",
        device_id="d1",
        quality="1080p",
    )
    params.update(kw)
    return issuer.issue(**params)


def test_grant_url_and_token_share_one_expiry():
    storage = FakeStorage()
    issuer = CredentialIssuer(storage, secret=SECRET, ttl_seconds=7200)

    grant = _issue(issuer)

    assert storage.downloads == [("movies/m1/1080p/index.m3u8", 7200)]
    assert grant.stream_url.endswith("X-Amz-Expires=7200")
    assert grant.expires_at - grant.issued_at == timedelta(seconds=7200)

    claims = issuer.verify(grant.token)
    assert claims["exp"] == int(grant.expires_at.timestamp())
    assert claims["exp"] - claims["iat"] == 7200
    assert {k: claims[k] for k in ("userId", "contentId", "contentType", "streamId", "deviceId", "quality")} == {
        "userId": "a1",
        "contentId": "m1",
        "contentType": "movie",
        "streamId": "s-1",
        "deviceId": "d1",
        "quality": "1080p",
    }
    assert "seriesId" not in claims


def test_episode_token_carries_series_and_season():
    issuer = CredentialIssuer(FakeStorage(), secret=SECRET)
    grant = _issue(issuer, content_type="episode", series_id="s1", season_id="s1-1")
    claims = issuer.verify(grant.token)
    assert claims["seriesId"] == "s1"
    assert claims["seasonId"] == "s1-1"


def test_expired_token_is_rejected():
    past = datetime.now(timezone.utc) - timedelta(hours=3)
    issuer = CredentialIssuer(FakeStorage(), secret=SECRET, ttl_seconds=3600, clock=lambda: past)
    grant = _issue(issuer)
    with pytest.raises(AuthError) as ei:
        issuer.verify(grant.token)
    assert ei.value.status_code == 401
    assert "expired" in ei.value.message


def test_token_signed_with_other_secret_is_rejected():
    forged = jwt.encode(
        {"userId": "a1", "streamId": "s", "exp": int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())},
        "not-the-secret",
        algorithm="HS256",
    )
    with pytest.raises(AuthError):
        CredentialIssuer(FakeStorage(), secret=SECRET).verify(forged)


def test_garbage_token_is_rejected():
    with pytest.raises(AuthError):
        CredentialIssuer(FakeStorage(), secret=SECRET).verify("not.a.jwt")


def test_subtitle_url_uses_subtitle_ttl():
    storage = FakeStorage()
    now = datetime(2026, 10, 19, tzinfo=timezone.utc)
    issuer = CredentialIssuer(storage, secret=SECRET, subtitle_ttl_seconds=3600, clock=lambda: now)

    signed = issuer.subtitle_url("sub-en")

    assert storage.downloads == [("subtitles/sub-en.vtt", 3600)]
    assert signed.expires_at == now + timedelta(hours=1)
