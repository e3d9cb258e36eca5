# tests/test_core/test_storage.py

from urllib.parse import parse_qs, urlparse

import pytest
from botocore.exceptions import ClientError
from pydantic import SecretStr

from app.core.config import settings
from app.utils.aws import S3Client, S3StorageError, _normalize_key


@pytest.fixture()
def r2(monkeypatch):
    monkeypatch.setattr(settings, "R2_ACCESS_KEY_ID", "test-access-key")
    monkeypatch.setattr(settings, "R2_SECRET_ACCESS_KEY", SecretStr("test-secret-key"))
    return S3Client("media", endpoint_url="https://acct.r2.cloudflarestorage.com")


def test_download_url_is_path_style_sigv4(r2):
    url = r2.request_download_url("movies/m1/1080p/index.m3u8", 7200)
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)

    assert parsed.netloc == "acct.r2.cloudflarestorage.com"
    assert parsed.path == "/media/movies/m1/1080p/index.m3u8"
    assert qs["X-Amz-Algorithm"] == ["AWS4-HMAC-SHA256"]
    assert qs["X-Amz-Expires"] == ["7200"]


def test_upload_url_is_signed_for_put(r2):
    url = r2.request_upload_url("subtitles/sub-en.vtt", "text/vtt", ttl=600)
    assert "/media/subtitles/sub-en.vtt" in url
    assert parse_qs(urlparse(url).query)["X-Amz-Expires"] == ["600"]


@pytest.mark.parametrize("bad", ["", "   ", "../etc/passwd", "movies/<script>"])
def test_bad_keys_are_rejected(bad):
    with pytest.raises(S3StorageError):
        _normalize_key(bad)


def test_keys_are_normalized():
    assert _normalize_key("//movies//m1/index.m3u8") == "movies/m1/index.m3u8"


def test_delete_missing_object_counts_as_deleted(r2, monkeypatch):
    def _raise(**_):
        raise ClientError({"Error": {"Code": "NoSuchKey"}}, "DeleteObject")

    monkeypatch.setattr(r2.client, "delete_object", _raise)
    assert r2.delete_object("movies/m1/x.ts") is True


def test_delete_other_errors_report_false(r2, monkeypatch):
    def _raise(**_):
        raise ClientError({"Error": {"Code": "AccessDenied"}}, "DeleteObject")

    monkeypatch.setattr(r2.client, "delete_object", _raise)
    assert r2.delete_object("movies/m1/x.ts") is False


def test_missing_bucket_is_a_configuration_error(monkeypatch):
    monkeypatch.setattr(settings, "R2_BUCKET_NAME", None)
    with pytest.raises(S3StorageError):
        S3Client()


def test_client_normalize_key_matches_signing_rules(r2):
    assert r2.normalize_key("/movies/m1/index.m3u8") == "movies/m1/index.m3u8"
    with pytest.raises(S3StorageError):
        r2.normalize_key("legacy/Amélie#1.mp4")
