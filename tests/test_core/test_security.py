# tests/test_core/test_security.py

from datetime import timedelta

import pytest
from jose import jwt

from app.core.config import settings
from app.core.exceptions import AuthError
from app.core.jwt import decode_access_token, decode_token
from app.core.security import create_access_token


def test_access_token_round_trip():
    token = create_access_token("acct-9")
    payload = decode_access_token(token)
    assert payload["sub"] == "acct-9"
    assert payload["token_type"] == "access"
    assert payload["jti"]


def test_expired_access_token():
    token = create_access_token("acct-9", expires_delta=timedelta(seconds=-5))
    with pytest.raises(AuthError) as ei:
        decode_access_token(token)
    assert ei.value.message == "Token has expired."


def test_wrong_token_type_is_rejected():
    token = jwt.encode(
        {"sub": "acct-9", "token_type": "refresh"},
        settings.JWT_SECRET_KEY.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(AuthError) as ei:
        decode_access_token(token)
    assert ei.value.message == "Invalid token type."


def test_missing_subject_is_rejected():
    token = jwt.encode({"token_type": "access"}, settings.JWT_SECRET_KEY.get_secret_value(), algorithm="HS256")
    with pytest.raises(AuthError):
        decode_token(token)


def test_audience_is_enforced_when_configured(monkeypatch):
    monkeypatch.setattr(settings, "JWT_AUDIENCE", "streamgate")
    good = create_access_token("acct-9")
    assert decode_access_token(good)["aud"] == "streamgate"

    monkeypatch.setattr(settings, "JWT_AUDIENCE", "someone-else")
    with pytest.raises(AuthError):
        decode_access_token(good)


@pytest.mark.parametrize("header", ["", "Basic abc", "Bearer", "Token abc.def"])
def test_malformed_authorization_header(client, header):
    r = client.get("/api/v1/devices", headers={"Authorization": header} if header else {})
    assert r.status_code == 401
    assert r.json()["kind"] == "auth"
