from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from config import settings
from services.session_token import (
    SESSION_TOKEN_TYPE,
    SessionTokenError,
    create_session_token,
    decode_session_token,
)


AUTH_USER_ID = "auth-user"


def _token(**overrides):
    now = datetime.now(timezone.utc)
    claims = {
        "sub": AUTH_USER_ID,
        "type": SESSION_TOKEN_TYPE,
        "aud": settings.JWT_AUDIENCE,
        "iss": settings.JWT_ISSUER,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=1)).timestamp()),
    }
    claims.update(overrides)
    claims = {key: value for key, value in claims.items() if value is not None}
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def test_session_token_round_trip_carries_audience_and_issuer():
    issued = create_session_token(AUTH_USER_ID, email="ada@example.com", expires_hours=2)
    claims = decode_session_token(issued["token"])

    assert issued["user_id"] == AUTH_USER_ID
    assert claims["sub"] == AUTH_USER_ID
    assert claims["aud"] == settings.JWT_AUDIENCE
    assert claims["iss"] == settings.JWT_ISSUER
    assert claims["email"] == "ada@example.com"
    assert claims["exp"] == issued["expires_at"]


def test_session_token_requires_user_id():
    with pytest.raises(SessionTokenError):
        create_session_token("  ")


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"aud": "another-service"}, "Invalid session token."),
        ({"aud": None}, "Invalid session token."),
        ({"iss": "someone-else"}, "Invalid session token."),
        ({"type": "refresh"}, "Invalid session token type."),
        ({"exp": int((datetime.now(timezone.utc) - timedelta(minutes=5)).timestamp())}, "Session token has expired."),
    ],
)
def test_decode_rejects_tokens_not_issued_for_this_api(overrides, message):
    with pytest.raises(SessionTokenError) as excinfo:
        decode_session_token(_token(**overrides))
    assert str(excinfo.value) == message


@pytest.mark.asyncio
async def test_wrong_audience_token_is_unauthorized(api_client):
    response = await api_client.get(
        "/billing/credits",
        headers={"Authorization": f"Bearer {_token(aud='another-service')}"},
    )
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_expired_token_is_unauthorized_with_reason(api_client):
    expired = _token(exp=int((datetime.now(timezone.utc) - timedelta(minutes=5)).timestamp()))
    response = await api_client.get("/billing/transactions", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Session token has expired."


@pytest.mark.asyncio
async def test_scoped_user_id_accepts_own_id_and_rejects_others(api_client):
    headers = {"Authorization": f"Bearer {_token()}"}

    own = await api_client.get(f"/billing/transactions?user_id={AUTH_USER_ID}", headers=headers)
    assert own.status_code == 200

    other = await api_client.get("/billing/transactions?user_id=not-me", headers=headers)
    assert other.status_code == 403
