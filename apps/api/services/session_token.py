"""Signed session tokens that scope API calls to one account.

Tokens are HS256 JWTs issued for this API only: they carry the configured
audience and issuer, a ``type`` marker, the account id as ``sub`` and an
expiry. Decoding rejects tokens minted for another audience or issuer even
when they were signed with the same secret.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from config import settings


SESSION_TOKEN_TYPE = "worksheet_session"
REQUIRED_CLAIMS = {"require_exp": True, "require_sub": True, "require_aud": True, "require_iss": True}


class SessionTokenError(ValueError):
    """The bearer token cannot be used to scope a request."""


def create_session_token(
    user_id: str,
    email: Optional[str] = None,
    expires_hours: Optional[int] = None,
) -> Dict[str, Any]:
    user_id = str(user_id or "").strip()
    if not user_id:
        raise SessionTokenError("Session token needs a user id.")

    now = datetime.now(timezone.utc)
    ttl_hours = max(int(expires_hours or settings.JWT_EXPIRATION_HOURS or 24), 1)
    expires_at = now + timedelta(hours=ttl_hours)
    claims: Dict[str, Any] = {
        "sub": user_id,
        "type": SESSION_TOKEN_TYPE,
        "aud": settings.JWT_AUDIENCE,
        "iss": settings.JWT_ISSUER,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    if email:
        claims["email"] = email

    return {
        "token": jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM),
        "user_id": user_id,
        "expires_at": int(expires_at.timestamp()),
    }


def decode_session_token(token: str) -> Dict[str, Any]:
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options=REQUIRED_CLAIMS,
        )
    except ExpiredSignatureError as exc:
        raise SessionTokenError("Session token has expired.") from exc
    except JWTError as exc:
        raise SessionTokenError("Invalid session token.") from exc

    if claims.get("type") != SESSION_TOKEN_TYPE:
        raise SessionTokenError("Invalid session token type.")
    if not str(claims.get("sub") or "").strip():
        raise SessionTokenError("Session token missing subject.")
    return claims
