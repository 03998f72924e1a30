from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt

from app.core.settings import settings


def decode_token(token: str) -> Dict[str, Any]:
    options = {"verify_aud": bool(settings.jwt_audience)}
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.algorithm],
        audience=settings.jwt_audience,
        options=options,
    )


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None, **claims: Any) -> str:
    """Mint a token the way the identity provider would. Used by tests and local tooling."""
    now = datetime.now(timezone.utc)
    to_encode: Dict[str, Any] = {
        "sub": subject,
        "iat": now,
        "exp": now + (expires_delta or timedelta(minutes=60)),
    }
    if settings.jwt_audience:
        to_encode["aud"] = settings.jwt_audience
    to_encode.update(claims)
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.algorithm)
