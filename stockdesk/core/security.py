from datetime import datetime, timedelta, timezone
from uuid import uuid4

from jose import JWTError, jwt

from stockdesk.core.config import settings


class TokenValidationError(ValueError):
    pass


def create_token(
    subject: str,
    expires_delta: timedelta,
    token_type: str = "access",
    extra_claims: dict | None = None,
) -> str:
    """Sign a token the way the identity provider does. Used by tests and local tooling."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "type": token_type,
        "jti": str(uuid4()),
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    }
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    if extra_claims:
        payload.update(extra_claims)
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError as exc:
        raise TokenValidationError("Invalid token") from exc

    if not payload.get("sub"):
        raise TokenValidationError("Invalid token subject")

    # Providers that type their tokens must hand us an access token.
    token_type = payload.get("type")
    if token_type is not None and token_type != "access":
        raise TokenValidationError("Invalid token type")

    return payload


def create_access_token(user_id: str) -> str:
    return create_token(
        subject=user_id,
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )
