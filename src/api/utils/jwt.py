from datetime import UTC, datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from config import ApplicationConfig

OAUTH_STATE_TTL = timedelta(minutes=10)


def create_oauth_state(tenant_slug: str, provider: str, expires_delta: timedelta = OAUTH_STATE_TTL) -> str:
    """
    Sign the OAuth ``state`` parameter.

    Provider callbacks arrive without the tenant header, so the tenant
    travels inside the signed state.

    Args:
        tenant_slug: Tenant that started the flow
        provider: OAuth provider name
        expires_delta: How long the callback may take

    Returns:
        JWT string (HS256)
    """
    now = datetime.now(UTC)
    payload = {
        "tenant": tenant_slug,
        "provider": provider,
        "purpose": "oauth_state",
        "exp": now + expires_delta,
        "iat": now,
    }
    return jwt.encode(payload, ApplicationConfig.JWT_SECRET, algorithm="HS256")


def verify_oauth_state(token: str, provider: str) -> Optional[dict]:
    """
    Verify and decode an OAuth state token

    Returns:
        Decoded payload dict or None if invalid, expired or issued for
        another provider
    """
    try:
        payload = jwt.decode(token, ApplicationConfig.JWT_SECRET, algorithms=["HS256"])
    except JWTError:
        return None

    if payload.get("purpose") != "oauth_state" or payload.get("provider") != provider:
        return None
    return payload
