"""JWT token creation and decoding.

Tokens are issued by the identity service; this module only needs to
mint them for tooling and tests, and to decode them on every request.

Token claims:
  - sub:           user ID
  - role:          superAdmin | admin | staff | client
  - owner_id:      the admin account that owns the caller's catalog and documents
  - customer_ref:  customer the caller represents (client role only)
  - type:          "access"
  - exp:           expiry timestamp
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from salesdesk.config import settings

ALGORITHM = settings.jwt_algorithm


def create_access_token(
    user_id: str,
    role: str,
    owner_id: str,
    customer_ref: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": user_id,
        "role": role,
        "owner_id": owner_id,
        "type": "access",
        "exp": expire,
    }
    if customer_ref:
        payload["customer_ref"] = customer_ref
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}
