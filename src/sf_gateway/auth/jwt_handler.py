"""JWT token creation and verification.

Access tokens carry the user's role in a ``role`` claim so the role check in
``require_roles`` needs no extra query beyond loading the user row. Refresh
tokens carry only the subject; the role is re-read from the users table when
a new access token is minted, so role changes apply on the next refresh.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.sf_common.errors import InvalidCredentialsError, InvalidRefreshTokenError

_ALGORITHM = settings.JWT_ALGORITHM
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
_REFRESH_EXPIRE = timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)


def _encode(claims: dict[str, object], lifetime: timedelta) -> str:
    now = datetime.now(UTC)
    payload = {**claims, "iat": now, "exp": now + lifetime}
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def create_access_token(user_id: str, role: str) -> str:
    return _encode({"sub": user_id, "role": role, "type": "access"}, _ACCESS_EXPIRE)


def create_refresh_token(user_id: str) -> str:
    return _encode({"sub": user_id, "type": "refresh"}, _REFRESH_EXPIRE)


def decode_token(token: str, expected_type: str) -> dict[str, str]:
    """Decode and validate a JWT token.

    Raises:
        InvalidCredentialsError: invalid/expired token when expected_type="access".
        InvalidRefreshTokenError: invalid/expired token when expected_type="refresh".
    """
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        _raise_auth_error(expected_type)

    if payload.get("type") != expected_type:
        _raise_auth_error(expected_type)

    return payload


def _raise_auth_error(expected_type: str) -> None:
    if expected_type == "access":
        raise InvalidCredentialsError()
    raise InvalidRefreshTokenError()
