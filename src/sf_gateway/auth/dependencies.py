"""FastAPI dependencies: current user resolution and role authorization.

Usage in any protected router:
    from src.sf_gateway.auth.dependencies import require_roles

    @router.post("/admin/thing")
    async def thing(user: Annotated[UserModel, Depends(require_roles(Role.ADMIN))]):
        ...

``require_roles`` is the single place privileged endpoints check roles; the
order services trust the user it yields and only add ownership checks
(e.g. a rider may only deliver orders assigned to them).
"""

from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_common.database import get_db_session
from src.sf_common.enums import Role
from src.sf_common.errors import AccountDisabledError, AuthorizationError, InvalidCredentialsError
from src.sf_gateway.auth.jwt_handler import decode_token
from src.sf_gateway.user.db_models import UserModel

# tokenUrl tells Swagger UI where to get a token (used for the "Authorize" button)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def _load_user(token: str, db: AsyncSession) -> UserModel:
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id: str | None = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _CREDENTIALS_EXCEPTION

    if not user.is_active:
        raise AccountDisabledError()

    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Extract and validate the JWT Bearer token, return the UserModel.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    return await _load_user(token, db)


async def get_optional_user(
    token: str | None = Depends(optional_oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel | None:
    """Like get_current_user, but anonymous callers (guest checkout) get None."""
    if token is None:
        return None
    return await _load_user(token, db)


def require_roles(*roles: Role) -> Callable[..., Awaitable[UserModel]]:
    """Build a dependency that admits only users holding one of ``roles``."""
    allowed = {r.value for r in roles}

    async def dependency(
        current_user: UserModel = Depends(get_current_user),
    ) -> UserModel:
        if current_user.role not in allowed:
            raise AuthorizationError()
        return current_user

    dependency.__name__ = f"require_{'_or_'.join(sorted(allowed)).lower()}"
    return dependency
