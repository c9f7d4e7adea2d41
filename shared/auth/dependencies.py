import logging
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from shared.auth.config import AuthSettings, get_auth_settings
from shared.constants import Role
from shared.models.user import CurrentUser

logger = logging.getLogger(__name__)

http_bearer = HTTPBearer(auto_error=False)


def decode_token(token: str, settings: AuthSettings) -> CurrentUser:
    """Validate a bearer token and build the caller identity from its claims.

    Raises JWTError on a bad signature/expiry and ValueError on missing or
    malformed claims.
    """
    payload = jwt.decode(
        token,
        settings.secret,
        algorithms=[settings.algorithm],
        issuer=settings.issuer,
        audience=settings.audience,
    )
    user_id = payload.get("sub")
    if not user_id:
        raise ValueError("Missing sub in token")
    roles = [Role(r) for r in payload.get("roles") or []]
    return CurrentUser(id=UUID(user_id), email=payload.get("email") or "", roles=roles)


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    settings: AuthSettings = Depends(get_auth_settings),
) -> CurrentUser | None:
    if not credentials or not credentials.credentials:
        return None
    try:
        return decode_token(credentials.credentials, settings)
    except (JWTError, ValueError) as exc:
        logger.debug("Rejected bearer token: %s", exc)
        return None


async def get_current_user_required(
    user: CurrentUser | None = Depends(get_current_user_optional),
) -> CurrentUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
