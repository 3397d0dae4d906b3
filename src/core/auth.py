"""Authentication dependencies.

Supports two token transports:
1. Session cookie (dashboard)
2. Authorization Bearer JWT (service callers)
"""

from typing import Annotated

from fastapi import Cookie, Depends, HTTPException, Request, status

from src.config import settings
from src.core.security import TokenData, decode_access_token


async def get_current_owner(
    request: Request,
    session_token: Annotated[str | None, Cookie(alias=settings.jwt_cookie_name)] = None,
) -> TokenData:
    """Extract and validate the calling account.

    Raises:
        HTTPException 401: If no valid token is found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not session_token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            session_token = auth_header[7:]

    if not session_token:
        raise credentials_exception

    payload = decode_access_token(session_token)
    if payload is None:
        raise credentials_exception

    try:
        return TokenData(payload)
    except (KeyError, ValueError, TypeError):
        raise credentials_exception


CurrentOwner = Annotated[TokenData, Depends(get_current_owner)]
