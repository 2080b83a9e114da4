"""
Endpoint Dependencies

FastAPI dependencies shared by the routers: service access and caller
authentication.
"""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from shortlinks.core.container import ServiceContainer, get_container
from shortlinks.core.security import Identity

bearer_scheme = HTTPBearer(auto_error=False)


async def require_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    container: ServiceContainer = Depends(get_container),
) -> Identity:
    """
    Authenticate the caller from the Authorization: Bearer header.

    Raises:
        HTTPException 401: If the token is missing, malformed or expired
    """
    token = credentials.credentials if credentials else None
    identity = container.authenticator.authenticate(token)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required. Provide a valid Bearer token in the Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity
