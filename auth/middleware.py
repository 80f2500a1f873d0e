"""
Bearer-token identity for protected routes
"""
import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from auth.tokens import InvalidTokenError
from config.context import AppContext, get_context
from config.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    # identical for missing and invalid tokens
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    context: AppContext = Depends(get_context),
) -> None:
    """
    Verify the request's bearer token and attach its subject to request.state

    Declared as a router-level dependency, so it runs before any protected
    handler and never touches the database.
    """
    if credentials is None or credentials.scheme != "Bearer":
        logger.debug("Rejected %s %s: missing bearer token", request.method, request.url.path)
        raise _unauthorized()

    try:
        subject = context.tokens.verify(credentials.credentials)
    except InvalidTokenError as e:
        logger.debug("Rejected %s %s: %s", request.method, request.url.path, e)
        raise _unauthorized()

    request.state.subject = subject


def current_subject(request: Request) -> uuid.UUID:
    """Verified subject of the request; a server error if identity was never attached"""
    subject = getattr(request.state, "subject", None)
    if subject is None:
        logger.error("No subject on %s %s: route is not behind require_identity",
                     request.method, request.url.path)
        raise HTTPException(status_code=500, detail="Internal server error")

    try:
        return uuid.UUID(subject)
    except ValueError:
        logger.error("Token subject %r is not a user id", subject)
        raise HTTPException(status_code=500, detail="Internal server error")
