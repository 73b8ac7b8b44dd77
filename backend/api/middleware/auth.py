"""
Bearer token authentication.

Verifies access tokens issued by this API and exposes the caller as an
AuthenticatedUser. Expired and tampered tokens produce the same generic
401 so a client cannot tell which check failed.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from modules.auth.exceptions import (
    ExpiredTokenError,
    InvalidSignatureError,
    MissingTokenError,
)
from modules.auth.tokens import TokenIssuer
from shared.exceptions import AuthenticationError
from shared.models import AuthenticatedUser

from ..dependencies import get_token_issuer

logger = logging.getLogger(__name__)

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str, issuer: TokenIssuer) -> AuthenticatedUser:
    """
    Verify an access token and return the user it identifies.

    Raises:
        AuthenticationError: If the token is expired, malformed or forged.
    """
    try:
        claims = issuer.verify(token)
    except (ExpiredTokenError, InvalidSignatureError) as e:
        logger.debug("Rejected bearer token: %s", e.code)
        raise AuthenticationError("Invalid or expired authentication token")

    return AuthenticatedUser(id=claims.user_id, email=claims.email)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthenticatedUser:
    """
    Dependency that requires authentication.

    Use this for endpoints that require a logged-in user.

    Usage:
        @router.get("/protected")
        async def protected_route(user: AuthenticatedUser = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    if credentials is None:
        raise MissingTokenError()

    return decode_token(credentials.credentials, issuer)

