"""Authentication dependencies.

Tokens are issued by the external auth service. This module only verifies
bearer tokens and resolves the ``sub`` claim to a stored user.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from ..core.errors import AuthenticationError
from ..core.security import verify_access_token
from ..db.schemas import UserRecord
from ..services import TutorServices, get_services

logger = logging.getLogger(__name__)

# OAuth2 scheme for JWT bearer tokens; missing tokens are reported through our own envelope
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/token", auto_error=False)


async def authenticate_token(services: TutorServices, token: Optional[str]) -> UserRecord:
    """
    Resolve a bearer token to its user.

    Raises:
        AuthenticationError: Missing, invalid or expired token, or unknown user
    """
    if not token:
        raise AuthenticationError("Access token required")

    payload = verify_access_token(token)
    if not payload:
        raise AuthenticationError("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    user = await services.store.get_user(str(user_id))
    if user is None:
        logger.warning(f"Token presented for unknown user {user_id}")
        raise AuthenticationError("User not found")
    return user


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    services: TutorServices = Depends(get_services),
) -> UserRecord:
    """Get the current authenticated user from the bearer token."""
    return await authenticate_token(services, token)
