"""
Authentication Dependencies

Resolves the bearer token on each request into the authenticated actor and
provides level-based guards for route handlers.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from echelon.database.database import get_db
from echelon.services.auth_service import AuthService
from echelon.utils.auth import Actor, PermissionLevel
from echelon.utils.errors import AuthenticationError, PermissionDeniedError

logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
bearer_scheme = HTTPBearer(auto_error=False)


# =============================================================================
# Dependencies
# =============================================================================

def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Actor:
    """
    Dependency to get the authenticated actor.

    Validates the token, then reloads the employee so that a deactivated
    account or a changed permission level takes effect immediately.
    Raises AuthenticationError if the token is missing or invalid.
    """
    if not credentials:
        raise AuthenticationError("Authentication required")

    return AuthService(db).get_actor_from_token(credentials.credentials)


def require_levels(*levels: PermissionLevel) -> Callable:
    """
    Dependency factory for level-based access control.

    Usage:
        @router.get("/stats")
        def stats(actor: Actor = Depends(require_levels(PermissionLevel.ADMIN))):
            ...
    """
    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not actor.has_level(*levels):
            logger.warning(
                f"Actor {actor.id} ({actor.permission_level.value}) denied: "
                f"requires {', '.join(level.value for level in levels)}"
            )
            raise PermissionDeniedError()
        return actor

    return dependency


require_admin = require_levels(PermissionLevel.ADMIN)
