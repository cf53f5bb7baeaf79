"""Bearer-token authentication for the web routes.

User accounts live in the publishing platform. The service only needs a
way to turn a bearer token into a user id.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

TokenResolver = Callable[[str], Optional[str]]

bearer_scheme = HTTPBearer(auto_error=False)


def static_token_resolver(tokens: dict[str, str]) -> TokenResolver:
    """Resolve tokens against a fixed token -> user id table."""
    table = dict(tokens)

    def resolve(token: str) -> Optional[str]:
        return table.get(token)

    return resolve


def current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """FastAPI dependency returning the authenticated user id."""
    if credentials is None:
        raise HTTPException(401, detail="Non autorizzato, token mancante")

    resolve: TokenResolver = request.app.state.resolve_token
    user_id = resolve(credentials.credentials)
    if not user_id:
        logger.info("Token non valido da %s", request.client.host if request.client else "?")
        raise HTTPException(401, detail="Non autorizzato, token non valido")
    return user_id
