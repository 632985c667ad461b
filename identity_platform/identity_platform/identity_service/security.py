"""Bearer token gateway for protected routes."""
from typing import Optional
import logging

from fastapi import HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .auth import TokenClaims, TokenIssuer
from .errors import TokenError

logger = logging.getLogger(__name__)


class BearerAuth:
    """
    Extract exactly one bearer token from the Authorization header and verify it.

    A missing header, a non-bearer scheme and an empty value all count as
    "no token" (401). A token that fails verification, whether tampered or
    expired, is rejected with 403. On success the claims are returned and
    attached to ``request.state.identity``.
    """

    def __init__(self, issuer: Optional[TokenIssuer] = None):
        self._issuer = issuer
        self._bearer = HTTPBearer(auto_error=False)

    async def __call__(self, request: Request) -> TokenClaims:
        credentials: Optional[HTTPAuthorizationCredentials] = await self._bearer(request)
        if (
            credentials is None
            or credentials.scheme.lower() != "bearer"
            or not credentials.credentials.strip()
        ):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Access token required",
                headers={"WWW-Authenticate": "Bearer"},
            )

        issuer: TokenIssuer = self._issuer or request.app.state.token_issuer
        try:
            claims = issuer.verify(credentials.credentials.strip())
        except TokenError as exc:
            logger.debug("Rejected bearer token: %s", exc)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token") from exc

        request.state.identity = claims
        return claims


require_identity = BearerAuth()


__all__ = ["BearerAuth", "require_identity"]
