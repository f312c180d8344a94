"""
FastAPI Dependencies

Caller identity comes only from a verified session token; the user id it
carries is what every service call passes to ``authorize``.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from letsorder.core.exceptions import AuthenticationError, RateLimitError
from letsorder.core.security import SessionClaims, TokenIssuer, get_token_issuer
from letsorder.services.ratelimit import BaseRateLimiter, get_rate_limiter

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> SessionClaims:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing authorization token")
    return issuer.validate(credentials.credentials)


async def get_current_user_id(claims: SessionClaims = Depends(get_current_claims)) -> str:
    return claims.user_id


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def rate_limit(
    request: Request,
    limiter: BaseRateLimiter = Depends(get_rate_limiter),
) -> None:
    """Reject the request with 429 once the client exceeds its window."""
    address = client_address(request)
    if not await limiter.hit(address):
        logger.warning(f"Rate limit exceeded for {address} on {request.url.path}")
        raise RateLimitError()
