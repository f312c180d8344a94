"""
Credential & Token Issuer

Password hashing uses argon2id through passlib: a fresh random salt per
call, so two hashes of the same password never match byte for byte.

Session tokens are HS256 JWTs carrying {sub, email, iat, exp}. They are
stateless: valid until ``exp`` with no revocation list.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from jose import JWTError, jwt
from passlib.hash import argon2

from letsorder.core.config import get_settings
from letsorder.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class MalformedHashError(ValueError):
    """The stored value is not a parseable argon2 hash."""


# Verified against when the account does not exist, so a login for an
# unknown email costs the same as a wrong password.
_DUMMY_HASH = argon2.hash("letsorder-timing-equaliser")


def hash_password(password: str) -> str:
    return argon2.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check ``password`` against a stored argon2 hash.

    Returns True on match and False on mismatch. Raises MalformedHashError
    if ``password_hash`` cannot be parsed. The comparison always runs the
    full argon2 computation regardless of the password's length or content.
    """
    if not password_hash or not argon2.identify(password_hash):
        raise MalformedHashError("stored password hash is not an argon2 hash")
    try:
        return argon2.verify(password, password_hash)
    except (ValueError, TypeError) as e:
        raise MalformedHashError(str(e)) from e


def burn_verification(password: str) -> None:
    """Run one verification against a throwaway hash and discard the result."""
    argon2.verify(password, _DUMMY_HASH)


@dataclass(frozen=True)
class SessionClaims:
    """Verified identity extracted from a session token."""
    user_id: str
    email: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    """
    Issues and validates signed session tokens.

    Attributes:
        secret: HMAC signing secret
        expiration_hours: Token lifetime
        algorithm: JWT algorithm (HS256)
    """

    def __init__(self, secret: str, expiration_hours: int = 24, algorithm: str = "HS256"):
        self.secret = secret
        self.expiration_hours = expiration_hours
        self.algorithm = algorithm

    def issue(self, user_id: str, email: str, now: Optional[datetime] = None) -> str:
        """Sign a token for ``user_id`` valid for ``expiration_hours``."""
        now = now or datetime.now(timezone.utc)
        expires = now + timedelta(hours=self.expiration_hours)
        claims = {
            "sub": user_id,
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int(expires.timestamp()),
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def validate(self, token: str) -> SessionClaims:
        """
        Verify signature and expiry.

        Raises:
            AuthenticationError: bad signature, expired, or missing claims
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug(f"Rejected session token: {e}")
            raise AuthenticationError("Invalid or expired token")

        try:
            return SessionClaims(
                user_id=str(payload["sub"]),
                email=str(payload["email"]),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("Invalid or expired token")


@lru_cache()
def get_token_issuer() -> TokenIssuer:
    """Token issuer configured from settings (cached)."""
    settings = get_settings()
    return TokenIssuer(
        secret=settings.jwt_secret,
        expiration_hours=settings.jwt_expiration_hours,
        algorithm=settings.jwt_algorithm,
    )
