"""Signed, time-scoped session tokens (JWT, HS256).

A token is a self-contained claim ``{sub: account_id, iat, exp}``. There is
no revocation list: tokens die by expiry, or all at once when the signing
secret is rotated.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class SessionIssuer:
    """Mints and validates bearer session tokens."""

    def __init__(
        self,
        secret_key: str,
        ttl_minutes: int = 24 * 60,
        algorithm: str = ALGORITHM,
    ):
        """
        Args:
            secret_key: Process-wide signing secret
            ttl_minutes: Token lifetime; 0 disables expiry
            algorithm: JWT signing algorithm
        """
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        if ttl_minutes < 0:
            raise ValueError("ttl_minutes must not be negative")
        self._secret_key = secret_key
        self._ttl = timedelta(minutes=ttl_minutes) if ttl_minutes > 0 else None
        self._algorithm = algorithm

    @property
    def expires(self) -> bool:
        return self._ttl is not None

    def issue(self, account_id: str) -> str:
        now = datetime.now(timezone.utc)
        claims = {"sub": str(account_id), "iat": now}
        if self._ttl is not None:
            claims["exp"] = now + self._ttl
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str | None) -> str | None:
        """
        Validate a token.

        Returns:
            The account id the token was issued to, or None if the token is
            malformed, forged, signed with another secret, or expired.
        """
        if not token:
            return None

        required = ["sub", "iat", "exp"] if self._ttl is not None else ["sub", "iat"]
        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require": required},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Rejected expired session token")
            return None
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected session token: %s", type(exc).__name__)
            return None

        account_id = claims.get("sub")
        if not isinstance(account_id, str) or not account_id:
            return None
        return account_id
