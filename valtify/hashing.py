"""Password verifiers (argon2id).

Costs come from configuration (ARGON2_TIME_COST, ARGON2_MEMORY_COST,
ARGON2_PARALLELISM) so they can be raised without a code change; stored
verifiers produced with older parameters are upgraded on the next login.
"""

import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from valtify import config

logger = logging.getLogger(__name__)

HASH_LENGTH = 32
SALT_LENGTH = 16


class CredentialHasher:
    """One-way transform from a plaintext password to a storable verifier."""

    def __init__(
        self,
        time_cost: int = config.ARGON2_TIME_COST,
        memory_cost: int = config.ARGON2_MEMORY_COST,
        parallelism: int = config.ARGON2_PARALLELISM,
    ):
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=HASH_LENGTH,
            salt_len=SALT_LENGTH,
        )
        # Verified against when an email is unknown, so a miss costs the same as a wrong password.
        self._dummy = self._hasher.hash("valtify-timing-equalizer")

    def hash(self, plaintext: str) -> str:
        """Return an encoded argon2id verifier with a fresh random salt."""
        return self._hasher.hash(plaintext)

    def verify(self, plaintext: str, verifier: str | None) -> bool:
        """
        Check a plaintext password against a stored verifier.

        Malformed or missing verifiers count as a mismatch; this never raises.
        """
        if not verifier:
            return False
        try:
            return self._hasher.verify(verifier, plaintext)
        except VerifyMismatchError:
            return False
        except (VerificationError, InvalidHashError, ValueError) as exc:
            logger.debug("Verifier rejected: %s", type(exc).__name__)
            return False

    def verify_dummy(self, plaintext: str) -> None:
        self.verify(plaintext, self._dummy)

    def needs_rehash(self, verifier: str) -> bool:
        """True if the verifier was produced with different cost parameters."""
        try:
            return self._hasher.check_needs_rehash(verifier)
        except (InvalidHashError, ValueError):
            return True
