"""Authentication: registration, login, and bearer-token resolution.

AuthorizationGate is the only way a request obtains an Account. Vault routes
depend on it, so no vault query runs without an identity that has been
verified against the token signature and confirmed to exist in the store.
"""

import logging

from valtify.accounts import AccountStore
from valtify.errors import InvalidInput, Unauthorized
from valtify.hashing import CredentialHasher
from valtify.models import Account
from valtify.tokens import SessionIssuer

logger = logging.getLogger(__name__)

BEARER = "bearer"


class AuthorizationGate:
    """Resolves an ``Authorization`` header to a store-confirmed Account."""

    def __init__(self, issuer: SessionIssuer):
        self.issuer = issuer

    @staticmethod
    def extract_bearer(header: str | None) -> str:
        """
        Pull the token out of ``Authorization: Bearer <token>``.

        Raises:
            Unauthorized: if the header is absent or not a bearer credential
        """
        if not header:
            raise Unauthorized("Missing bearer token")
        parts = header.split()
        if len(parts) != 2 or parts[0].lower() != BEARER:
            raise Unauthorized("Malformed authorization header")
        return parts[1]

    def resolve(self, header: str | None, accounts: AccountStore) -> Account:
        token = self.extract_bearer(header)

        account_id = self.issuer.verify(token)
        if account_id is None:
            raise Unauthorized("Invalid or expired token")

        account = accounts.find_by_id(account_id)
        if account is None:
            logger.info("Token presented for unknown account %s", account_id)
            raise Unauthorized("Invalid or expired token")
        return account


def register(
    accounts: AccountStore,
    hasher: CredentialHasher,
    issuer: SessionIssuer,
    email: str,
    password: str,
    min_password_length: int = 6,
) -> tuple[Account, str]:
    """
    Create an account and open a session for it.

    Returns:
        (account, token)

    Raises:
        InvalidInput: if the password is shorter than ``min_password_length``
        Conflict: if the email is already registered (any casing)
    """
    if len(password) < min_password_length:
        raise InvalidInput(f"Password must be at least {min_password_length} characters")

    account = accounts.create(email, hasher.hash(password))
    return account, issuer.issue(account.id)


def login(
    accounts: AccountStore,
    hasher: CredentialHasher,
    issuer: SessionIssuer,
    email: str,
    password: str,
) -> tuple[Account, str]:
    """
    Check credentials and open a session.

    Unknown email and wrong password fail identically, and take the same time.

    Raises:
        Unauthorized: on bad credentials
    """
    account = accounts.find_by_email(email)
    if account is None:
        hasher.verify_dummy(password)
        logger.info("Failed login for unknown email")
        raise Unauthorized("Invalid credentials")

    if not hasher.verify(password, account.password_hash):
        logger.info("Failed login for account %s", account.id)
        raise Unauthorized("Invalid credentials")

    new_verifier = None
    if hasher.needs_rehash(account.password_hash):
        new_verifier = hasher.hash(password)
        logger.info("Upgrading password verifier for account %s", account.id)
    accounts.record_login(account, new_verifier)

    logger.info("Login for account %s", account.id)
    return account, issuer.issue(account.id)
