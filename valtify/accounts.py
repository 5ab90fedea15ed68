"""Account persistence.

Email addresses are stored normalized (stripped, lower-cased); the unique
index on ``accounts.email`` is what decides between two concurrent
registrations of the same address.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from valtify.database import store_errors
from valtify.errors import Conflict
from valtify.models import Account, utcnow

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountStore:
    """Repository for Account records."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, email: str, verifier: str) -> Account:
        """
        Insert a new account.

        Raises:
            Conflict: if the normalized email is already registered
        """
        account = Account(email=normalize_email(email), password_hash=verifier)
        try:
            with store_errors(self.db):
                self.db.add(account)
                self.db.commit()
        except IntegrityError as exc:
            raise Conflict() from exc

        logger.info("Account created: %s", account.id)
        return account

    def find_by_email(self, email: str) -> Account | None:
        with store_errors(self.db):
            return self.db.scalars(
                select(Account).where(Account.email == normalize_email(email))
            ).first()

    def find_by_id(self, account_id: str) -> Account | None:
        with store_errors(self.db):
            return self.db.get(Account, account_id)

    def record_login(self, account: Account, new_verifier: str | None = None) -> None:
        """Stamp last_login, storing an upgraded verifier if one is given."""
        with store_errors(self.db):
            account.last_login = utcnow()
            if new_verifier:
                account.password_hash = new_verifier
            self.db.commit()
