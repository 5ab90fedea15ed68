"""Owner-scoped vault item storage.

Every query filters on ``owner_id`` and ``id`` together, so a foreign item is
indistinguishable from a missing one: both raise NotFound.

``payload`` is always the PayloadCodec stored form. Empty plaintext is rejected
by the HTTP layer before encoding; the check here only guards the stored form.
"""

import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from valtify.database import store_errors
from valtify.errors import InvalidInput, NotFound
from valtify.models import VaultItem, utcnow

logger = logging.getLogger(__name__)


def _require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise InvalidInput(f"{field} must not be empty")
    return value


class VaultStore:
    """Repository for VaultItem records, always scoped by owner."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, owner_id: str, category: str, title: str, payload: str) -> VaultItem:
        title = _require_text(title, "title").strip()
        payload = _require_text(payload, "payload")
        now = utcnow()
        item = VaultItem(
            owner_id=owner_id,
            category=category,
            title=title,
            payload=payload,
            created_at=now,
            updated_at=now,
        )
        with store_errors(self.db):
            self.db.add(item)
            self.db.commit()

        logger.debug("Item %s added for %s", item.id, owner_id)
        return item

    def list(self, owner_id: str) -> list[VaultItem]:
        """All items of ``owner_id``, most recently created first."""
        with store_errors(self.db):
            return list(
                self.db.scalars(
                    select(VaultItem)
                    .where(VaultItem.owner_id == owner_id)
                    .order_by(VaultItem.created_at.desc(), VaultItem.id.desc())
                )
            )

    def get(self, owner_id: str, item_id: str) -> VaultItem:
        with store_errors(self.db):
            item = self.db.scalars(
                select(VaultItem).where(
                    VaultItem.id == item_id,
                    VaultItem.owner_id == owner_id,
                )
            ).first()
        if item is None:
            raise NotFound()
        return item

    def update(
        self,
        owner_id: str,
        item_id: str,
        *,
        category: str | None = None,
        title: str | None = None,
        payload: str | None = None,
    ) -> VaultItem:
        """Apply the given fields; omitted (None) fields are left unchanged."""
        if title is not None:
            title = _require_text(title, "title").strip()
        if payload is not None:
            payload = _require_text(payload, "payload")

        item = self.get(owner_id, item_id)
        with store_errors(self.db):
            if category is not None:
                item.category = category
            if title is not None:
                item.title = title
            if payload is not None:
                item.payload = payload
            item.updated_at = utcnow()
            self.db.commit()

        logger.debug("Item %s updated", item.id)
        return item

    def delete(self, owner_id: str, item_id: str) -> None:
        with store_errors(self.db):
            result = self.db.execute(
                delete(VaultItem).where(
                    VaultItem.id == item_id,
                    VaultItem.owner_id == owner_id,
                )
            )
            self.db.commit()
        if result.rowcount == 0:
            raise NotFound()
        logger.debug("Item %s deleted", item_id)
