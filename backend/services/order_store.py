"""
Order Store - persisted-record primitives for the orders collection.

The ledger coordinates concurrent requests only through these calls:
- get(order_id)
- insert_unique(doc)              (unique index on order_id)
- update_if(order_id, predicate)  (single atomic find_one_and_update)
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from database import database

logger = logging.getLogger(__name__)


class DuplicateOrderId(Exception):
    """Raised when insert_unique hits an existing order_id."""


class OrderStore:
    """Key-value access to orders keyed by order_id."""

    @staticmethod
    def _collection():
        return database.get_db().orders

    async def get(self, order_id: str) -> Optional[Dict[str, Any]]:
        return await self._collection().find_one({"order_id": order_id}, {"_id": 0})

    async def insert_unique(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        try:
            await self._collection().insert_one(doc)
        except DuplicateKeyError as e:
            raise DuplicateOrderId(doc.get("order_id")) from e
        # insert_one mutates the dict with the Mongo _id
        doc.pop("_id", None)
        return doc

    async def update_if(
        self,
        order_id: str,
        predicate: Dict[str, Any],
        changes: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """
        Apply `changes` iff the order exists and matches `predicate`.
        Returns the updated document, or None when nothing matched.
        """
        query = {"order_id": order_id, **predicate}
        update = {"$set": {**changes, "updated_at": datetime.now(timezone.utc)}}
        return await self._collection().find_one_and_update(
            query,
            update,
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )

    async def list_recent(self, limit: int = 100) -> List[Dict[str, Any]]:
        cursor = self._collection().find({}, {"_id": 0}).sort("created_at", -1).limit(limit)
        return await cursor.to_list(length=None)


order_store = OrderStore()
