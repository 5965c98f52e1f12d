"""Firestore-backed document store.

Drop-in replacement for ``file_store.py``.  Every record is its own
Firestore document under ``{collection}/{name}/items``, so an append-only
collection such as the conversation log never hits the per-document size
cap.  Insertion order is kept in an ``_order`` field.
"""

import logging
import threading
import time
from typing import Dict, List

from my_assistant.constants import COLLECTIONS

logger = logging.getLogger(__name__)

ORDER_FIELD = "_order"
# Firestore rejects batches with more than 500 writes.
BATCH_LIMIT = 500


def _get_firestore_client():
    """Lazy-import and create a Firestore client."""
    from google.cloud import firestore
    return firestore.Client()


class FirestoreDocumentStore:
    """Same public API as ``JsonDocumentStore``."""

    def __init__(self, collection: str = "assistant_data", db_client=None):
        self._db = db_client or _get_firestore_client()
        self._collection = self._db.collection(collection)
        self._order_lock = threading.Lock()
        self._last_order = 0

    def initialize(self) -> None:
        """Create the parent document of every collection."""
        for name in COLLECTIONS:
            try:
                parent = self._collection.document(name)
                if not parent.get().exists:
                    parent.set({"name": name})
            except Exception:
                logger.exception("Failed to initialise Firestore collection %s", name)

    def _items(self, name: str):
        return self._collection.document(name).collection("items")

    def _next_order(self) -> int:
        """Nanosecond clock, bumped so orders stay strictly increasing."""
        with self._order_lock:
            self._last_order = max(time.time_ns(), self._last_order + 1)
            return self._last_order

    def load(self, name: str) -> List[Dict]:
        try:
            snapshots = list(self._items(name).order_by(ORDER_FIELD).stream())
        except Exception:
            logger.exception("Failed to read collection %s from Firestore", name)
            return []
        records = []
        for snapshot in snapshots:
            data = snapshot.to_dict() or {}
            data.pop(ORDER_FIELD, None)
            records.append(data)
        return records

    def save(self, name: str, records: List[Dict]) -> None:
        """Replace the whole collection with *records*."""
        items = self._items(name)
        try:
            stale = [snapshot.reference for snapshot in items.stream()]
            for start in range(0, len(stale), BATCH_LIMIT):
                batch = self._db.batch()
                for ref in stale[start:start + BATCH_LIMIT]:
                    batch.delete(ref)
                batch.commit()
            for start in range(0, len(records), BATCH_LIMIT):
                batch = self._db.batch()
                for record in records[start:start + BATCH_LIMIT]:
                    order = self._next_order()
                    batch.set(items.document(str(order)), {**record, ORDER_FIELD: order})
                batch.commit()
        except Exception:
            logger.exception("Failed to write collection %s to Firestore", name)

    def append(self, name: str, record: Dict) -> None:
        """Write *record* as one new document; existing records are untouched."""
        order = self._next_order()
        try:
            self._items(name).document(str(order)).set({**record, ORDER_FIELD: order})
        except Exception:
            logger.exception("Failed to write collection %s to Firestore", name)
