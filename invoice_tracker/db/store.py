from datetime import date
from typing import Any, Dict, List, Optional, Sequence
import json
import logging
import threading
from pydantic import ValidationError
from invoice_tracker.db.storage import KeyValueStorage, StorageError
from invoice_tracker.schemas.invoice import Invoice, new_invoice_id

logger = logging.getLogger(__name__)


class InvoiceStore:
    """
    The in-memory invoice collection, mirrored to a single storage key.

    The in-memory list stays the source of truth for the session even when a
    write fails; the outcome of the last write is kept in `last_persist_ok`.
    """

    def __init__(self, storage: KeyValueStorage, storage_key: str):
        self._storage = storage
        self._key = storage_key
        self._invoices: List[Invoice] = []
        self._lock = threading.Lock()
        self.last_persist_ok = True

    def __len__(self) -> int:
        return len(self._invoices)

    def load(self) -> List[Invoice]:
        """Replaces the in-memory collection with the persisted one."""
        try:
            raw = self._storage.get_item(self._key)
        except StorageError as e:
            logger.error(f"Error reading invoices from storage: {e}")
            raw = None

        records: List[Invoice] = []
        if raw:
            try:
                payload = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.error(f"Error parsing stored invoices: {e}")
                payload = []
            if not isinstance(payload, list):
                logger.error(f"Stored invoices are not a list (got {type(payload).__name__}); ignoring")
                payload = []
            records = self._parse_records(payload)

        with self._lock:
            self._invoices = records
        logger.info(f"Loaded {len(records)} invoices from key '{self._key}'")
        return list(records)

    def _parse_records(self, payload: List[Any]) -> List[Invoice]:
        records: List[Invoice] = []
        seen_ids = set()
        for index, item in enumerate(payload):
            if not isinstance(item, dict):
                logger.warning(f"Skipping stored invoice #{index}: not an object")
                continue
            try:
                inv = Invoice.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Skipping stored invoice #{index}: {e.error_count()} invalid field(s)")
                continue
            if inv.id in seen_ids:
                inv = inv.model_copy(update={"id": self._fresh_id(seen_ids)})
                logger.warning(f"Stored invoice #{index} reused an id; assigned {inv.id}")
            seen_ids.add(inv.id)
            records.append(inv)
        return records

    def persist(self, records: Optional[Sequence[Invoice]] = None) -> bool:
        """Writes the whole collection; never raises."""
        if records is None:
            records = self._invoices
        try:
            payload = json.dumps([inv.model_dump(mode="json") for inv in records], ensure_ascii=False)
            self._storage.set_item(self._key, payload)
        except (StorageError, TypeError, ValueError) as e:
            logger.error(f"Error saving invoices to storage: {e}")
            self.last_persist_ok = False
            return False
        self.last_persist_ok = True
        return True

    def list(self) -> List[Invoice]:
        return list(self._invoices)

    def get(self, invoice_id: str) -> Optional[Invoice]:
        return next((inv for inv in self._invoices if inv.id == invoice_id), None)

    def search(self, text: Optional[str] = None) -> List[Invoice]:
        """Case-insensitive substring match over number and client."""
        needle = (text or "").strip().lower()
        if not needle:
            return self.list()
        return [
            inv for inv in self._invoices
            if needle in inv.number.lower() or needle in inv.client.lower()
        ]

    def _fresh_id(self, taken) -> str:
        invoice_id = new_invoice_id()
        while invoice_id in taken:
            invoice_id = new_invoice_id()
        return invoice_id

    def create(self, fields: Dict[str, Any]) -> Invoice:
        with self._lock:
            data = dict(fields)
            data["id"] = self._fresh_id({inv.id for inv in self._invoices})
            if not data.get("date"):
                data["date"] = date.today()
            invoice = Invoice.model_validate(data)
            self._invoices = self._invoices + [invoice]
            self.persist()
        logger.info(f"Invoice created: {invoice.id} ({invoice.number})")
        return invoice

    def update(self, invoice_id: str, fields: Dict[str, Any]) -> Optional[Invoice]:
        """Replaces the matching record wholesale. Returns None when the id is unknown."""
        with self._lock:
            index = next((i for i, inv in enumerate(self._invoices) if inv.id == invoice_id), None)
            if index is None:
                logger.info(f"Update skipped, invoice not found: {invoice_id}")
                return None

            data = dict(fields)
            data["id"] = invoice_id
            if not data.get("date"):
                data["date"] = self._invoices[index].date
            invoice = Invoice.model_validate(data)
            updated = list(self._invoices)
            updated[index] = invoice
            self._invoices = updated
            self.persist()
        logger.info(f"Invoice updated: {invoice_id}")
        return invoice

    def remove(self, invoice_id: str) -> bool:
        """Deletes by id. An unknown id changes nothing and writes nothing."""
        with self._lock:
            remaining = [inv for inv in self._invoices if inv.id != invoice_id]
            if len(remaining) == len(self._invoices):
                logger.info(f"Delete skipped, invoice not found: {invoice_id}")
                return False
            self._invoices = remaining
            self.persist()
        logger.info(f"Invoice deleted: {invoice_id}")
        return True
