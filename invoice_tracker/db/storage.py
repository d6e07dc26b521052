from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional
import json
import logging
import os

logger = logging.getLogger(__name__)

# Browsers cap local storage at roughly 5 MB per origin
DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


class StorageError(Exception):
    """Raised when the key-value backend cannot be read or written."""


class StorageQuotaExceeded(StorageError):
    pass


class KeyValueStorage(ABC):
    """String key to string value, last write wins."""

    def __init__(self, quota_bytes: Optional[int] = DEFAULT_QUOTA_BYTES):
        self.quota_bytes = quota_bytes

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str):
        pass

    @abstractmethod
    def remove_item(self, key: str):
        pass

    def _check_quota(self, items: Dict[str, str]):
        if self.quota_bytes is None:
            return
        used = sum(len(k.encode("utf-8")) + len(v.encode("utf-8")) for k, v in items.items())
        if used > self.quota_bytes:
            raise StorageQuotaExceeded(f"Storage quota exceeded: {used} > {self.quota_bytes} bytes")


class InMemoryStorage(KeyValueStorage):
    def __init__(self, quota_bytes: Optional[int] = DEFAULT_QUOTA_BYTES):
        super().__init__(quota_bytes)
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str):
        candidate = dict(self._items)
        candidate[key] = value
        self._check_quota(candidate)
        self._items = candidate

    def remove_item(self, key: str):
        self._items.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """
    Keeps every key in one JSON object on disk. Writes go through a temp
    file and os.replace so a crash never leaves a half-written file.
    """

    def __init__(self, path: Path, quota_bytes: Optional[int] = DEFAULT_QUOTA_BYTES):
        super().__init__(quota_bytes)
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read storage file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self.path} does not hold a JSON object")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get_item(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str):
        items = self._read_for_write()
        items[key] = value
        self._check_quota(items)
        self._write_all(items)

    def remove_item(self, key: str):
        items = self._read_for_write()
        if key in items:
            del items[key]
            self._write_all(items)

    def _read_for_write(self) -> Dict[str, str]:
        """
        A file that cannot be parsed is moved to <name>.corrupt and the write
        starts from an empty object, otherwise one bad file would block every
        later save.
        """
        try:
            return self._read_all()
        except StorageError as e:
            corrupt_path = self.path.with_name(self.path.name + ".corrupt")
            try:
                os.replace(self.path, corrupt_path)
            except OSError as move_error:
                raise StorageError(f"Cannot move unreadable storage file {self.path}: {move_error}") from e
            logger.warning(f"{e}; moved aside to {corrupt_path}")
            return {}

    def _write_all(self, items: Dict[str, str]):
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(items, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Cannot write storage file {self.path}: {e}") from e
        logger.debug(f"Storage file written: {self.path} ({len(items)} keys)")
