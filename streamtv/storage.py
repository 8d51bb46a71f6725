import json
import logging
import os
import fcntl
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class StorageWriteError(StorageError):
    """Raised when a value could not be persisted (disk full, lock held, ...)."""


class KeyValueStorage:
    """
    String key -> string value store, the shape of a browser's localStorage.
    Adapters override get/set/remove.
    """

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """
    All keys live in a single JSON object on disk. Every write rewrites the
    whole file atomically (tmp file + fsync + rename).
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self.lock_path = self.path.with_suffix(self.path.suffix + '.lock')

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read storage file {self.path}: {e}. Treating as empty.")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Storage file {self.path} does not hold an object. Treating as empty.")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        tmp_path = self.path.with_suffix('.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # The tmp file is only touched while holding the lock file
            with open(self.lock_path, 'a') as lock:
                try:
                    fcntl.flock(lock, fcntl.LOCK_EX | fcntl.LOCK_NB)
                except BlockingIOError:
                    logger.warning(f"Could not acquire lock for {self.path}. Write skipped.")
                    raise StorageWriteError(f"Storage file {self.path} is locked by another writer")

                try:
                    with open(tmp_path, 'w', encoding='utf-8') as f:
                        json.dump(data, f, indent=2)
                        f.flush()
                        os.fsync(f.fileno())
                    os.rename(tmp_path, self.path)
                finally:
                    fcntl.flock(lock, fcntl.LOCK_UN)

        except OSError as e:
            logger.error(f"Failed to write storage file {self.path}: {e}")
            raise StorageWriteError(str(e)) from e

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key not in data:
            return
        del data[key]
        self._write(data)
