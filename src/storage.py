"""
Storage - Local key-value persistence
JSON-file backed string store for task lists, recordings and secret keys
"""

import os
import json
import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the storage file cannot be read or written"""


class LocalStorage:
    """String key-value store persisted as a single JSON object on disk"""

    def __init__(self, path):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read storage file {self.path}: {e}")
            raise StorageError(f"Could not read storage file {self.path}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self.path} does not contain a JSON object")

        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Write to a sibling temp file then rename so a crash never leaves half a file
        fd, temp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            self._prepare_file(temp_path)
            os.replace(temp_path, self.path)
        except OSError as e:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            logger.error(f"Failed to write storage file {self.path}: {e}")
            raise StorageError(f"Could not write storage file {self.path}") from e

    def _prepare_file(self, file_path: str) -> None:
        """Hook for subclasses that need to adjust the file before it is published"""

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Storage values must be strings, got {type(value).__name__}")

        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def get_all_keys(self) -> List[str]:
        return list(self._read().keys())

    def clear(self) -> None:
        self._write({})

    def get_json(self, key: str, default: Any = None) -> Any:
        """Read a value that was stored with set_json"""
        raw = self.get_item(key)
        if raw is None:
            return default

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Value for {key} is not valid JSON") from e

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value, ensure_ascii=False))


class SecureKeyStorage(LocalStorage):
    """
    Storage for API keys and refresh tokens

    Same format as LocalStorage but the file is only readable by the owner.
    """

    def _prepare_file(self, file_path: str) -> None:
        os.chmod(file_path, 0o600)

    def store_key(self, key: str, value: str) -> None:
        try:
            self.set_item(key, value)
        except (StorageError, TypeError) as e:
            logger.error(f"Failed to store secure key: {key}: {e}")
            raise StorageError("Could not securely store API key") from e

    def get_key(self, key: str) -> Optional[str]:
        try:
            return self.get_item(key)
        except StorageError as e:
            logger.error(f"Failed to retrieve secure key: {key}: {e}")
            return None

    def delete_key(self, key: str) -> None:
        try:
            self.remove_item(key)
        except StorageError as e:
            logger.error(f"Failed to delete secure key: {key}: {e}")
