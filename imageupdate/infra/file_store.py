"""
File store infrastructure for imageupdate.

A JSON document on local disk, used as the image/tag store when the
forge-hosted store is not wanted:
- Atomic writes (write to temp, then rename)
- Pretty formatting for human readability
- Automatic parent directory creation
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


class FileStore:
    """
    JSON file persistence with atomic writes.

    Example:
        store = FileStore(Path("~/.imageupdate/store.json"))
        store.set("images", {"library/python": "3.12"})
        images = store.get("images", {})
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser().resolve()
        self._lock = threading.Lock()

    def _write_atomic(self, data: Dict[str, Any]) -> None:
        """Write data atomically using temp file and rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp"
        )

        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(data, f, indent=2, sort_keys=True, ensure_ascii=False)
                f.write('\n')
            os.replace(temp_path, self.path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def _read_unlocked(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def read(self) -> Dict[str, Any]:
        """Read the whole document ({} when missing)."""
        with self._lock:
            return self._read_unlocked()

    def get(self, key: str, default: Any = None) -> Any:
        return self.read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set one top-level key and write the document back."""
        with self._lock:
            data = self._read_unlocked()
            data[key] = value
            self._write_atomic(data)
