"""Local JSON-file document store."""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List

from my_assistant.constants import COLLECTIONS

logger = logging.getLogger(__name__)


class JsonDocumentStore:
    """Whole-collection JSON documents, one file per collection under *data_dir*."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self._locks: Dict[str, threading.Lock] = {name: threading.Lock() for name in COLLECTIONS}
        self._locks_guard = threading.Lock()

    def initialize(self) -> None:
        """Create the data directory and an empty file for every missing collection."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        for name in COLLECTIONS:
            path = self._path(name)
            if not path.exists():
                self.save(name, [])

    def _path(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    def _lock(self, name: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(name, threading.Lock())

    def load(self, name: str) -> List[Dict]:
        path = self._path(name)
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            logger.exception("Failed to read collection %s from %s", name, path)
            return []
        if not isinstance(data, list):
            logger.error("Collection %s in %s is not a list; ignoring contents", name, path)
            return []
        return data

    def save(self, name: str, records: List[Dict]) -> None:
        """Write to a temp file and swap it in, so readers never see a partial file."""
        path = self._path(name)
        tmp_path = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent, prefix=f".{name}.", suffix=".tmp", delete=False
            ) as f:
                tmp_path = f.name
                json.dump(records, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to write collection %s to %s", name, path)
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def append(self, name: str, record: Dict) -> None:
        """Load, append and save *record* as one critical section."""
        with self._lock(name):
            records = self.load(name)
            records.append(record)
            self.save(name, records)
