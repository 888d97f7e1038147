"""
HueQuery JSON Document Store
Single-file JSON database holding liked colors and the candidate cache
shadow. Degrades to an in-memory document when the file cannot be used.
"""
import copy
import json
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Union

from loguru import logger

DEFAULT_DATA: Dict[str, Any] = {'likes': [], 'candidateCache': {}}


class JsonDatabase:
    """Whole-document JSON store with atomic rewrites."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.writable = True
        self._lock = threading.RLock()
        self.data = self._load()

    def _load(self) -> Dict[str, Any]:
        data = copy.deepcopy(DEFAULT_DATA)
        try:
            if self.path.exists():
                loaded = json.loads(self.path.read_text(encoding='utf-8') or '{}')
                if isinstance(loaded, dict):
                    data.update(loaded)
            else:
                self._write_document(data)
        except (OSError, ValueError) as e:
            logger.warning(f"Database initialization failed ({e}); likes and cache will not persist.")
            self.writable = False

        if not isinstance(data.get('likes'), list):
            data['likes'] = []
        if not isinstance(data.get('candidateCache'), dict):
            data['candidateCache'] = {}
        return data

    def _write_document(self, data: Dict[str, Any]) -> None:
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + '.tmp')
        tmp_path.write_text(json.dumps(data, indent=2), encoding='utf-8')
        os.replace(tmp_path, self.path)

    def read(self, reader: Callable[[Dict[str, Any]], Any]) -> Any:
        """Run reader against the document under the lock."""
        with self._lock:
            return reader(self.data)

    def update(self, mutator: Callable[[Dict[str, Any]], Any]) -> bool:
        """
        Apply mutator to the document and write it back.

        Returns:
            True if the document reached disk, False if it only changed in memory
        """
        with self._lock:
            mutator(self.data)
            if not self.writable:
                return False
            try:
                self._write_document(self.data)
                return True
            except (OSError, TypeError, ValueError) as e:
                logger.warning(f"Failed to write database {self.path}: {e}")
                return False
