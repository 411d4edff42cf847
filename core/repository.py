import json
import logging
from pathlib import Path
from typing import Dict, Optional

from core.errors import StoreError
from core.interfaces import IStore

logger = logging.getLogger(__name__)

VOLUME_KEY = "volume"
PROGRESS_KEY = "progress-map"
CURRENT_EPISODE_KEY = "current-episode"
RECENTLY_PLAYED_KEY = "recently-played-list"
FAVORITES_KEY = "favorites-list"


class JsonStore(IStore):
    """
    Concrete implementation of IStore that keeps every key in a single
    local JSON file and rewrites it on each change.
    """
    def __init__(self, storage_file: Path):
        self.storage_file = Path(storage_file)
        self.values: Dict[str, str] = self._load_from_file()

    def _load_from_file(self) -> Dict[str, str]:
        """Loads stored values from the JSON file; an unreadable file counts as empty."""
        if not self.storage_file.exists():
            return {}

        try:
            with open(self.storage_file, 'r', encoding='utf-8') as f:
                raw_data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read store %s, starting empty: %s", self.storage_file, e)
            return {}

        if not isinstance(raw_data, dict):
            logger.warning("Store %s does not hold an object, starting empty", self.storage_file)
            return {}

        return {key: value for key, value in raw_data.items() if isinstance(value, str)}

    def _save_to_file(self) -> None:
        try:
            self.storage_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.storage_file, 'w', encoding='utf-8') as f:
                json.dump(self.values, f, indent=4)
        except OSError as e:
            raise StoreError(f"Could not write {self.storage_file}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value
        self._save_to_file()

    def remove(self, key: str) -> None:
        if key in self.values:
            del self.values[key]
            self._save_to_file()


class MemoryStore(IStore):
    """Dict-backed store for ephemeral sessions and tests."""

    def __init__(self, values: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(values or {})

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def remove(self, key: str) -> None:
        self.values.pop(key, None)
