import logging
from typing import List

from core.domain import RECENTLY_PLAYED_LIMIT, EpisodeDescriptor
from core.errors import StoreError
from core.interfaces import IStore
from core.repository import RECENTLY_PLAYED_KEY

logger = logging.getLogger(__name__)


class RecentlyPlayedLedger:
    """Most-recent-first list of played episodes, unique by episode id and capped."""

    def __init__(self, store: IStore, limit: int = RECENTLY_PLAYED_LIMIT):
        self.store = store
        self.limit = limit
        self.entries: List[EpisodeDescriptor] = self._load()

    def _load(self) -> List[EpisodeDescriptor]:
        raw = self.store.get_json(RECENTLY_PLAYED_KEY, [])
        if not isinstance(raw, list):
            logger.warning("Stored recently played list is not a list, ignoring it")
            return []

        entries = []
        seen = set()
        for item in raw:
            try:
                descriptor = EpisodeDescriptor.from_dict(item)
            except ValueError as e:
                logger.debug("Skipping unreadable recently played entry: %s", e)
                continue
            if descriptor.episode_id in seen:
                continue
            seen.add(descriptor.episode_id)
            entries.append(descriptor)
        logger.info("Loaded recently played list: %d episodes", len(entries))
        return entries[:self.limit]

    def _persist(self) -> None:
        try:
            self.store.set_json(RECENTLY_PLAYED_KEY, [entry.to_dict() for entry in self.entries])
        except StoreError as e:
            logger.warning("Could not save recently played list: %s", e)

    def push(self, descriptor: EpisodeDescriptor) -> None:
        """Moves (or adds) the episode to the front, dropping the oldest beyond the limit."""
        others = [entry for entry in self.entries if entry.episode_id != descriptor.episode_id]
        self.entries = [descriptor] + others[:self.limit - 1]
        self._persist()

    def items(self) -> List[EpisodeDescriptor]:
        return list(self.entries)

    def clear(self) -> None:
        self.entries = []
        try:
            self.store.remove(RECENTLY_PLAYED_KEY)
        except StoreError as e:
            logger.warning("Could not clear stored recently played list: %s", e)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, episode_id: object) -> bool:
        return any(entry.episode_id == episode_id for entry in self.entries)
