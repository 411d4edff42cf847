import logging
from typing import List

from core.domain import EpisodeDescriptor, FavoriteEntry
from core.errors import StoreError
from core.interfaces import IStore
from core.repository import FAVORITES_KEY

logger = logging.getLogger(__name__)

SORT_KEYS = {
    "added": lambda entry: entry.added_at,
    "title": lambda entry: entry.descriptor.title.lower(),
    "show": lambda entry: entry.descriptor.show_title.lower(),
}


class FavoritesLedger:
    """Episodes the user has starred, keyed by episode id."""

    def __init__(self, store: IStore):
        self.store = store
        self.entries: List[FavoriteEntry] = self._load()

    def _load(self) -> List[FavoriteEntry]:
        raw = self.store.get_json(FAVORITES_KEY, [])
        if not isinstance(raw, list):
            return []

        entries = []
        for item in raw:
            try:
                entry = FavoriteEntry.from_dict(item)
            except ValueError:
                continue
            if not any(e.descriptor.episode_id == entry.descriptor.episode_id for e in entries):
                entries.append(entry)
        return entries

    def _persist(self) -> None:
        try:
            self.store.set_json(FAVORITES_KEY, [entry.to_dict() for entry in self.entries])
        except StoreError as e:
            logger.warning("Could not save favorites: %s", e)

    def is_favorite(self, episode_id: str) -> bool:
        return any(entry.descriptor.episode_id == episode_id for entry in self.entries)

    def add(self, descriptor: EpisodeDescriptor) -> None:
        if self.is_favorite(descriptor.episode_id):
            return
        self.entries.append(FavoriteEntry(descriptor=descriptor))
        self._persist()

    def remove(self, episode_id: str) -> None:
        remaining = [entry for entry in self.entries if entry.descriptor.episode_id != episode_id]
        if len(remaining) != len(self.entries):
            self.entries = remaining
            self._persist()

    def toggle(self, descriptor: EpisodeDescriptor) -> bool:
        """Adds or removes the episode; returns whether it is a favorite afterwards."""
        if self.is_favorite(descriptor.episode_id):
            self.remove(descriptor.episode_id)
            return False
        self.add(descriptor)
        return True

    def items(self, sort_by: str = "added", descending: bool = True) -> List[FavoriteEntry]:
        if sort_by not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {sort_by}")
        return sorted(self.entries, key=SORT_KEYS[sort_by], reverse=descending)

    def search(self, term: str, sort_by: str = "added", descending: bool = True) -> List[FavoriteEntry]:
        """Favorites whose episode or show title contains `term`, in the requested order."""
        entries = self.items(sort_by, descending)
        term = term.strip().lower()
        if not term:
            return entries
        return [
            entry for entry in entries
            if term in entry.descriptor.title.lower() or term in entry.descriptor.show_title.lower()
        ]
