from core.domain import (
    EpisodeDescriptor,
    PlaybackSessionState,
    PlayerState,
    ProgressRecord,
)
from core.errors import CatalogError, PlaybackError, PodcueError, StoreError
from core.repository import JsonStore, MemoryStore
from core.services import PlaybackService

__all__ = [
    "EpisodeDescriptor",
    "PlaybackSessionState",
    "PlayerState",
    "ProgressRecord",
    "CatalogError",
    "PlaybackError",
    "PodcueError",
    "StoreError",
    "JsonStore",
    "MemoryStore",
    "PlaybackService",
]
