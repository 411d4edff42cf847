class PodcueError(Exception):
    """Base class for errors raised by the playback core."""


class PlaybackError(PodcueError):
    """Raised when the audio backend refuses to start playback."""

    def __init__(self, episode_id: str, reason: str = "playback rejected"):
        super().__init__(f"Could not play {episode_id}: {reason}")
        self.episode_id = episode_id
        self.reason = reason


class StoreError(PodcueError):
    """Raised when the persistent store cannot write its backing file."""


class CatalogError(PodcueError):
    """Raised when the catalog API cannot be reached or answers with an error."""
