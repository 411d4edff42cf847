import json
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from core.domain import TransportEvent

logger = logging.getLogger(__name__)


class IAudioBackend(ABC):
    """Abstract Base Class for the single media decoder/player a transport drives."""

    @abstractmethod
    def load(self, url: str, generation: int) -> bool:
        """
        Binds a new audio source, replacing whatever was loaded before.

        Args:
            url (str): The audio resource to open.
            generation (int): Tag the backend must stamp on every event it raises
                              for this source.

        Returns:
            bool: False if the backend refused the source outright.
        """
        pass

    @abstractmethod
    def play(self) -> bool:
        """
        Requests playback start.

        Returns:
            bool: True if playback started, False if it was rejected.
        """
        pass

    @abstractmethod
    def pause(self) -> None:
        pass

    @abstractmethod
    def seek(self, seconds: float) -> None:
        pass

    @abstractmethod
    def set_volume(self, level: float) -> None:
        """Sets the output volume in the backend's native 0.0-1.0 range."""
        pass

    @abstractmethod
    def poll(self) -> List[TransportEvent]:
        """Returns the events raised since the previous poll, oldest first."""
        pass

    def close(self) -> None:
        pass


class IStore(ABC):
    """Abstract Base Class for a string-keyed durable store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Stores a value under the given key.

        Raises:
            StoreError: if the value could not be written durably.
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass

    def get_json(self, key: str, default: Any = None) -> Any:
        """Decodes the JSON blob stored under `key`; malformed blobs count as absent."""
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (ValueError, TypeError) as e:
            logger.warning("Ignoring malformed value stored under %r: %s", key, e)
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value))
