import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

COMPLETION_THRESHOLD = 0.90  # fraction of duration; earlier builds used 0.95
RECENTLY_PLAYED_LIMIT = 50
DEFAULT_VOLUME = 70
DEFAULT_SKIP_SECONDS = 15
REPEAT_RESTART_DELAY = 0.5  # seconds between "ended" and the repeat restart

_EPISODE_ID_RE = re.compile(r"^(?P<show>.+?)-s(?P<season>\d+)-e(?P<episode>\d+)$")


def make_episode_id(show_id: str, season: int, episode: int) -> str:
    """Builds the globally unique `<showId>-s<season>-e<episode>` identifier."""
    return f"{show_id}-s{season}-e{episode}"


@dataclass(frozen=True)
class EpisodeDescriptor:
    """Identity and media reference for one playable episode."""
    episode_id: str
    audio_url: str
    title: str = ""
    season: int = 0
    episode: int = 0
    show_title: str = ""
    show_image: str = ""

    @property
    def show_id(self) -> str:
        match = _EPISODE_ID_RE.match(self.episode_id)
        return match.group("show") if match else self.episode_id.split("-")[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "episodeId": self.episode_id,
            "audioUrl": self.audio_url,
            "title": self.title,
            "season": self.season,
            "episode": self.episode,
            "showTitle": self.show_title,
            "showImage": self.show_image,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EpisodeDescriptor":
        """
        Rebuilds a descriptor from its stored JSON form.

        Raises:
            ValueError: if the record has no episodeId or audioUrl.
        """
        if not isinstance(data, dict) or not data.get("episodeId") or not data.get("audioUrl"):
            raise ValueError(f"Not an episode record: {data!r}")
        try:
            season = int(data.get("season") or 0)
            episode = int(data.get("episode") or 0)
        except (ValueError, TypeError):
            season, episode = 0, 0
        return cls(
            episode_id=str(data["episodeId"]),
            audio_url=str(data["audioUrl"]),
            title=data.get("title") or "",
            season=season,
            episode=episode,
            show_title=data.get("showTitle") or "",
            show_image=data.get("showImage") or "",
        )


@dataclass
class ProgressRecord:
    """Resume and completion state for a single episode."""
    current_time: float = 0.0  # seconds
    duration: float = 0.0  # seconds
    completed: bool = False
    last_listened: datetime = field(default_factory=datetime.now)

    @property
    def fraction(self) -> float:
        if self.duration <= 0:
            return 0.0
        return min(self.current_time / self.duration, 1.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentTime": self.current_time,
            "duration": self.duration,
            "completed": self.completed,
            "lastListened": self.last_listened.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressRecord":
        try:
            current_time = float(data.get("currentTime", 0.0))
        except (ValueError, TypeError):
            current_time = 0.0

        try:
            duration = float(data.get("duration", 0.0))
        except (ValueError, TypeError):
            duration = 0.0

        try:
            last_listened = datetime.fromisoformat(data["lastListened"])
        except (KeyError, ValueError, TypeError):
            last_listened = datetime.now()

        return cls(
            current_time=current_time,
            duration=duration,
            completed=bool(data.get("completed", False)),
            last_listened=last_listened,
        )


class PlayerState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass
class PlaybackSessionState:
    """The one live playback session exposed to the UI."""
    current_episode: Optional[EpisodeDescriptor] = None
    is_playing: bool = False
    current_time: float = 0.0
    duration: float = 0.0
    volume: int = DEFAULT_VOLUME
    is_repeat_active: bool = False
    is_shuffle_active: bool = False
    state: PlayerState = PlayerState.IDLE
    last_error: Optional[str] = None

    def snapshot(self) -> "PlaybackSessionState":
        return replace(self)


class EventKind(Enum):
    METADATA_READY = "metadata_ready"
    TIME_ADVANCED = "time_advanced"
    ENDED = "ended"
    ERROR = "error"


@dataclass(frozen=True)
class TransportEvent:
    """
    A notification raised by an audio backend.

    `generation` ties the event to the load that produced it; `value` is the
    duration for METADATA_READY, the position for TIME_ADVANCED and the
    reason string for ERROR.
    """
    kind: EventKind
    generation: int
    value: Any = None


@dataclass
class FavoriteEntry:
    descriptor: EpisodeDescriptor
    added_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        data = self.descriptor.to_dict()
        data["addedAt"] = self.added_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FavoriteEntry":
        descriptor = EpisodeDescriptor.from_dict(data)
        try:
            added_at = datetime.fromisoformat(data["addedAt"])
        except (KeyError, ValueError, TypeError):
            added_at = datetime.now()
        return cls(descriptor=descriptor, added_at=added_at)
