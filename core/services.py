import logging
import time
from typing import Callable, List, Optional

from core.domain import (
    DEFAULT_SKIP_SECONDS,
    DEFAULT_VOLUME,
    EpisodeDescriptor,
    EventKind,
    PlaybackSessionState,
    PlayerState,
    ProgressRecord,
    TransportEvent,
)
from core.errors import PlaybackError, StoreError
from core.favorites import FavoritesLedger
from core.interfaces import IAudioBackend, IStore
from core.progress import ProgressLedger
from core.recent import RecentlyPlayedLedger
from core.repository import CURRENT_EPISODE_KEY, VOLUME_KEY
from core.transport import TransportEngine

logger = logging.getLogger(__name__)

StateListener = Callable[[PlaybackSessionState], None]


class PlaybackService:
    """
    Public playback API for the UI: one current episode, one transport.

    Owns the session state and the transport engine, keeps the progress and
    recently played ledgers up to date, and restores volume and the last
    episode from the store on start-up.
    """

    def __init__(self, store: IStore, backend: IAudioBackend,
                 clock: Callable[[], float] = time.monotonic):
        self.store = store
        self.progress = ProgressLedger(store)
        self.recent = RecentlyPlayedLedger(store)
        self.favorites = FavoritesLedger(store)
        self._engine = TransportEngine(backend, self.progress, clock=clock)
        self._engine.subscribe(self._on_transport_event)

        self.state = PlaybackSessionState()
        self._pending_resume: Optional[float] = None
        self._pending_seek: Optional[float] = None
        self._listeners: List[StateListener] = []
        self.restore()

    # --- state & persistence ---

    def restore(self) -> None:
        """Reloads volume and the last current episode; bad stored values fall back to defaults."""
        volume = self.store.get_json(VOLUME_KEY, DEFAULT_VOLUME)
        try:
            volume = int(volume)
        except (ValueError, TypeError):
            volume = DEFAULT_VOLUME
        self.state.volume = self._engine.set_volume(volume)

        raw_episode = self.store.get_json(CURRENT_EPISODE_KEY)
        if raw_episode is not None:
            try:
                episode = EpisodeDescriptor.from_dict(raw_episode)
            except ValueError as e:
                logger.warning("Ignoring stored current episode: %s", e)
            else:
                self.state.current_episode = episode
                self.state.state = PlayerState.PAUSED
                record = self.progress.get_progress(episode.episode_id)
                if record is not None:
                    self.state.current_time = record.current_time
                    self.state.duration = record.duration
                logger.info("Restored current episode: %s", episode.title)

    def _store_json(self, key: str, value) -> None:
        try:
            self.store.set_json(key, value)
        except StoreError as e:
            logger.warning("Could not save %s: %s", key, e)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Registers a listener for state snapshots; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.state.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    def snapshot(self) -> PlaybackSessionState:
        return self.state.snapshot()

    def pump(self) -> int:
        """Drives the transport: call from the UI loop."""
        return self._engine.pump()

    def close(self) -> None:
        """Saves the position of a playing episode and shuts the backend down."""
        if self.state.is_playing:
            self._engine.pause()
            self._engine.save_progress()
            self.state.is_playing = False
            self.state.state = PlayerState.PAUSED
        self._engine.close()
        logger.info("Playback closed")

    # --- playback ---

    def play_episode(self, descriptor: EpisodeDescriptor) -> None:
        """
        Plays an episode, resuming from its saved position.

        Playing the episode that is already current toggles play/pause instead
        of reloading it.

        Raises:
            PlaybackError: if the backend rejects playback.
        """
        current = self.state.current_episode
        if current is not None and current.episode_id == descriptor.episode_id:
            self.toggle_play_pause()
            return
        self._start_episode(descriptor)

    def _start_episode(self, descriptor: EpisodeDescriptor) -> None:
        logger.info("Playing episode: %s", descriptor.title or descriptor.episode_id)
        self._engine.cancel_restart()

        if self.state.current_episode is not None:
            self._engine.pause()
            if self.state.is_playing and self._engine.episode_id is not None:
                self._engine.save_progress()

        self.state.current_episode = descriptor
        self.recent.push(descriptor)
        self._store_json(CURRENT_EPISODE_KEY, descriptor.to_dict())

        record = self.progress.get_progress(descriptor.episode_id)
        resume = record.current_time if record is not None and not record.completed else 0.0
        self._pending_resume = resume if resume > 0 else None
        self._pending_seek = None

        self.state.state = PlayerState.LOADING
        self.state.is_playing = False
        self.state.current_time = resume
        self.state.duration = record.duration if record is not None else 0.0
        self.state.last_error = None

        if not self._engine.load(descriptor.audio_url, descriptor.episode_id):
            self.state.state = PlayerState.PAUSED
            self.state.last_error = f"Could not load {descriptor.audio_url}"
            self._notify()
            return

        self._start_transport(descriptor)

    def _start_transport(self, descriptor: EpisodeDescriptor) -> None:
        if self._engine.play():
            self.state.is_playing = True
            if self.state.state is not PlayerState.LOADING:
                self.state.state = PlayerState.PLAYING
            self.state.last_error = None
            self._notify()
            return

        self.state.is_playing = False
        self.state.state = PlayerState.PAUSED
        self.state.last_error = "Playback was blocked or failed"
        self._notify()
        raise PlaybackError(descriptor.episode_id, self.state.last_error)

    def toggle_play_pause(self) -> None:
        """
        Pauses the current episode (saving its progress at once) or resumes it.

        Raises:
            PlaybackError: if resuming is rejected by the backend.
        """
        episode = self.state.current_episode
        if episode is None:
            return

        if self.state.is_playing:
            self._engine.pause()
            self.state.is_playing = False
            self.state.state = PlayerState.PAUSED
            self._engine.save_progress()
            self.state.current_time = self._engine.current_time
            logger.info("Playback paused")
            self._notify()
            return

        if self._engine.episode_id != episode.episode_id or self.state.last_error is not None \
                or self.state.state is PlayerState.COMPLETED:
            # Restored, failed or finished: load it afresh.
            self._start_episode(episode)
            return

        self._start_transport(episode)
        logger.info("Playback resumed")

    def seek_to(self, seconds: float) -> None:
        """Moves to `seconds` and saves it; before the duration is known it wins over the resume point."""
        if self.state.current_episode is None or self._engine.episode_id is None:
            return
        self._pending_resume = None
        if self._engine.duration <= 0:
            # Nothing can be saved yet; repeat the seek once metadata arrives.
            self._pending_seek = max(float(seconds), 0.0)
        self.state.current_time = self._engine.seek(seconds)
        self._notify()

    def skip_forward(self, seconds: float = DEFAULT_SKIP_SECONDS) -> None:
        self.seek_to(self._skip_target(self.state.current_time + seconds))

    def skip_backward(self, seconds: float = DEFAULT_SKIP_SECONDS) -> None:
        self.seek_to(self._skip_target(self.state.current_time - seconds))

    def _skip_target(self, seconds: float) -> float:
        seconds = max(seconds, 0.0)
        if self.state.duration > 0:
            seconds = min(seconds, self.state.duration)
        return seconds

    def stop_playback(self) -> None:
        """Pauses and rewinds to 0 without saving, so the resume point survives."""
        self._engine.cancel_restart()
        self._engine.stop()
        self.state.is_playing = False
        self.state.current_time = 0.0
        if self.state.current_episode is not None:
            self.state.state = PlayerState.PAUSED
        self._notify()

    def set_volume(self, volume: int) -> int:
        self.state.volume = self._engine.set_volume(volume)
        self._store_json(VOLUME_KEY, self.state.volume)
        self._notify()
        return self.state.volume

    def toggle_repeat(self) -> bool:
        self.state.is_repeat_active = not self.state.is_repeat_active
        if not self.state.is_repeat_active:
            self._engine.cancel_restart()
        self._notify()
        return self.state.is_repeat_active

    def toggle_shuffle(self) -> bool:
        self.state.is_shuffle_active = not self.state.is_shuffle_active
        self._notify()
        return self.state.is_shuffle_active

    # --- ledgers ---

    def get_progress(self, episode_id: str) -> Optional[ProgressRecord]:
        return self.progress.get_progress(episode_id)

    def progress_fraction(self, episode_id: str) -> float:
        record = self.progress.get_progress(episode_id)
        return record.fraction if record is not None else 0.0

    def recently_played(self) -> List[EpisodeDescriptor]:
        return self.recent.items()

    def clear_recently_played(self) -> None:
        logger.info("Clearing recently played list")
        self.recent.clear()
        self._notify()

    def reset_history(self) -> None:
        logger.info("Resetting playback history")
        self.progress.reset()
        self.recent.clear()
        self._notify()

    # --- transport events ---

    def _on_transport_event(self, event: TransportEvent) -> None:
        if event.kind is EventKind.METADATA_READY:
            self.state.duration = self._engine.duration
            resume, seek = self._pending_resume, self._pending_seek
            self._pending_resume = self._pending_seek = None
            if seek is not None:
                self._engine.seek(seek)
            elif resume is not None and 0 < resume < self._engine.duration:
                self._engine.seek(resume)
                logger.info("Resumed from saved position: %.1fs", resume)
            self.state.current_time = self._engine.current_time
            if self.state.state is PlayerState.LOADING:
                self.state.state = PlayerState.PLAYING if self.state.is_playing else PlayerState.PAUSED

        elif event.kind is EventKind.TIME_ADVANCED:
            self.state.current_time = self._engine.current_time

        elif event.kind is EventKind.ENDED:
            self.state.is_playing = False
            self.state.current_time = self._engine.current_time
            self.state.state = PlayerState.COMPLETED
            episode = self.state.current_episode
            if episode is not None:
                logger.info("Episode completed: %s", episode.title or episode.episode_id)
                if self.state.is_repeat_active:
                    self._engine.schedule_restart(lambda: self._repeat(episode))

        elif event.kind is EventKind.ERROR:
            self.state.is_playing = False
            self.state.state = PlayerState.PAUSED
            self.state.last_error = str(event.value or "Audio error")

        self._notify()

    def _repeat(self, episode: EpisodeDescriptor) -> None:
        current = self.state.current_episode
        if current is None or current.episode_id != episode.episode_id:
            return
        try:
            self._start_episode(episode)
        except PlaybackError as e:
            logger.error("Repeat restart failed: %s", e)
