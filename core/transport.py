import logging
import time
from typing import Callable, List, Optional

from core.domain import REPEAT_RESTART_DELAY, EventKind, ProgressRecord, TransportEvent
from core.interfaces import IAudioBackend
from core.progress import ProgressLedger

logger = logging.getLogger(__name__)

SAVE_INTERVAL = 1.0  # seconds of media time between throttled progress saves

EventListener = Callable[[TransportEvent], None]


class ScheduledRestart:
    """A cancellable action that becomes due after a fixed delay on the engine clock."""

    def __init__(self, due_at: float, action: Callable[[], None]):
        self.due_at = due_at
        self.action = action
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def is_due(self, now: float) -> bool:
        return not self.cancelled and now >= self.due_at


class TransportEngine:
    """
    Wraps the single audio backend and keeps the progress ledger in step with it.

    Events are pulled from the backend by `pump()` and handled on the caller's
    thread. Each `load()` starts a new generation; events stamped with an
    older generation belong to a superseded source and are dropped.
    """

    def __init__(self, backend: IAudioBackend, ledger: ProgressLedger,
                 clock: Callable[[], float] = time.monotonic,
                 restart_delay: float = REPEAT_RESTART_DELAY):
        self.backend = backend
        self.ledger = ledger
        self.clock = clock
        self.restart_delay = restart_delay

        self.generation = 0
        self.episode_id: Optional[str] = None
        self.current_time = 0.0
        self.duration = 0.0
        self._last_saved_time: Optional[float] = None
        self._pending_restart: Optional[ScheduledRestart] = None
        self._listeners: List[EventListener] = []

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    # --- transport primitives ---

    def load(self, audio_url: str, episode_id: str) -> bool:
        """Binds a new source. Returns False (and stays paused) if the backend rejects it."""
        self.generation += 1
        self.episode_id = episode_id
        self.current_time = 0.0
        self.duration = 0.0
        self._last_saved_time = None

        try:
            accepted = self.backend.load(audio_url, self.generation)
        except Exception as e:
            logger.error("Backend failed to load %s: %s", audio_url, e)
            self.episode_id = None
            return False

        if not accepted:
            logger.error("Backend could not load %s", audio_url)
            self.episode_id = None
            return False
        logger.debug("Loaded %s (generation %d)", audio_url, self.generation)
        return True

    def play(self) -> bool:
        try:
            started = bool(self.backend.play())
        except Exception as e:
            logger.error("Backend failed to start playback: %s", e)
            return False

        if not started:
            logger.error("Playback of %s was rejected", self.episode_id)
        return started

    def pause(self) -> None:
        try:
            self.backend.pause()
        except Exception as e:
            logger.error("Backend failed to pause: %s", e)

    def seek(self, seconds: float) -> float:
        """Moves the playback pointer and saves progress at once. Returns the clamped time."""
        seconds = self.clamp(seconds)
        try:
            self.backend.seek(seconds)
        except Exception as e:
            logger.error("Backend failed to seek to %.1fs: %s", seconds, e)
        self.current_time = seconds
        self.save_progress()
        return seconds

    def stop(self) -> None:
        """Pauses and rewinds the live position without touching the saved progress."""
        self.pause()
        try:
            self.backend.seek(0.0)
        except Exception as e:
            logger.error("Backend failed to rewind: %s", e)
        self.current_time = 0.0

    def set_volume(self, volume: int) -> int:
        """Applies a 0-100 volume to the backend and returns the clamped value."""
        volume = max(0, min(100, int(volume)))
        try:
            self.backend.set_volume(volume / 100)
        except Exception as e:
            logger.error("Backend failed to set volume: %s", e)
        return volume

    def clamp(self, seconds: float) -> float:
        seconds = max(float(seconds), 0.0)
        if self.duration > 0:
            seconds = min(seconds, self.duration)
        return seconds

    def close(self) -> None:
        self.cancel_restart()
        try:
            self.backend.close()
        except Exception as e:
            logger.error("Backend failed to close: %s", e)

    # --- progress ---

    def save_progress(self, completed: bool = False) -> Optional[ProgressRecord]:
        # Without a known duration the position means nothing; keep the saved record.
        if self.episode_id is None or (self.duration <= 0 and not completed):
            return None
        self._last_saved_time = self.current_time
        return self.ledger.save_progress(self.episode_id, self.current_time, self.duration, completed)

    def _maybe_save_progress(self) -> None:
        if self._last_saved_time is None or abs(self.current_time - self._last_saved_time) >= SAVE_INTERVAL:
            self.save_progress()

    # --- repeat ---

    def schedule_restart(self, action: Callable[[], None]) -> ScheduledRestart:
        self.cancel_restart()
        self._pending_restart = ScheduledRestart(self.clock() + self.restart_delay, action)
        return self._pending_restart

    def cancel_restart(self) -> None:
        if self._pending_restart is not None:
            self._pending_restart.cancel()
            self._pending_restart = None

    @property
    def restart_pending(self) -> bool:
        return self._pending_restart is not None and not self._pending_restart.cancelled

    # --- events ---

    def pump(self) -> int:
        """Handles pending backend events and any due restart. Returns the number of events handled."""
        try:
            events = self.backend.poll()
        except Exception as e:
            logger.error("Backend poll failed: %s", e)
            events = []

        handled = 0
        for event in events:
            if self.handle_event(event):
                handled += 1

        restart = self._pending_restart
        if restart is not None and restart.is_due(self.clock()):
            self._pending_restart = None
            restart.action()
        return handled

    def handle_event(self, event: TransportEvent) -> bool:
        if event.generation != self.generation:
            logger.debug("Dropping stale %s event from generation %d", event.kind.value, event.generation)
            return False

        if event.kind is EventKind.METADATA_READY:
            self.duration = max(float(event.value or 0.0), 0.0)
        elif event.kind is EventKind.TIME_ADVANCED:
            self.current_time = self.clamp(event.value or 0.0)
            self._maybe_save_progress()
        elif event.kind is EventKind.ENDED:
            self.current_time = self.duration
            self.save_progress(completed=True)
        elif event.kind is EventKind.ERROR:
            logger.error("Audio error for %s: %s", self.episode_id, event.value)

        for listener in list(self._listeners):
            listener(event)
        return True
