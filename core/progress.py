import logging
from datetime import datetime
from typing import Dict, List, Optional

from core.domain import COMPLETION_THRESHOLD, ProgressRecord
from core.errors import StoreError
from core.interfaces import IStore
from core.repository import PROGRESS_KEY

logger = logging.getLogger(__name__)


def is_completed(current_time: float, duration: float) -> bool:
    """True once `current_time` reaches the completion threshold of a known duration."""
    return duration > 0 and current_time >= COMPLETION_THRESHOLD * duration


class ProgressLedger:
    """
    Authoritative resume/completion record per episode, mirrored to the store.

    The in-memory mapping wins whenever the store cannot be written.
    """

    def __init__(self, store: IStore):
        self.store = store
        self.records: Dict[str, ProgressRecord] = self._load()

    def _load(self) -> Dict[str, ProgressRecord]:
        raw = self.store.get_json(PROGRESS_KEY, {})
        if not isinstance(raw, dict):
            logger.warning("Stored playback history is not a mapping, ignoring it")
            return {}

        records = {}
        for episode_id, data in raw.items():
            if isinstance(data, dict):
                records[episode_id] = ProgressRecord.from_dict(data)
        logger.info("Loaded playback history for %d episodes", len(records))
        return records

    def _persist(self) -> None:
        try:
            self.store.set_json(
                PROGRESS_KEY,
                {episode_id: record.to_dict() for episode_id, record in self.records.items()},
            )
        except StoreError as e:
            logger.warning("Could not save playback history: %s", e)

    def save_progress(self, episode_id: str, time: float, duration: float,
                      completed_override: bool = False) -> ProgressRecord:
        """
        Upserts the progress record for an episode.

        `time` is clamped to [0, duration] and the record counts as completed
        when the override is set or the completion threshold is reached.
        """
        duration = max(float(duration or 0.0), 0.0)
        time = max(float(time or 0.0), 0.0)
        if duration > 0:
            time = min(time, duration)

        record = ProgressRecord(
            current_time=time,
            duration=duration,
            completed=bool(completed_override) or is_completed(time, duration),
            last_listened=datetime.now(),
        )
        self.records[episode_id] = record
        self._persist()
        return record

    def get_progress(self, episode_id: str) -> Optional[ProgressRecord]:
        return self.records.get(episode_id)

    def all(self) -> Dict[str, ProgressRecord]:
        return dict(self.records)

    def completed_ids(self) -> List[str]:
        return [episode_id for episode_id, record in self.records.items() if record.completed]

    def reset(self) -> None:
        self.records = {}
        try:
            self.store.remove(PROGRESS_KEY)
        except StoreError as e:
            logger.warning("Could not clear stored playback history: %s", e)
