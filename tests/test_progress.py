import json

from core.errors import StoreError
from core.progress import ProgressLedger, is_completed
from core.repository import PROGRESS_KEY, MemoryStore


class FailingStore(MemoryStore):
    def set(self, key, value):
        raise StoreError("disk full")

    def remove(self, key):
        raise StoreError("disk full")


def test_save_then_get_returns_clamped_record():
    ledger = ProgressLedger(MemoryStore())

    ledger.save_progress("p1-s1-e1", 150, 300)
    record = ledger.get_progress("p1-s1-e1")

    assert record.current_time == 150
    assert record.duration == 300
    assert record.completed is False


def test_time_is_clamped_into_duration():
    ledger = ProgressLedger(MemoryStore())

    assert ledger.save_progress("a", 500, 300).current_time == 300
    assert ledger.save_progress("a", -5, 300).current_time == 0


def test_completion_threshold_is_ninety_percent():
    ledger = ProgressLedger(MemoryStore())

    assert ledger.save_progress("a", 115, 120).completed is True
    assert ledger.save_progress("b", 100, 120).completed is False
    assert ledger.save_progress("c", 108, 120).completed is True


def test_completed_override_marks_record_completed():
    ledger = ProgressLedger(MemoryStore())

    record = ledger.save_progress("a", 10, 120, completed_override=True)

    assert record.completed is True


def test_unknown_duration_never_completes_on_its_own():
    assert is_completed(0, 0) is False
    assert is_completed(50, 0) is False


def test_saving_twice_is_idempotent():
    ledger = ProgressLedger(MemoryStore())

    first = ledger.save_progress("a", 42, 120)
    second = ledger.save_progress("a", 42, 120)

    assert (first.current_time, first.duration, first.completed) == \
        (second.current_time, second.duration, second.completed)
    assert len(ledger.all()) == 1


def test_missing_record_is_none():
    assert ProgressLedger(MemoryStore()).get_progress("nope") is None


def test_records_are_mirrored_and_reloaded():
    store = MemoryStore()
    ProgressLedger(store).save_progress("a", 30, 60)

    payload = json.loads(store.get(PROGRESS_KEY))
    assert payload["a"]["currentTime"] == 30
    assert "lastListened" in payload["a"]

    reloaded = ProgressLedger(store)
    assert reloaded.get_progress("a").current_time == 30


def test_malformed_history_loads_empty():
    store = MemoryStore({PROGRESS_KEY: "{not json"})

    assert ProgressLedger(store).all() == {}


def test_write_failure_keeps_in_memory_record():
    ledger = ProgressLedger(FailingStore())

    ledger.save_progress("a", 30, 60)

    assert ledger.get_progress("a").current_time == 30


def test_reset_clears_records_and_store():
    store = MemoryStore()
    ledger = ProgressLedger(store)
    ledger.save_progress("a", 59, 60)
    ledger.save_progress("b", 1, 60)

    assert ledger.completed_ids() == ["a"]
    ledger.reset()

    assert ledger.all() == {}
    assert store.get(PROGRESS_KEY) is None
