import pytest

from core.domain import EpisodeDescriptor
from core.favorites import FavoritesLedger
from core.repository import MemoryStore


def episode(n, title, show="Show"):
    return EpisodeDescriptor(episode_id=f"s-s1-e{n}", audio_url=f"{n}.mp3", title=title, show_title=show)


def test_toggle_adds_and_removes():
    ledger = FavoritesLedger(MemoryStore())

    assert ledger.toggle(episode(1, "One")) is True
    assert ledger.is_favorite("s-s1-e1")
    assert ledger.toggle(episode(1, "One")) is False
    assert not ledger.is_favorite("s-s1-e1")


def test_add_is_deduplicated_and_persisted():
    store = MemoryStore()
    ledger = FavoritesLedger(store)
    ledger.add(episode(1, "One"))
    ledger.add(episode(1, "One"))

    reloaded = FavoritesLedger(store)

    assert len(reloaded.items()) == 1
    assert reloaded.items()[0].descriptor.title == "One"


def test_sort_and_search():
    ledger = FavoritesLedger(MemoryStore())
    ledger.add(episode(1, "Bravo", show="Zeta"))
    ledger.add(episode(2, "alpha", show="Yankee"))

    assert [e.descriptor.title for e in ledger.items(sort_by="title", descending=False)] == ["alpha", "Bravo"]
    assert [e.descriptor.title for e in ledger.items(sort_by="show", descending=False)] == ["alpha", "Bravo"]
    assert [e.descriptor.title for e in ledger.search("zeta")] == ["Bravo"]

    with pytest.raises(ValueError):
        ledger.items(sort_by="rating")


def test_search_keeps_requested_order():
    ledger = FavoritesLedger(MemoryStore())
    ledger.add(episode(1, "Bravo", show="Daily"))
    ledger.add(episode(2, "alpha", show="Daily"))
    ledger.add(episode(3, "Charlie", show="Weekly"))

    assert [e.descriptor.title for e in ledger.search("daily", sort_by="title", descending=False)] == ["alpha", "Bravo"]
    assert [e.descriptor.title for e in ledger.search("daily", sort_by="title")] == ["Bravo", "alpha"]
    assert [e.descriptor.title for e in ledger.search("", sort_by="show", descending=False)][-1] == "Charlie"
