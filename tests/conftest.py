from typing import List

import pytest

from core.domain import EpisodeDescriptor, EventKind, TransportEvent
from core.interfaces import IAudioBackend
from core.repository import MemoryStore
from core.services import PlaybackService


class FakeBackend(IAudioBackend):
    """Records every call and raises only the events a test queues up."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.events: List[TransportEvent] = []
        self.generation = 0
        self.load_result = True
        self.play_result = True
        self.volume = None

    def load(self, url, generation):
        self.calls.append(("load", url))
        self.generation = generation
        return self.load_result

    def play(self):
        self.calls.append(("play",))
        return self.play_result

    def pause(self):
        self.calls.append(("pause",))

    def seek(self, seconds):
        self.calls.append(("seek", seconds))

    def set_volume(self, level):
        self.volume = level

    def poll(self):
        events, self.events = self.events, []
        return events

    def close(self):
        self.calls.append(("close",))

    # helpers

    def emit(self, kind, value=None, generation=None):
        self.events.append(TransportEvent(kind, self.generation if generation is None else generation, value))

    def metadata(self, duration):
        self.emit(EventKind.METADATA_READY, duration)

    def tick(self, seconds):
        self.emit(EventKind.TIME_ADVANCED, seconds)

    def ended(self):
        self.emit(EventKind.ENDED)

    def names(self):
        return [call[0] for call in self.calls]


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_episode(episode_id="p1-s1-e1", audio_url="a.mp3", title="Pilot"):
    return EpisodeDescriptor(
        episode_id=episode_id,
        audio_url=audio_url,
        title=title,
        season=1,
        episode=1,
        show_title="Show",
        show_image="cover.jpg",
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def service(store, backend, clock):
    return PlaybackService(store, backend, clock=clock)


@pytest.fixture
def episode_factory():
    return make_episode
