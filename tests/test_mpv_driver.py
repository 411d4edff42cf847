import subprocess

from core.domain import EventKind
from core.drivers.mpv_driver import MpvBackend
from core.repository import VOLUME_KEY, MemoryStore
from core.services import PlaybackService


class RunningProcess:
    def __init__(self, command=None):
        self.command = command
        self.terminated = False

    def poll(self):
        return None

    def terminate(self):
        self.terminated = True


class FakeSocket:
    def close(self):
        pass


def make_backend(monkeypatch, properties):
    backend = MpvBackend(socket_path="/tmp/podcue-test-unused")
    backend.process = RunningProcess()
    backend.url = "https://example.com/a.mp3"
    backend.generation = 4
    monkeypatch.setattr(backend, "_get_property", lambda name: properties.get(name))
    return backend


def test_poll_reports_metadata_then_time(monkeypatch):
    properties = {"path": "https://example.com/a.mp3", "duration": 120.0, "time-pos": 3.5, "eof-reached": False}
    backend = make_backend(monkeypatch, properties)

    events = backend.poll()

    assert [(e.kind, e.value) for e in events] == [
        (EventKind.METADATA_READY, 120.0),
        (EventKind.TIME_ADVANCED, 3.5),
    ]
    assert all(e.generation == 4 for e in events)

    properties["time-pos"] = 120.0
    properties["eof-reached"] = True
    assert [e.kind for e in backend.poll()] == [EventKind.TIME_ADVANCED, EventKind.ENDED]
    assert backend.poll() == []


def test_poll_waits_for_duration(monkeypatch):
    backend = make_backend(monkeypatch, {"path": "https://example.com/a.mp3", "duration": None})

    assert backend.poll() == []


def test_poll_reports_error_when_file_never_opens(monkeypatch):
    backend = make_backend(monkeypatch, {"path": None, "idle-active": True})
    backend._load_started = -100.0

    events = backend.poll()

    assert [e.kind for e in events] == [EventKind.ERROR]
    assert backend.poll() == []


def test_poll_reports_error_when_process_exited(monkeypatch):
    backend = make_backend(monkeypatch, {})
    backend.process = None

    assert [e.kind for e in backend.poll()] == [EventKind.ERROR]


def make_launchable(monkeypatch):
    launched = []
    sent = []

    def popen(command):
        launched.append(command)
        return RunningProcess(command)

    monkeypatch.setattr(subprocess, "Popen", popen)
    backend = MpvBackend(socket_path="/tmp/podcue-test-unused")
    monkeypatch.setattr(backend, "_connect_ipc", lambda path, timeout: FakeSocket())
    monkeypatch.setattr(backend, "_send_ipc_command", lambda command: sent.append(command) or {"error": "success"})
    return backend, launched, sent


def test_stored_volume_reaches_freshly_launched_mpv(monkeypatch):
    backend, launched, sent = make_launchable(monkeypatch)
    store = MemoryStore()
    store.set_json(VOLUME_KEY, 30)

    PlaybackService(store, backend)
    assert backend.load("https://example.com/a.mp3", 1) is True

    assert "--volume=30" in launched[0]
    assert ["loadfile", "https://example.com/a.mp3", "replace"] in sent


def test_volume_survives_mpv_relaunch(monkeypatch):
    backend, launched, sent = make_launchable(monkeypatch)
    backend.load("https://example.com/a.mp3", 1)
    backend.set_volume(0.45)
    assert ["set_property", "volume", 45] in sent

    backend.process = None
    assert backend.play() is True

    assert len(launched) == 2
    assert "--volume=45" in launched[1]
