import json
import logging
import os
import socket
import subprocess
import time
from typing import Any, Dict, List, Optional

from core.domain import EventKind, TransportEvent
from core.interfaces import IAudioBackend

logger = logging.getLogger(__name__)

LOAD_GRACE_SECONDS = 3.0  # how long mpv may stay idle after loadfile before the load counts as failed


class MpvBackend(IAudioBackend):
    """
    Audio backend driving one long-lived mpv process over its JSON IPC socket.

    mpv runs idle and paused with --keep-open so that the end of a file is
    reported through `eof-reached` instead of unloading the file.
    """

    def __init__(self, player_executable_path: str = "mpv", socket_path: Optional[str] = None,
                 connect_timeout: float = 5.0):
        self.player_executable_path = player_executable_path
        self.socket_path = socket_path or f"/tmp/podcue-mpv-{os.getpid()}"
        self.connect_timeout = connect_timeout
        self.request_id_counter = 0
        self.volume = 100  # mpv scale; survives relaunches

        self.process: Optional[subprocess.Popen] = None
        self.ipc: Optional[socket.socket] = None

        self.url: Optional[str] = None
        self.generation = 0
        self._load_started = 0.0
        self._metadata_sent = False
        self._ended_sent = False
        self._error_sent = False
        self._last_position: Optional[float] = None

    # --- process management ---

    def _ensure_running(self) -> bool:
        if self.process is not None and self.process.poll() is None and self.ipc is not None:
            return True

        self.close()
        if os.path.exists(self.socket_path):
            os.remove(self.socket_path)

        command = self._launch_command()
        logger.info("Launching mpv: %s", " ".join(command))
        try:
            self.process = subprocess.Popen(command)
        except OSError as e:
            logger.error("Could not launch %s: %s", self.player_executable_path, e)
            self.process = None
            return False

        self.ipc = self._connect_ipc(self.socket_path, timeout=self.connect_timeout)
        if self.ipc is None:
            self.close()
            return False
        return True

    def _launch_command(self) -> List[str]:
        return [
            self.player_executable_path,
            "--no-terminal",
            "--no-video",
            "--idle=yes",
            "--keep-open=yes",
            "--pause",
            f"--volume={self.volume}",
            f"--input-ipc-server={self.socket_path}",
        ]

    def _connect_ipc(self, path: str, timeout: float = 5.0) -> Optional[socket.socket]:
        """Connects to the mpv IPC socket with a retry mechanism."""
        start_time = time.time()
        while time.time() - start_time < timeout:
            try:
                if os.path.exists(path):
                    s = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
                    s.connect(path)
                    return s
            except (ConnectionRefusedError, FileNotFoundError):
                pass
            except OSError as e:
                logger.error("Could not connect to mpv IPC: %s", e)
                return None
            time.sleep(0.1)
        logger.error("mpv IPC connection timed out after %s seconds", timeout)
        return None

    def _send_ipc_command(self, command_list: List[Any]) -> Optional[Dict[str, Any]]:
        """Sends a JSON command to mpv and returns the response carrying our request id."""
        if self.ipc is None:
            return None

        self.request_id_counter += 1
        request_id = self.request_id_counter

        message = json.dumps({"command": command_list, "request_id": request_id}) + "\n"
        try:
            self.ipc.sendall(message.encode('utf-8'))

            buffer = ""
            self.ipc.settimeout(2.0)
            while True:
                chunk = self.ipc.recv(4096).decode('utf-8')
                if not chunk:
                    return None
                buffer += chunk

                while '\n' in buffer:
                    line, buffer = buffer.split('\n', 1)
                    if not line:
                        continue
                    try:
                        resp = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if resp.get("request_id") == request_id:
                        return resp
        except socket.timeout:
            logger.warning("mpv did not answer %s", command_list[0])
            return None
        except OSError as e:
            logger.error("Error talking to mpv: %s", e)
            self.close()
            return None

    def _command_ok(self, command_list: List[Any]) -> bool:
        resp = self._send_ipc_command(command_list)
        return resp is not None and resp.get("error") == "success"

    def _get_property(self, name: str) -> Any:
        resp = self._send_ipc_command(["get_property", name])
        if resp is None or resp.get("error") != "success":
            return None
        return resp.get("data")

    def _get_float(self, name: str) -> Optional[float]:
        value = self._get_property(name)
        try:
            return float(value) if value is not None else None
        except (ValueError, TypeError):
            return None

    # --- IAudioBackend ---

    def load(self, url: str, generation: int) -> bool:
        if not self._ensure_running():
            return False

        self.url = url
        self.generation = generation
        self._load_started = time.monotonic()
        self._metadata_sent = False
        self._ended_sent = False
        self._error_sent = False
        self._last_position = None

        self._command_ok(["set_property", "pause", True])
        return self._command_ok(["loadfile", url, "replace"])

    def play(self) -> bool:
        if self.url is None or not self._ensure_running():
            return False
        return self._command_ok(["set_property", "pause", False])

    def pause(self) -> None:
        self._command_ok(["set_property", "pause", True])

    def seek(self, seconds: float) -> None:
        if self._command_ok(["seek", str(seconds), "absolute"]):
            self._last_position = seconds

    def set_volume(self, level: float) -> None:
        # Applied on the next launch when mpv is not running yet.
        self.volume = round(level * 100)
        self._command_ok(["set_property", "volume", self.volume])

    def poll(self) -> List[TransportEvent]:
        if self.url is None or self._error_sent:
            return []

        if self.process is None or self.process.poll() is not None:
            self._error_sent = True
            return [TransportEvent(EventKind.ERROR, self.generation, "mpv exited")]

        events: List[TransportEvent] = []
        current_path = self._get_property("path")

        if current_path != self.url:
            # Still opening, or mpv gave up on the file and went idle.
            if self._get_property("idle-active") and time.monotonic() - self._load_started > LOAD_GRACE_SECONDS:
                self._error_sent = True
                events.append(TransportEvent(EventKind.ERROR, self.generation, f"Could not open {self.url}"))
            return events

        if not self._metadata_sent:
            duration = self._get_float("duration")
            if duration is None or duration <= 0:
                return events
            self._metadata_sent = True
            events.append(TransportEvent(EventKind.METADATA_READY, self.generation, duration))

        pos = self._get_float("time-pos")
        if pos is not None and pos != self._last_position:
            self._last_position = pos
            events.append(TransportEvent(EventKind.TIME_ADVANCED, self.generation, pos))

        eof = bool(self._get_property("eof-reached"))
        if eof and not self._ended_sent:
            self._ended_sent = True
            events.append(TransportEvent(EventKind.ENDED, self.generation))
        elif not eof:
            self._ended_sent = False
        return events

    def close(self) -> None:
        if self.ipc is not None:
            try:
                self.ipc.close()
            except OSError:
                pass
            self.ipc = None

        if self.process is not None and self.process.poll() is None:
            self.process.terminate()
        self.process = None

        if os.path.exists(self.socket_path):
            os.remove(self.socket_path)
