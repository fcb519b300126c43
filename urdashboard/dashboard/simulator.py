"""A stand-in dashboard server for tests and offline development.

Speaks the dashboard line protocol on a local TCP port and keeps a small model of the controller
(robot mode, loaded program, program state). State changes caused by a command only become
visible after a configurable number of status queries, like on a real controller.
"""

import logging
import socketserver
import threading
from typing import Dict, List, Optional, Set, Tuple

from urdashboard.dashboard.version import HardwareVariant, SoftwareVersion

logger = logging.getLogger(__name__)

GREETING = "Connected: Universal Robots Dashboard Server"


class _Server(socketserver.ThreadingTCPServer):
  allow_reuse_address = True
  daemon_threads = True


class DashboardSimulator:
  """Threaded TCP server answering dashboard requests.

  Example:
    >>> with DashboardSimulator(version="5.9.4") as sim:
    ...   backend = URDashboardBackend(host=sim.host, port=sim.port)
  """

  def __init__(
    self,
    version: str = "5.9.4.1031232",
    host: str = "127.0.0.1",
    transition_polls: int = 0,
    silent: Optional[Set[str]] = None,
    ignored_power_on: int = 0,
  ):
    """
    Args:
      version: software version reported by `PolyscopeVersion`.
      host: address to listen on. The port is chosen by the OS.
      transition_polls: number of status queries that still report the old state after a command.
      silent: request lines that are never answered.
      ignored_power_on: number of "power on" requests that are accepted but have no effect.
    """
    self.version = version
    self.host = host
    self.transition_polls = transition_polls
    self.silent: Set[str] = set(silent or ())
    self.ignored_power_on = ignored_power_on

    self.received: List[str] = []
    self.robot_mode = "POWER_OFF"
    self.loaded_program: Optional[str] = None
    self.program_state = "STOPPED"
    self._pending: Dict[str, Tuple[str, int]] = {}
    self._state_lock = threading.Lock()

    self._server: Optional[socketserver.ThreadingTCPServer] = None
    self._thread: Optional[threading.Thread] = None

  @property
  def port(self) -> int:
    if self._server is None:
      raise RuntimeError("Server not started yet")
    return self._server.server_address[1]

  @property
  def e_series(self) -> bool:
    return SoftwareVersion.parse(self.version).variant == HardwareVariant.E_SERIES

  def start(self) -> None:
    if self._server is not None:
      return
    outer = self

    class _Handler(socketserver.StreamRequestHandler):
      def _send(self, line: str) -> None:
        self.wfile.write((line + "\n").encode("utf-8"))
        self.wfile.flush()

      def handle(self) -> None:
        self._send(GREETING)
        while True:
          try:
            raw = self.rfile.readline()
          except OSError:
            return
          if raw == b"":
            return
          line = raw.decode("utf-8").rstrip("\r\n")
          reply = outer.respond(line)
          if reply is None:
            continue
          try:
            self._send(reply)
          except OSError:
            return
          if line == "quit":
            return

    server = _Server((self.host, 0), _Handler)
    self._server = server
    self._thread = threading.Thread(
      target=server.serve_forever, name="dashboard-simulator", daemon=True
    )
    self._thread.start()
    logger.debug("Dashboard simulator listening on %s:%s", self.host, self.port)

  def stop(self) -> None:
    if self._server is None:
      return
    self._server.shutdown()
    self._server.server_close()
    if self._thread is not None:
      self._thread.join()
    self._server = None
    self._thread = None

  def __enter__(self) -> "DashboardSimulator":
    self.start()
    return self

  def __exit__(self, exc_type, exc_value, traceback) -> None:
    self.stop()

  def _schedule(self, key: str, value: str) -> None:
    if self.transition_polls <= 0:
      setattr(self, key, value)
      self._pending.pop(key, None)
    else:
      self._pending[key] = (value, self.transition_polls)

  def _advance(self, key: str) -> None:
    if key not in self._pending:
      return
    value, remaining = self._pending[key]
    if remaining > 0:
      self._pending[key] = (value, remaining - 1)
    else:
      setattr(self, key, value)
      del self._pending[key]

  def _program_name(self) -> str:
    return self.loaded_program or "<unnamed>"

  def respond(self, line: str) -> Optional[str]:
    """The reply to one request line, or None if the request is not answered."""
    with self._state_lock:
      self.received.append(line)
      if line in self.silent:
        return None
      return self._respond(line)

  def _respond(self, line: str) -> str:  # pylint: disable=too-many-return-statements
    command, _, argument = line.partition(" ")

    if line == "PolyscopeVersion":
      return f"URSoftware {self.version} (Jul 19 2021)"
    if line == "robotmode":
      self._advance("robot_mode")
      return f"Robotmode: {self.robot_mode}"
    if line == "programState":
      self._advance("program_state")
      return f"{self.program_state} {self._program_name()}"

    if line == "power on":
      if self.ignored_power_on > 0:
        self.ignored_power_on -= 1
      else:
        self._schedule("robot_mode", "IDLE")
      return "Powering on"
    if line == "power off":
      self._schedule("robot_mode", "POWER_OFF")
      return "Powering off"
    if line == "brake release":
      self._schedule("robot_mode", "RUNNING")
      return "Brake releasing"
    if line == "restart safety":
      self._schedule("robot_mode", "POWER_OFF")
      return "Restarting safety"

    if command == "load" and argument.startswith("installation "):
      installation = argument[len("installation "):]
      return f"Loading installation: {installation}"
    if command == "load":
      if not argument.endswith(".urp"):
        return f"File not found: {argument}"
      self.loaded_program = argument
      self.program_state = "STOPPED"
      self._pending.pop("program_state", None)
      return f"Loading program: {argument}"
    if line == "play":
      if self.loaded_program is None:
        return "Failed to execute: play"
      self._schedule("program_state", "PLAYING")
      return "Starting program"
    if line == "pause":
      self._schedule("program_state", "PAUSED")
      return "Pausing program"
    if line == "stop":
      self._schedule("program_state", "STOPPED")
      return "Stopped"
    if line == "running":
      return f"Program running: {'true' if self.program_state == 'PLAYING' else 'false'}"
    if line == "isProgramSaved":
      return f"true {self._program_name()}"
    if line == "get loaded program":
      if self.loaded_program is None:
        return "No program loaded"
      return f"Loaded program: /programs/{self.loaded_program}"

    if line == "close popup":
      return "closing popup"
    if line == "close safety popup":
      return "closing safety popup"
    if command == "popup":
      return "showing popup"
    if command == "addToLog":
      return "Added log message"
    if line == "unlock protective stop":
      return "Protective stop releasing"
    if line == "safetymode":
      return "Safetymode: NORMAL"
    if line == "safetystatus":
      return "Safetystatus: NORMAL"
    if line == "shutdown":
      return "Shutting down"
    if line == "quit":
      return "Disconnected"
    if line == "get robot model":
      return "UR5"
    if line == "get serial number":
      return "20185500000"
    if line == "is in remote control":
      return "false"

    if self.e_series:
      if line == "get operational mode":
        return "MANUAL"
      if line.startswith("set operational mode "):
        return f"Operational mode '{line[len('set operational mode '):]}' is set"
      if line == "clear operational mode":
        return "No longer controlling the operational mode. Current operational mode: 'MANUAL'."
    else:
      if command == "setUserRole":
        return f"Setting user role: {argument}"
      if line == "getUserRole":
        return "PROGRAMMER"

    if line.startswith("generate flight report "):
      return "Flight Report generated with id: 1"
    if line.startswith("generate support file "):
      return f"Completed successfully: {line[len('generate support file '):]}/ur_support_file.zip"

    return f"could not understand: '{line}'"
