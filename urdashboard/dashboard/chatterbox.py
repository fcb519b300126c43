import threading
from typing import Dict, Optional

from urdashboard.dashboard.backend import DashboardBackend
from urdashboard.dashboard.commands import CATALOG, CommandSpec
from urdashboard.dashboard.matchers import ResponseMatcher
from urdashboard.dashboard.result import CommandResult, Status
from urdashboard.dashboard.version import SoftwareVersion, VersionGate


class DashboardChatterboxBackend(DashboardBackend):
  """Chatter box backend for device-free testing. Prints out all operations.

  Every catalog command is answered with a reply that satisfies it, for a controller reporting
  `version`.
  """

  def __init__(self, version: str = "5.9.4"):
    super().__init__()
    self.version = version
    self._connected = False
    self._gate: Optional[VersionGate] = None
    self._lock = threading.RLock()

  @property
  def connected(self) -> bool:
    return self._connected

  @property
  def gate(self) -> Optional[VersionGate]:
    return self._gate

  @property
  def lock(self) -> threading.RLock:
    return self._lock

  def setup(self):
    print(f"Setting up the dashboard connection, controller version {self.version}.")
    with self._lock:
      self._connected = True
      self._gate = VersionGate(SoftwareVersion.parse(self.version))

  def stop(self):
    print("Stopping the dashboard connection.")
    with self._lock:
      self._connected = False
      self._gate = None

  def _reply(self, spec: CommandSpec, args: Dict[str, str]) -> str:
    if spec.records_version:
      return f"URSoftware {self.version} (Jul 19 2021)"
    return spec.example.format(**args)

  def execute(
    self,
    spec: CommandSpec,
    args: Dict[str, str],
    attempts: Optional[int] = None,
    wait_timeout: Optional[float] = None,
  ) -> CommandResult:
    command = spec.format_command(**args)
    print(f"Sending request: {command}")
    response = self._reply(spec, args)
    if spec.wait_for is not None:
      wait = spec.wait_for.bind(**args)
      print(f"Waiting for {wait.query} to answer {wait.expected}.")
    if spec.closes_connection:
      self.stop()
    return CommandResult(spec.name, Status.OK, response=response)

  def send_and_receive(self, command: str, read_timeout: Optional[float] = None) -> str:
    print(f"Sending request: {command}")
    for spec in CATALOG.values():
      if not spec.arguments and spec.command == command:
        return self._reply(spec, {})
    return f"could not understand: '{command}'"

  def wait_for_reply(self, command: str, expected: ResponseMatcher, timeout: float) -> bool:
    print(f"Waiting up to {timeout} seconds for {command} to answer {expected}.")
    return True

  def retry_command(
    self,
    trigger: str,
    trigger_expected: ResponseMatcher,
    status_query: str,
    status_expected: ResponseMatcher,
    max_attempts: int,
  ) -> bool:
    print(f"Sending {trigger} until {status_query} answers {status_expected}.")
    return True

  def serialize(self) -> dict:
    return {**super().serialize(), "version": self.version}
