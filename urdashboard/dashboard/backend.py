import logging
import threading
from abc import ABCMeta, abstractmethod
from typing import Dict, Optional

import urdashboard
from urdashboard.dashboard.commands import (
  DEFAULT_POWER_ON_ATTEMPTS,
  POLYSCOPE_VERSION,
  CommandSpec,
)
from urdashboard.dashboard.engine import RequestResponseEngine
from urdashboard.dashboard.errors import DashboardConnectionError, DashboardError, ProtocolError
from urdashboard.dashboard.matchers import ResponseMatcher
from urdashboard.dashboard.polling import PollRetryEngine
from urdashboard.dashboard.result import CommandResult, Status
from urdashboard.dashboard.version import VersionGate
from urdashboard.io.socket import Socket
from urdashboard.machines.backend import MachineBackend

logger = logging.getLogger(__name__)


class DashboardBackend(MachineBackend, metaclass=ABCMeta):
  """Abstract class for dashboard server backends."""

  @property
  @abstractmethod
  def connected(self) -> bool:
    """Whether a connection to the dashboard server is open."""

  @property
  @abstractmethod
  def gate(self) -> Optional[VersionGate]:
    """The version gate of the current connection, None before the version is known."""

  @property
  @abstractmethod
  def lock(self) -> threading.RLock:
    """Lock guarding the connection. Held while reading or replacing the gate."""

  @abstractmethod
  def execute(
    self,
    spec: CommandSpec,
    args: Dict[str, str],
    attempts: Optional[int] = None,
    wait_timeout: Optional[float] = None,
  ) -> CommandResult:
    """Run the exchanges for `spec` without consulting the version gate.

    Args:
      spec: the catalog entry.
      args: caller arguments for the placeholders of `spec`.
      attempts: number of triggers for commands that are resent while polling.
      wait_timeout: overall deadline of the status poll, instead of the default of `spec`.

    Raises:
      ProtocolError: a strict command was answered unexpectedly.
      DashboardConnectionError: the connection failed.
      DashboardTimeoutError: a reply did not arrive in time.
    """

  @abstractmethod
  def send_and_receive(self, command: str, read_timeout: Optional[float] = None) -> str:
    """Send one request line and return the reply line."""

  @abstractmethod
  def wait_for_reply(self, command: str, expected: ResponseMatcher, timeout: float) -> bool:
    """Poll `command` until the reply matches `expected` or `timeout` seconds have elapsed."""

  @abstractmethod
  def retry_command(
    self,
    trigger: str,
    trigger_expected: ResponseMatcher,
    status_query: str,
    status_expected: ResponseMatcher,
    max_attempts: int,
  ) -> bool:
    """Send `trigger` once per second until `status_query` answers `status_expected`."""

  def send_request(
    self, command: str, expected: ResponseMatcher, read_timeout: Optional[float] = None
  ) -> bool:
    """Send `command` and require the reply to match `expected`."""
    self.send_request_string(command, expected, read_timeout=read_timeout)
    return True

  def send_request_string(
    self, command: str, expected: ResponseMatcher, read_timeout: Optional[float] = None
  ) -> str:
    """Like `send_request`, but return the reply line."""
    response = self.send_and_receive(command, read_timeout=read_timeout)
    if not expected.matches(response):
      raise ProtocolError(expected=expected, actual=response)
    return response


class URDashboardBackend(DashboardBackend):
  """Backend for the dashboard server of Universal Robots controllers (CB3 and e-Series).

  The dashboard server listens on TCP port 29999 of the controller and speaks a line based text
  protocol: one request line, one reply line. See
  https://www.universal-robots.com/articles/ur/dashboard-server-e-series-port-29999/

  Example:
    >>> backend = URDashboardBackend(host="192.168.56.101")
    >>> dashboard = Dashboard(backend=backend)
    >>> dashboard.setup()
    >>> dashboard.power_on()
  """

  def __init__(
    self,
    host: str,
    port: Optional[int] = None,
    read_timeout: Optional[float] = None,
    connect_timeout: Optional[float] = None,
  ):
    """
    Args:
      host: hostname or IP address of the controller.
      port: dashboard server port. Defaults to the configured port, 29999 unless changed.
      read_timeout: seconds to wait for a reply line. Defaults to the configured value.
      connect_timeout: seconds to wait for the TCP connection. Defaults to the configured value.
    """
    super().__init__()
    defaults = urdashboard.CONFIG.dashboard
    self.host = host
    self.port = defaults.port if port is None else port
    self.read_timeout = defaults.read_timeout if read_timeout is None else read_timeout
    self.connect_timeout = defaults.connect_timeout if connect_timeout is None else connect_timeout

    self.engine = RequestResponseEngine(
      Socket(
        host=self.host,
        port=self.port,
        read_timeout=self.read_timeout,
        connect_timeout=self.connect_timeout,
      )
    )
    self.poller = PollRetryEngine(self.engine)
    self._gate: Optional[VersionGate] = None

  @property
  def io(self) -> Socket:
    return self.engine.io

  @io.setter
  def io(self, io: Socket):
    self.engine.io = io

  @property
  def connected(self) -> bool:
    return self.engine.connected

  @property
  def gate(self) -> Optional[VersionGate]:
    return self._gate

  @property
  def lock(self) -> threading.RLock:
    return self.engine.lock

  def setup(self):
    """Connect, read the greeting and record the controller software version.

    Raises:
      DashboardConnectionError: the server could not be reached.
      ProtocolError: the version query was answered unexpectedly. The connection is closed.
    """
    with self.lock:
      if self.connected:
        logger.error(
          "Already connected to Dashboard server on %s:%s. Call stop() before reconnecting.",
          self.host,
          self.port,
        )
        return

      try:
        self.io.setup()
      except OSError as e:
        raise DashboardConnectionError(
          f"Could not connect to Dashboard server on {self.host}:{self.port}"
        ) from e

      try:
        greeting = self.engine.read_line()
        logger.info("Connected to Dashboard server: %s", greeting)
        response = self.engine.expect_returning(
          POLYSCOPE_VERSION.command, POLYSCOPE_VERSION.expected
        )
        self._record_version(response)
      except DashboardError:
        self._close()
        raise

  def stop(self):
    with self.lock:
      logger.info("Disconnecting from Dashboard server on %s:%s", self.host, self.port)
      self._close()

  def _close(self):
    self.io.stop()
    self._gate = None

  def _record_version(self, response: str):
    try:
      gate = VersionGate.from_response(response)
    except ValueError as e:
      raise ProtocolError(POLYSCOPE_VERSION.expected, response) from e
    with self.lock:
      self._gate = gate
    logger.info("Controller software version %s (%s)", gate.version, gate.variant.value)

  def execute(
    self,
    spec: CommandSpec,
    args: Dict[str, str],
    attempts: Optional[int] = None,
    wait_timeout: Optional[float] = None,
  ) -> CommandResult:
    command = spec.format_command(**args)
    expected = spec.expected.bind(**args)
    wait = spec.wait_for.bind(**args) if spec.wait_for is not None else None

    if spec.retry and wait is not None:
      max_attempts = DEFAULT_POWER_ON_ATTEMPTS if attempts is None else attempts
      done = self.poller.issue_then_poll(
        command, expected, wait.query, wait.expected, max_attempts
      )
      return CommandResult(spec.name, Status.OK if done else Status.REJECTED)

    response = self.engine.exchange(command, read_timeout=spec.read_timeout)
    if not expected.matches(response):
      if spec.strict:
        raise ProtocolError(expected=expected, actual=response)
      return CommandResult(spec.name, Status.REJECTED, response=response)

    if spec.records_version:
      self._record_version(response)
    if spec.closes_connection:
      with self.lock:
        self._close()

    if wait is not None:
      timeout = wait.timeout if wait_timeout is None else wait_timeout
      if not self.poller.poll_until(wait.query, wait.expected, timeout):
        return CommandResult(spec.name, Status.REJECTED, response=response)

    return CommandResult(spec.name, Status.OK, response=response)

  def send_and_receive(self, command: str, read_timeout: Optional[float] = None) -> str:
    return self.engine.exchange(command, read_timeout=read_timeout)

  def wait_for_reply(self, command: str, expected: ResponseMatcher, timeout: float) -> bool:
    return self.poller.poll_until(command, expected, timeout)

  def retry_command(
    self,
    trigger: str,
    trigger_expected: ResponseMatcher,
    status_query: str,
    status_expected: ResponseMatcher,
    max_attempts: int,
  ) -> bool:
    return self.poller.issue_then_poll(
      trigger, trigger_expected, status_query, status_expected, max_attempts
    )

  def serialize(self) -> dict:
    return {
      **super().serialize(),
      "host": self.host,
      "port": self.port,
      "read_timeout": self.read_timeout,
      "connect_timeout": self.connect_timeout,
    }
