import logging
import threading
from typing import Optional

from urdashboard.dashboard.errors import (
  DashboardConnectionError,
  DashboardTimeoutError,
  ProtocolError,
)
from urdashboard.dashboard.matchers import ResponseMatcher
from urdashboard.io.socket import Socket

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\n"

# Upper bound for a single reply line, so a server that never sends a newline cannot make the
# client buffer without limit.
MAX_LINE_LENGTH = 4096


def check_single_line(text: str) -> str:
  """Reject text that would split one request into several on the wire."""
  if "\n" in text or "\r" in text:
    raise ValueError(f"Dashboard requests must be a single line, got {text!r}")
  return text


class RequestResponseEngine:
  """Runs one request/reply exchange at a time over a dashboard connection.

  Every exchange writes one line and reads one line while holding the engine lock, so replies
  cannot be attributed to the wrong caller when several threads share a client. The lock is
  reentrant so connection setup can hold it across the greeting and the version query.
  """

  def __init__(self, io: Socket):
    self.io = io
    self._lock = threading.RLock()

  @property
  def lock(self) -> threading.RLock:
    return self._lock

  @property
  def connected(self) -> bool:
    return self.io.connected

  def read_line(self) -> str:
    """Read one reply line and strip the terminator and trailing whitespace.

    A read timeout closes the connection: whatever the server sends later would be taken as the
    reply to the next request.
    """
    with self._lock:
      try:
        raw = self.io.readline(max_length=MAX_LINE_LENGTH)
      except TimeoutError as e:
        timeout = self.io.read_timeout
        self.io.stop()
        raise DashboardTimeoutError(timeout) from e
      except ConnectionError as e:
        self.io.stop()
        raise DashboardConnectionError(str(e)) from e
    return raw.decode("utf-8", errors="replace").rstrip()

  def exchange(self, command: str, read_timeout: Optional[float] = None) -> str:
    """Send `command` (without terminator) and return the trimmed reply line.

    Args:
      command: the request line.
      read_timeout: if given, used instead of the connection's read timeout for this exchange
        only. The previous timeout is restored afterwards, also when the exchange fails.

    Raises:
      DashboardConnectionError: not connected, or the request could not be written.
      DashboardTimeoutError: no reply within the read timeout. The connection is closed.
    """
    check_single_line(command)
    with self._lock:
      if not self.io.connected:
        raise DashboardConnectionError(
          "Not connected to the dashboard server. Call setup() before sending requests."
        )
      previous_timeout = self.io.read_timeout
      if read_timeout is not None:
        self.io.set_read_timeout(read_timeout)
      try:
        logger.debug("Send request: %s", command)
        try:
          self.io.write((command + LINE_TERMINATOR).encode("utf-8"))
        except OSError as e:
          raise DashboardConnectionError(
            "Failed to send request to dashboard server. Are you connected to the Dashboard Server?"
          ) from e
        response = self.read_line()
      finally:
        if read_timeout is not None:
          self.io.set_read_timeout(previous_timeout)
    logger.debug("Received response: %s", response)
    return response

  def expect(
    self, command: str, expected: ResponseMatcher, read_timeout: Optional[float] = None
  ) -> bool:
    """Exchange `command` and require the reply to match `expected`.

    Raises:
      ProtocolError: the reply does not match.
    """
    self.expect_returning(command, expected, read_timeout=read_timeout)
    return True

  def expect_returning(
    self, command: str, expected: ResponseMatcher, read_timeout: Optional[float] = None
  ) -> str:
    """Like `expect`, but return the reply line."""
    response = self.exchange(command, read_timeout=read_timeout)
    if not expected.matches(response):
      raise ProtocolError(expected=expected, actual=response)
    return response
