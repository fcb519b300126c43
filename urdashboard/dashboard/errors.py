from typing import Optional


class DashboardError(Exception):
  """Base class for errors raised while talking to a dashboard server."""


class DashboardConnectionError(DashboardError, ConnectionError):
  """The request could not be sent: not connected, the write failed or the server hung up."""


class DashboardTimeoutError(DashboardError, TimeoutError):
  """No reply line arrived within the active read timeout.

  The connection is closed before this is raised, because the stream can no longer be trusted to
  be aligned on a line boundary.
  """

  def __init__(self, timeout: float, message: Optional[str] = None):
    self.timeout = timeout
    super().__init__(
      message
      or f"Did not receive answer from dashboard server within {timeout} seconds. "
      "Disconnected from dashboard server."
    )


class ProtocolError(DashboardError):
  """A reply was received, but it does not match what the command should answer."""

  def __init__(self, expected, actual: str):
    self.expected = expected
    self.actual = actual
    super().__init__(f"Expected: {expected}, but received: {actual}")
