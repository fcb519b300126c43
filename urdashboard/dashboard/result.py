import enum
from dataclasses import dataclass
from typing import Optional

from urdashboard.dashboard.errors import (
  DashboardConnectionError,
  DashboardError,
  DashboardTimeoutError,
  ProtocolError,
)


class Status(enum.Enum):
  OK = "ok"
  REJECTED = "rejected"  # exchange completed, but the controller did not do or report what we asked
  UNSUPPORTED = "unsupported"  # version gate refused the command, nothing was sent
  CONNECTION_ERROR = "connection_error"
  TIMEOUT = "timeout"
  PROTOCOL_ERROR = "protocol_error"


@dataclass(frozen=True)
class CommandResult:
  """Outcome of one catalog command. Truthy only for `Status.OK`."""

  command: str
  status: Status
  response: Optional[str] = None
  error: Optional[DashboardError] = None

  def __bool__(self) -> bool:
    return self.status == Status.OK

  @property
  def ok(self) -> bool:
    return self.status == Status.OK

  @property
  def expected(self):
    return self.error.expected if isinstance(self.error, ProtocolError) else None

  @property
  def actual(self) -> Optional[str]:
    return self.error.actual if isinstance(self.error, ProtocolError) else None

  @classmethod
  def from_error(cls, command: str, error: DashboardError) -> "CommandResult":
    if isinstance(error, DashboardTimeoutError):
      status = Status.TIMEOUT
    elif isinstance(error, ProtocolError):
      status = Status.PROTOCOL_ERROR
    elif isinstance(error, DashboardConnectionError):
      status = Status.CONNECTION_ERROR
    else:
      raise ValueError(f"Cannot represent {error!r} as a command result") from error
    return cls(
      command=command,
      status=status,
      response=error.actual if isinstance(error, ProtocolError) else None,
      error=error,
    )
