import enum
import logging
import socket
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from urdashboard.io.capture import Command, capturer, get_capture_or_validation_active
from urdashboard.io.errors import ValidationError
from urdashboard.io.io import IOBase
from urdashboard.io.validation_utils import LOG_LEVEL_IO, align_lines

if TYPE_CHECKING:
  from urdashboard.io.capture import CaptureReader


logger = logging.getLogger(__name__)


class ConnectionState(enum.Enum):
  DISCONNECTED = "disconnected"
  CONNECTED = "connected"


@dataclass
class SocketCommand(Command):
  data: str

  def __init__(self, device_id: str, action: str, data: str, module: str = "socket"):
    super().__init__(module=module, device_id=device_id, action=action)
    self.data = data


class Socket(IOBase):
  """Blocking IO for reading/writing to a TCP socket.

  Reads block until data arrives or `read_timeout` seconds pass, in which case `TimeoutError` is
  raised. The socket does not reconnect by itself.
  """

  def __init__(
    self,
    host: str,
    port: int,
    read_timeout: float = 1.0,
    connect_timeout: float = 5.0,
  ):
    self._host = host
    self._port = port
    self._sock: Optional[socket.socket] = None
    self._read_timeout = read_timeout
    self._connect_timeout = connect_timeout
    self._unique_id = f"{self._host}:{self._port}"

    if get_capture_or_validation_active():
      raise RuntimeError("Cannot create a new Socket object while capture or validation is active")

  @property
  def host(self) -> str:
    return self._host

  @property
  def port(self) -> int:
    return self._port

  @property
  def state(self) -> ConnectionState:
    return ConnectionState.CONNECTED if self._sock is not None else ConnectionState.DISCONNECTED

  @property
  def connected(self) -> bool:
    return self.state == ConnectionState.CONNECTED

  @property
  def read_timeout(self) -> float:
    return self._read_timeout

  def set_read_timeout(self, timeout: float) -> None:
    """Set the timeout for subsequent reads, also on an open connection."""
    self._read_timeout = timeout
    if self._sock is not None:
      self._sock.settimeout(timeout)

  def setup(self):
    sock = socket.create_connection((self._host, self._port), timeout=self._connect_timeout)
    sock.settimeout(self._read_timeout)
    self._sock = sock
    logger.info("Connected to socket %s:%s", self._host, self._port)

  def stop(self):
    if self._sock is None:
      return

    logger.info("Closing connection to socket %s:%s", self._host, self._port)
    try:
      self._sock.close()
    except OSError as e:
      logger.warning("Error while closing socket connection: %s", e)
    finally:
      self._sock = None

  def serialize(self):
    return {
      "host": self._host,
      "port": self._port,
      "read_timeout": self._read_timeout,
      "connect_timeout": self._connect_timeout,
    }

  @classmethod
  def deserialize(cls, data: dict) -> "Socket":
    return cls(**data)

  def _ensure_connected(self) -> socket.socket:
    if self._sock is None:
      raise ConnectionError(f"Socket {self._unique_id} is not connected, forgot to call setup?")
    return self._sock

  def write(self, data: bytes) -> None:
    """Send all of `data`. Does not retry."""
    sock = self._ensure_connected()
    try:
      sock.sendall(data)
    except OSError as e:
      logger.error("write error: %r", e)
      raise
    logger.log(LOG_LEVEL_IO, "[%s:%d] write %s", self._host, self._port, data)
    capturer.record(SocketCommand(device_id=self._unique_id, action="write", data=data.hex()))

  def _recv(self, sock: socket.socket, num_bytes: int) -> bytes:
    try:
      return sock.recv(num_bytes)
    except socket.timeout as e:
      raise TimeoutError(
        f"No data received from {self._unique_id} within {self._read_timeout} seconds"
      ) from e

  def read(self, num_bytes: int = 128) -> bytes:
    """Read at most `num_bytes`. Returns b"" if the peer closed the connection."""
    sock = self._ensure_connected()
    data = self._recv(sock, num_bytes)
    logger.log(LOG_LEVEL_IO, "[%s:%d] read %s", self._host, self._port, data)
    capturer.record(SocketCommand(device_id=self._unique_id, action="read", data=data.hex()))
    return data

  def readline(self, max_length: int = 4096, terminator: bytes = b"\n") -> bytes:
    """Read one byte at a time until `terminator` or `max_length` bytes, whichever comes first.

    The terminator is included in the returned bytes. Nothing beyond the terminator is consumed,
    so the next line stays in the kernel buffer.

    Raises:
      TimeoutError: if the line did not complete within the read timeout.
      ConnectionError: if the peer closed the connection mid-line.
    """
    sock = self._ensure_connected()
    line = bytearray()
    while len(line) < max_length:
      char = self._recv(sock, 1)
      if char == b"":
        raise ConnectionError(f"Connection closed by {self._unique_id} while reading a line")
      line.extend(char)
      if line.endswith(terminator):
        break
    data = bytes(line)
    logger.log(LOG_LEVEL_IO, "[%s:%d] readline %s", self._host, self._port, data)
    capturer.record(SocketCommand(device_id=self._unique_id, action="readline", data=data.hex()))
    return data


class SocketValidator(Socket):
  """Replays a captured session instead of talking to a real socket."""

  def __init__(
    self,
    cr: "CaptureReader",
    host: str,
    port: int,
    read_timeout: float = 1.0,
    connect_timeout: float = 5.0,
  ):
    super().__init__(
      host=host,
      port=port,
      read_timeout=read_timeout,
      connect_timeout=connect_timeout,
    )
    self.cr = cr
    self._open = False

  @property
  def state(self) -> ConnectionState:
    return ConnectionState.CONNECTED if self._open else ConnectionState.DISCONNECTED

  def setup(self):
    self._open = True

  def stop(self):
    self._open = False

  def _next(self, action: str) -> SocketCommand:
    next_command = SocketCommand(**self.cr.next_command())
    if not (
      next_command.module == "socket"
      and next_command.device_id == self._unique_id
      and next_command.action == action
    ):
      raise ValidationError(
        f"Expected socket {action} command for {self._unique_id}, "
        f"got {next_command.module} {next_command.action} for {next_command.device_id}"
      )
    return next_command

  def write(self, data: bytes, *args, **kwargs):
    if not self._open:
      raise ConnectionError(f"Socket {self._unique_id} is not connected, forgot to call setup?")
    next_command = self._next("write")
    expected = bytes.fromhex(next_command.data)
    if expected != data:
      diff = align_lines(
        expected.decode("utf-8", errors="replace"), data.decode("utf-8", errors="replace")
      )
      raise ValidationError(f"Socket write data mismatch:\n{diff}")

  def read(self, *args, **kwargs) -> bytes:
    return bytes.fromhex(self._next("read").data)

  def readline(self, *args, **kwargs) -> bytes:
    return bytes.fromhex(self._next("readline").data)
