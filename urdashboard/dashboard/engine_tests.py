import threading
import time
import unittest
from typing import Dict, List, Optional, Union
from unittest.mock import Mock

from urdashboard.dashboard.engine import RequestResponseEngine
from urdashboard.dashboard.errors import (
  DashboardConnectionError,
  DashboardTimeoutError,
  ProtocolError,
)
from urdashboard.dashboard.matchers import Exactly, StartsWith

Reply = Union[str, List[str], None]


class ScriptedSocket:
  """Socket stand-in that answers each written line from a script.

  A list of replies is consumed one per request, the last one repeating. A request without a
  reply (or with None) makes the next read time out.
  """

  def __init__(
    self,
    replies: Optional[Dict[str, Reply]] = None,
    greeting: str = "Connected: Universal Robots Dashboard Server",
    read_timeout: float = 1.0,
    read_delay: float = 0,
  ):
    self.replies: Dict[str, Reply] = dict(replies or {})
    self.greeting = greeting
    self.read_timeout = read_timeout
    self.read_delay = read_delay
    self.written: List[str] = []
    self.timeouts_seen: List[float] = []
    self.events: List[tuple] = []
    self.connected = False
    self._pending: List[str] = []

  def setup(self):
    self.connected = True
    self._pending.append(self.greeting)

  def stop(self):
    self.connected = False

  def set_read_timeout(self, timeout: float):
    self.read_timeout = timeout

  def write(self, data: bytes):
    if not self.connected:
      raise ConnectionError("not connected")
    line = data.decode("utf-8")
    assert line.endswith("\n")
    line = line[:-1]
    self.written.append(line)
    self.events.append(("write", line))
    reply = self.replies.get(line)
    if isinstance(reply, list):
      reply = reply.pop(0) if len(reply) > 1 else reply[0]
    if reply is not None:
      self._pending.append(reply)

  def readline(self, max_length: int = 4096, terminator: bytes = b"\n") -> bytes:
    self.timeouts_seen.append(self.read_timeout)
    if self.read_delay:
      time.sleep(self.read_delay)
    if not self._pending:
      raise TimeoutError("no reply")
    reply = self._pending.pop(0)
    self.events.append(("read", reply))
    return (reply + "\r\n").encode("utf-8")[:max_length]


def connected_engine(replies: Optional[Dict[str, Reply]] = None, **kwargs):
  io = ScriptedSocket(replies, **kwargs)
  io.setup()
  engine = RequestResponseEngine(io)  # type: ignore[arg-type]
  engine.read_line()  # greeting
  return engine, io


class RequestResponseEngineTests(unittest.TestCase):
  def test_reply_is_trimmed(self):
    engine, _ = connected_engine({"robotmode": "Robotmode: IDLE   "})
    self.assertEqual(engine.exchange("robotmode"), "Robotmode: IDLE")

  def test_request_is_terminated_with_newline(self):
    io = Mock()
    io.connected = True
    io.read_timeout = 1.0
    io.readline.return_value = b"Powering off\n"
    engine = RequestResponseEngine(io)
    engine.exchange("power off")
    io.write.assert_called_once_with(b"power off\n")

  def test_expect(self):
    engine, _ = connected_engine({"power off": "Powering off"})
    self.assertTrue(engine.expect("power off", Exactly("Powering off")))

  def test_expect_returning(self):
    engine, _ = connected_engine({"get loaded program": "Loaded program: /programs/a.urp"})
    self.assertEqual(
      engine.expect_returning("get loaded program", StartsWith("Loaded program: ")),
      "Loaded program: /programs/a.urp",
    )

  def test_mismatch_raises_protocol_error(self):
    engine, _ = connected_engine({"power off": "could not understand: 'power off'"})
    with self.assertRaises(ProtocolError) as ctx:
      engine.expect("power off", Exactly("Powering off"))
    self.assertEqual(ctx.exception.expected, Exactly("Powering off"))
    self.assertEqual(ctx.exception.actual, "could not understand: 'power off'")
    self.assertIn("Expected: 'Powering off', but received:", str(ctx.exception))

  def test_write_failure(self):
    engine, io = connected_engine()
    io.write = Mock(side_effect=BrokenPipeError())  # type: ignore[method-assign]
    io.readline = Mock()  # type: ignore[method-assign]
    with self.assertRaises(DashboardConnectionError):
      engine.exchange("robotmode")
    io.readline.assert_not_called()

  def test_timeout_closes_connection(self):
    engine, io = connected_engine({})
    with self.assertRaises(DashboardTimeoutError) as ctx:
      engine.exchange("robotmode")
    self.assertEqual(ctx.exception.timeout, 1.0)
    self.assertIn("1.0 seconds", str(ctx.exception))
    self.assertFalse(io.connected)
    self.assertFalse(engine.connected)

    with self.assertRaises(DashboardConnectionError):
      engine.exchange("robotmode")
    self.assertEqual(io.written, ["robotmode"])

  def test_peer_closed(self):
    engine, io = connected_engine()
    io.readline = Mock(side_effect=ConnectionError("closed"))  # type: ignore[method-assign]
    with self.assertRaises(DashboardConnectionError):
      engine.exchange("robotmode")
    self.assertFalse(io.connected)

  def test_not_connected(self):
    io = ScriptedSocket({"robotmode": "Robotmode: IDLE"})
    engine = RequestResponseEngine(io)  # type: ignore[arg-type]
    with self.assertRaises(DashboardConnectionError):
      engine.exchange("robotmode")
    self.assertEqual(io.written, [])

  def test_read_timeout_override_is_restored(self):
    engine, io = connected_engine({"generate flight report system": "Flight Report generated"})
    engine.exchange("generate flight report system", read_timeout=180.0)
    self.assertEqual(io.timeouts_seen[-1], 180.0)
    self.assertEqual(io.read_timeout, 1.0)

  def test_read_timeout_override_is_restored_after_timeout(self):
    engine, io = connected_engine({})
    with self.assertRaises(DashboardTimeoutError) as ctx:
      engine.exchange("generate support file /tmp", read_timeout=600.0)
    self.assertEqual(ctx.exception.timeout, 600.0)
    self.assertEqual(io.read_timeout, 1.0)

  def test_line_breaks_are_rejected(self):
    engine, io = connected_engine({})
    for command in ("popup a\nshutdown", "popup a\rb"):
      with self.assertRaises(ValueError):
        engine.exchange(command)
    self.assertEqual(io.written, [])

  def test_exchanges_are_exclusive(self):
    replies: Dict[str, Reply] = {f"request {i}": f"reply {i}" for i in range(40)}
    engine, io = connected_engine(replies, read_delay=0.001)
    io.events.clear()
    results: Dict[int, str] = {}

    def worker(start: int):
      for i in range(start, 40, 4):
        results[i] = engine.exchange(f"request {i}")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for thread in threads:
      thread.start()
    for thread in threads:
      thread.join()

    self.assertEqual(results, {i: f"reply {i}" for i in range(40)})
    # every write is immediately followed by the read of its own reply
    for write, read in zip(io.events[::2], io.events[1::2]):
      self.assertEqual(write[0], "write")
      self.assertEqual(read, ("read", write[1].replace("request", "reply")))


if __name__ == "__main__":
  unittest.main()
