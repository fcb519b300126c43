import unittest
from unittest.mock import patch

from urdashboard.dashboard.engine_tests import connected_engine
from urdashboard.dashboard.errors import ProtocolError
from urdashboard.dashboard.matchers import Exactly, StartsWith
from urdashboard.dashboard.polling import PollRetryEngine


class PollUntilTests(unittest.TestCase):
  def setUp(self):
    patcher = patch("urdashboard.dashboard.polling.time.sleep")
    self.sleep = patcher.start()
    self.addCleanup(patcher.stop)

  def test_returns_on_first_match(self):
    engine, io = connected_engine(
      {"robotmode": ["Robotmode: POWER_OFF", "Robotmode: POWER_OFF", "Robotmode: IDLE"]}
    )
    poller = PollRetryEngine(engine)
    self.assertTrue(poller.poll_until("robotmode", Exactly("Robotmode: IDLE"), 30))
    self.assertEqual(io.written.count("robotmode"), 3)
    self.sleep.assert_called_with(0.1)

  def test_attempts_are_bounded_by_timeout(self):
    engine, io = connected_engine({"robotmode": "Robotmode: POWER_OFF"})
    poller = PollRetryEngine(engine)
    with self.assertLogs("urdashboard.dashboard.polling", level="INFO") as logs:
      self.assertFalse(poller.poll_until("robotmode", Exactly("Robotmode: IDLE"), 0.25))
    self.assertEqual(len(io.written), 3)
    self.assertIn("Robotmode: POWER_OFF", logs.output[0])

  def test_zero_timeout_sends_nothing(self):
    engine, io = connected_engine({"robotmode": "Robotmode: IDLE"})
    poller = PollRetryEngine(engine)
    self.assertFalse(poller.poll_until("robotmode", Exactly("Robotmode: IDLE"), 0))
    self.assertFalse(poller.poll_until("robotmode", Exactly("Robotmode: IDLE"), -1))
    self.assertEqual(io.written, [])

  def test_one_second_is_ten_attempts(self):
    engine, io = connected_engine({"robotmode": "Robotmode: POWER_OFF"})
    poller = PollRetryEngine(engine)
    poller.poll_until("robotmode", Exactly("Robotmode: IDLE"), 1.0)
    self.assertEqual(len(io.written), 10)


class IssueThenPollTests(unittest.TestCase):
  def setUp(self):
    patcher = patch("urdashboard.dashboard.polling.time.sleep")
    patcher.start()
    self.addCleanup(patcher.stop)

  def _retry(self, poller: PollRetryEngine, max_attempts: int) -> bool:
    return poller.issue_then_poll(
      "power on",
      Exactly("Powering on"),
      "robotmode",
      Exactly("Robotmode: IDLE"),
      max_attempts,
    )

  def test_trigger_is_resent_until_state_is_reached(self):
    engine, io = connected_engine(
      {
        "power on": "Powering on",
        "robotmode": ["Robotmode: POWER_OFF"] * 10 + ["Robotmode: IDLE"],
      }
    )
    self.assertTrue(self._retry(PollRetryEngine(engine), 5))
    self.assertEqual(io.written.count("power on"), 2)
    self.assertEqual(io.written.count("robotmode"), 11)

  def test_attempts_are_bounded(self):
    engine, io = connected_engine(
      {"power on": "Powering on", "robotmode": "Robotmode: POWER_OFF"}
    )
    self.assertFalse(self._retry(PollRetryEngine(engine), 3))
    self.assertEqual(io.written.count("power on"), 3)
    self.assertEqual(io.written.count("robotmode"), 30)

  def test_no_attempts(self):
    engine, io = connected_engine({"power on": "Powering on"})
    self.assertFalse(self._retry(PollRetryEngine(engine), 0))
    self.assertEqual(io.written, [])

  def test_trigger_mismatch_is_not_retried(self):
    engine, io = connected_engine({"power on": "could not understand: 'power on'"})
    with self.assertRaises(ProtocolError):
      self._retry(PollRetryEngine(engine), 5)
    self.assertEqual(io.written, ["power on"])

  def test_custom_interval(self):
    engine, io = connected_engine({"programState": "STOPPED a.urp"})
    poller = PollRetryEngine(engine, interval=0.5)
    self.assertFalse(poller.poll_until("programState", StartsWith("PLAYING "), 1.0))
    self.assertEqual(len(io.written), 2)


if __name__ == "__main__":
  unittest.main()
