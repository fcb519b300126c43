import unittest

from urdashboard.dashboard import commands
from urdashboard.dashboard.chatterbox import DashboardChatterboxBackend
from urdashboard.dashboard.dashboard import Dashboard
from urdashboard.dashboard.result import Status
from urdashboard.dashboard.version import HardwareVariant, SoftwareVersion


class ChatterboxTests(unittest.TestCase):
  def setUp(self):
    self.dashboard = Dashboard(backend=DashboardChatterboxBackend())
    self.dashboard.setup()

  def tearDown(self):
    if self.dashboard.setup_finished:
      self.dashboard.stop()

  def test_version(self):
    self.assertEqual(self.dashboard.software_version, SoftwareVersion(5, 9, 4))
    self.assertEqual(self.dashboard.polyscope_version(), "URSoftware 5.9.4 (Jul 19 2021)")

  def test_actions(self):
    self.assertTrue(self.dashboard.power_on())
    self.assertTrue(self.dashboard.brake_release())
    self.assertTrue(self.dashboard.load_program("demo.urp"))
    self.assertTrue(self.dashboard.play())
    self.assertEqual(self.dashboard.get_operational_mode(), "MANUAL")

  def test_gate_applies(self):
    self.assertFalse(self.dashboard.set_user_role("programmer"))
    cb3 = Dashboard(backend=DashboardChatterboxBackend(version="3.13"))
    cb3.setup()
    self.assertEqual(cb3.variant, HardwareVariant.CB3)
    self.assertTrue(cb3.set_user_role("programmer"))
    self.assertEqual(cb3.invoke(commands.GET_OPERATIONAL_MODE).status, Status.UNSUPPORTED)

  def test_all_commands(self):
    for spec in commands.CATALOG.values():
      gate = self.dashboard.gate
      assert gate is not None
      if spec.closes_connection or not gate.supports(spec):
        continue
      args = {name: "x" for name in spec.arguments}
      self.assertEqual(self.dashboard.invoke(spec, **args).status, Status.OK, spec.name)

  def test_raw(self):
    self.assertEqual(self.dashboard.send_and_receive("robotmode"), "Robotmode: IDLE")
    self.assertEqual(self.dashboard.send_and_receive("hello"), "could not understand: 'hello'")

  def test_quit(self):
    self.assertTrue(self.dashboard.quit())
    self.assertFalse(self.dashboard.backend.connected)

  def test_serialize(self):
    data = self.dashboard.serialize()
    self.assertEqual(data, {"backend": {"type": "DashboardChatterboxBackend", "version": "5.9.4"}})
    self.assertIsInstance(Dashboard.deserialize(data).backend, DashboardChatterboxBackend)


if __name__ == "__main__":
  unittest.main()
