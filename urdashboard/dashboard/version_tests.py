import unittest

from urdashboard.dashboard.commands import GET_OPERATIONAL_MODE, LOAD_PROGRAM, SET_USER_ROLE
from urdashboard.dashboard.version import (
  UNSUPPORTED,
  HardwareVariant,
  SoftwareVersion,
  VersionGate,
  extract_version,
  is_supported,
  threshold,
)


class SoftwareVersionTests(unittest.TestCase):
  def test_parse(self):
    self.assertEqual(SoftwareVersion.parse("5.9.4.1031232"), SoftwareVersion(5, 9, 4, 1031232))
    self.assertEqual(SoftwareVersion.parse("3.13"), SoftwareVersion(3, 13, 0, 0))
    self.assertEqual(SoftwareVersion.parse("5"), SoftwareVersion(5, 0, 0, 0))
    self.assertEqual(SoftwareVersion.parse("1.8.16941"), SoftwareVersion(1, 8, 16941, 0))

  def test_parse_invalid(self):
    for text in ("", "URSoftware", "v5.9"):
      with self.assertRaises(ValueError):
        SoftwareVersion.parse(text)

  def test_components_compare_numerically(self):
    self.assertLess(SoftwareVersion.parse("3.9"), SoftwareVersion.parse("3.10"))
    self.assertLess(SoftwareVersion.parse("5.6.0"), SoftwareVersion.parse("5.12.0"))
    self.assertGreaterEqual(SoftwareVersion.parse("5.6.0"), SoftwareVersion.parse("5.6"))

  def test_variant(self):
    self.assertEqual(SoftwareVersion(5, 0).variant, HardwareVariant.E_SERIES)
    self.assertEqual(SoftwareVersion(10, 1).variant, HardwareVariant.E_SERIES)
    self.assertEqual(SoftwareVersion(3, 15).variant, HardwareVariant.CB3)
    self.assertEqual(SoftwareVersion(1, 8).variant, HardwareVariant.CB3)

  def test_str(self):
    self.assertEqual(str(SoftwareVersion(5, 9, 4, 0)), "5.9.4.0")


class ExtractVersionTests(unittest.TestCase):
  def test_extract(self):
    self.assertEqual(extract_version("URSoftware 5.9.4.1031232 (Jul 19 2021)"), "5.9.4.1031232")
    self.assertEqual(extract_version("URSoftware 3.13.0.106253"), "3.13.0.106253")

  def test_no_version(self):
    with self.assertRaises(ValueError):
      extract_version("URSoftware")


class VersionGateTests(unittest.TestCase):
  def test_from_response(self):
    gate = VersionGate.from_response("URSoftware 5.9.4 (Jul 19 2021)")
    self.assertEqual(gate.version, SoftwareVersion(5, 9, 4, 0))
    self.assertEqual(gate.variant, HardwareVariant.E_SERIES)

  def test_threshold_is_inclusive(self):
    gate = VersionGate(SoftwareVersion(5, 6, 0))
    self.assertTrue(gate.is_supported(threshold("5.6.0"), threshold("3.12")))
    gate = VersionGate(SoftwareVersion(5, 5, 9))
    self.assertFalse(gate.is_supported(threshold("5.6.0"), threshold("3.12")))

  def test_variant_threshold_is_used(self):
    cb3 = VersionGate(SoftwareVersion(3, 12))
    self.assertTrue(cb3.is_supported(threshold("5.6.0"), threshold("3.12")))
    self.assertFalse(cb3.is_supported(threshold("5.6.0"), threshold("3.13")))

  def test_unsupported_never_passes(self):
    gate = VersionGate(SoftwareVersion(99, 0))
    self.assertIs(threshold(None), UNSUPPORTED)
    self.assertFalse(gate.is_supported(UNSUPPORTED, threshold("1.0")))
    self.assertFalse(gate.supports(SET_USER_ROLE))

  def test_malformed_threshold_is_not_supported(self):
    gate = VersionGate(SoftwareVersion(5, 9, 4))
    self.assertFalse(gate.is_supported("5.0", None))  # type: ignore[arg-type]
    self.assertFalse(gate.is_supported(None, UNSUPPORTED))  # type: ignore[arg-type]

  def test_supports(self):
    e_series = VersionGate(SoftwareVersion(5, 9, 4))
    cb3 = VersionGate(SoftwareVersion(3, 13))
    self.assertTrue(e_series.supports(GET_OPERATIONAL_MODE))
    self.assertFalse(cb3.supports(GET_OPERATIONAL_MODE))
    self.assertTrue(cb3.supports(SET_USER_ROLE))
    self.assertTrue(cb3.supports(LOAD_PROGRAM))

  def test_no_gate_fails_closed(self):
    with self.assertLogs("urdashboard.dashboard.version", level="WARNING"):
      self.assertFalse(is_supported(None, LOAD_PROGRAM))


if __name__ == "__main__":
  unittest.main()
