from pathlib import Path
import logging
import os
import tempfile
import unittest

from urdashboard.config import get_config_file, load_config, read_config, write_config
from urdashboard.config.config import Config


class ConfigTests(unittest.TestCase):
  """ Tests for urdashboard.config """

  def setUp(self):
    self.tmp_path = Path(tempfile.mkdtemp())

  def test_read_write(self):
    fake_config = Config(
      logging=Config.Logging(
        level=logging.DEBUG,
        log_dir=self.tmp_path / "logs",
      ),
      dashboard=Config.Dashboard(
        port=30000,
        read_timeout=2.5,
      ),
    )
    for fp in ("fake_config.ini", "fake_config.json"):
      write_config(self.tmp_path / fp, fake_config)
      self.assertEqual(read_config(self.tmp_path / fp), fake_config)

  def test_defaults(self):
    cfg = Config()
    self.assertEqual(cfg.dashboard.port, 29999)
    self.assertEqual(cfg.dashboard.read_timeout, 1.0)
    self.assertEqual(cfg.logging.level, logging.INFO)

  def test_from_dict_partial(self):
    cfg = Config.from_dict({"logging": {"level": "IO"}})
    self.assertEqual(cfg.logging.level, 5)
    self.assertEqual(cfg.dashboard, Config.Dashboard())

  def test_hand_written_ini(self):
    path = self.tmp_path / "urdashboard.ini"
    path.write_text("[dashboard]\nport = 1234\nconnect_timeout = 0.5\n", encoding="utf-8")
    cfg = read_config(path)
    self.assertEqual(cfg.dashboard.port, 1234)
    self.assertEqual(cfg.dashboard.connect_timeout, 0.5)
    self.assertEqual(cfg.logging, Config.Logging())

  def test_invalid_port(self):
    for port in (0, 70000):
      with self.assertRaises(ValueError):
        Config.Dashboard(port=port)
    path = self.tmp_path / "urdashboard.json"
    path.write_text('{"dashboard": {"port": 0}}', encoding="utf-8")
    with self.assertRaises(ValueError) as ctx:
      read_config(path)
    self.assertIn("port", str(ctx.exception))

  def test_invalid_timeout(self):
    path = self.tmp_path / "urdashboard.ini"
    path.write_text("[dashboard]\nread_timeout = -1\n", encoding="utf-8")
    with self.assertRaises(ValueError) as ctx:
      read_config(path)
    self.assertIn("read_timeout", str(ctx.exception))
    with self.assertRaises(ValueError):
      Config.Dashboard(connect_timeout=0)

  def test_invalid_level(self):
    with self.assertRaises(ValueError):
      Config.from_dict({"logging": {"level": "LOUD"}})

  def test_unparseable_file(self):
    path = self.tmp_path / "urdashboard.json"
    path.write_text("not a config", encoding="utf-8")
    with self.assertRaises(ValueError):
      read_config(path)

  def test_unknown_extension(self):
    with self.assertRaises(ValueError):
      write_config(self.tmp_path / "urdashboard.yaml", Config())
    with self.assertRaises(ValueError):
      read_config(self.tmp_path / "urdashboard.yaml")

  def test_get_config_file_searches_parents(self):
    nested = self.tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    (self.tmp_path / "search_me.json").write_text("{}", encoding="utf-8")
    self.assertEqual(
      get_config_file("search_me", cur_dir=nested), self.tmp_path / "search_me.json"
    )

  def test_load_config_creates_default(self):
    old_cwd = Path.cwd()
    os.chdir(self.tmp_path)
    try:
      test_path = Path.cwd() / "test_config.ini"
      assert not test_path.exists()
      cfg = load_config("test_config", create_default=True,
                        create_module_level=False)
      assert test_path.exists()
      assert cfg == Config()
    finally:
      os.chdir(old_cwd)
