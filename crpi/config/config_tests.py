import json
import tempfile
import unittest
from pathlib import Path

from crpi import load_config
from crpi.config import get_config_file
from crpi.config.config import Config
from crpi.config.formats import ConfigLoader, ConfigSaver, MultiLoader
from crpi.config.formats.ini_config import IniLoader, IniSaver
from crpi.config.formats.json_config import JsonLoader, JsonSaver
from crpi.config.io.file import FileReader, FileWriter


class ConfigTests(unittest.TestCase):
  """ Tests for crpi.config """

  def run_file_reader_writer_test(
    self,
    format_loader: ConfigLoader,
    format_saver: ConfigSaver,
    write_to: Path,
    should_be: Config,
  ):
    writer = FileWriter(format_saver=format_saver)
    writer.write(write_to, should_be)
    reader = FileReader(format_loader=format_loader)
    cfg = reader.read(write_to)
    self.assertEqual(cfg, should_be)

  def test_file_reader_writer(self):
    tmp_path = Path(tempfile.mkdtemp())
    fake_config = Config(
      logging=Config.Logging(log_dir=tmp_path / "logs"),
      gripper=Config.Gripper(profile="pinch", keepalive_interval=0.5, timeout=2.0),
    )
    cases = (
      (IniLoader(), IniSaver(), "fake_config.ini"),
      (JsonLoader(), JsonSaver(), "fake_config.json"),
    )
    for rdr, wr, fp in cases:
      self.run_file_reader_writer_test(rdr, wr, tmp_path / fp, fake_config)

  def test_multi_loader_falls_back_to_json(self):
    tmp_path = Path(tempfile.mkdtemp())
    path = tmp_path / "crpi.json"
    with open(path, "w", encoding="utf-8") as f:
      json.dump({"logging": {"level": "DEBUG"}, "gripper": {"profile": "wide"}}, f)
    cfg = FileReader(format_loader=MultiLoader([IniLoader(), JsonLoader()])).read(path)
    self.assertEqual(cfg.gripper.profile, "wide")
    self.assertIsNone(cfg.logging.log_dir)

  def test_multi_loader_rejects_garbage(self):
    tmp_path = Path(tempfile.mkdtemp())
    path = tmp_path / "crpi.ini"
    path.write_text("this is not a config", encoding="utf-8")
    with self.assertRaises(ValueError):
      FileReader(format_loader=MultiLoader([IniLoader(), JsonLoader()])).read(path)

  def test_get_config_file_searches_parents(self):
    tmp_path = Path(tempfile.mkdtemp())
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    FileWriter(format_saver=IniSaver()).write(tmp_path / "searched.ini", Config())
    self.assertEqual(get_config_file("searched", cur_dir=nested), tmp_path / "searched.ini")

  def test_load_config_creates_default(self):
    cwd = Path.cwd()
    test_path = cwd / "test_config.ini"
    if test_path.exists():
      test_path.unlink()
    self.assertFalse(test_path.exists())
    cfg = load_config("test_config", create_default=True, create_module_level=False)
    self.assertTrue(test_path.exists())
    self.assertEqual(cfg, Config())

    test_path.unlink()
