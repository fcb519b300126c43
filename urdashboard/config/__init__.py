"""Reading and writing the urdashboard config file.

The current directory and all of its parents are searched for `urdashboard.ini` or
`urdashboard.json`. Both hold a `[logging]` and a `[dashboard]` section. If no file is found and
a default is requested, one is written to the project directory containing the .git directory,
or to the current directory if there is none.
"""

import configparser
import json
from pathlib import Path
from typing import Optional, Union

from urdashboard.config.config import Config

EXTENSIONS = ("ini", "json")


def _read_ini(path: Path) -> dict:
  parser = configparser.ConfigParser()
  with open(path, "r", encoding="utf-8") as f:
    parser.read_file(f)
  return {section: dict(parser.items(section)) for section in parser.sections()}


def _read_json(path: Path) -> dict:
  with open(path, "r", encoding="utf-8") as f:
    data = json.load(f)
  if not isinstance(data, dict):
    raise ValueError(f"Config file {path} does not hold a JSON object")
  return data


def _write_ini(path: Path, cfg: Config):
  parser = configparser.ConfigParser()
  for section, values in cfg.as_dict.items():
    parser[section] = {k: str(v) for k, v in values.items() if v is not None}
  with open(path, "w", encoding="utf-8") as f:
    parser.write(f)


def _write_json(path: Path, cfg: Config):
  with open(path, "w", encoding="utf-8") as f:
    json.dump(cfg.as_dict, f, indent=2)


def _extension(path: Path) -> str:
  ext = path.suffix.lstrip(".").lower()
  if ext not in EXTENSIONS:
    raise ValueError(f"Unsupported config file extension: {path.suffix!r}")
  return ext


def read_config(path: Union[str, Path]) -> Config:
  """Read a Config from an INI or JSON file.

  Raises:
    ValueError: if the extension is unknown, the file cannot be parsed, or a value is out of
      range (for example a port outside 1-65535 or a non-positive timeout).
  """
  path = Path(path)
  ext = _extension(path)
  try:
    data = _read_ini(path) if ext == "ini" else _read_json(path)
  except (configparser.Error, json.JSONDecodeError) as e:
    raise ValueError(f"Could not parse config file {path}: {e}") from e
  try:
    return Config.from_dict(data)
  except ValueError as e:
    raise ValueError(f"Invalid config file {path}: {e}") from e


def write_config(path: Union[str, Path], cfg: Config):
  path = Path(path)
  if _extension(path) == "ini":
    _write_ini(path, cfg)
  else:
    _write_json(path, cfg)


def get_config_file(base_name: str, cur_dir: Optional[Union[str, Path]] = None) -> Optional[Path]:
  """Find `base_name.ini` or `base_name.json` in `cur_dir` (default: cwd) or any parent."""
  cdir = Path(cur_dir) if cur_dir is not None else Path.cwd()
  for directory in (cdir, *cdir.parents):
    for ext in EXTENSIONS:
      candidate = directory / f"{base_name}.{ext}"
      if candidate.exists():
        return candidate
  return None


def get_dir_to_create_config_file_in() -> Path:
  """The closest parent holding a .git directory, or the current directory."""
  cur_dir = Path.cwd()
  for parent in cur_dir.parents:
    if (parent / ".git").exists():
      return parent
  return cur_dir


def load_config(
  base_file_name: str, create_default: bool = False, create_module_level: bool = True
) -> Config:
  """Load a Config object from a file.

  Args:
    base_file_name: The base file name to load, without extension.
    create_default: Whether to write a default INI file if none exists.
    create_module_level: Whether to create the default file at the project root instead of the
      current directory.
  """
  config_path = get_config_file(base_file_name)
  if config_path is None:
    if not create_default:
      return Config()
    create_dir = get_dir_to_create_config_file_in() if create_module_level else Path.cwd()
    config_path = create_dir / f"{base_file_name}.{EXTENSIONS[0]}"
    write_config(config_path, Config())

  return read_config(config_path)
