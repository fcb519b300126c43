import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from urdashboard.__version__ import DASHBOARD_SERVER_PORT

LOG_FROM_STRING = {
  "IO": 5,
  "DEBUG": logging.DEBUG,
  "INFO": logging.INFO,
  "WARNING": logging.WARNING,
  "ERROR": logging.ERROR,
  "CRITICAL": logging.CRITICAL,
}

LOG_TO_STRING = {v: k for k, v in LOG_FROM_STRING.items()}


@dataclass
class Config:
  """The configuration object for urdashboard."""

  @dataclass
  class Logging:
    """The logging configuration."""

    level: int = logging.INFO
    log_dir: Optional[Path] = None

  @dataclass
  class Dashboard:
    """Connection defaults for the dashboard server.

    `read_timeout` is the per-exchange timeout in seconds. Long running diagnostic commands
    override it for the duration of a single exchange.
    """

    port: int = DASHBOARD_SERVER_PORT
    read_timeout: float = 1.0
    connect_timeout: float = 5.0

    def __post_init__(self):
      if not 0 < self.port < 65536:
        raise ValueError(f"Dashboard port must be between 1 and 65535, got {self.port}")
      for name in ("read_timeout", "connect_timeout"):
        if getattr(self, name) <= 0:
          raise ValueError(f"Dashboard {name} must be positive, got {getattr(self, name)}")

  logging: Logging = field(default_factory=Logging)
  dashboard: Dashboard = field(default_factory=Dashboard)

  @classmethod
  def from_dict(cls, d: dict) -> "Config":
    logging_data = d.get("logging", {})
    dashboard_data = d.get("dashboard", {})
    log_dir = logging_data.get("log_dir")
    level = logging_data.get("level", "INFO")
    if level not in LOG_FROM_STRING:
      raise ValueError(f"Unknown log level: {level!r}")
    return cls(
      logging=cls.Logging(
        level=LOG_FROM_STRING[level],
        log_dir=Path(log_dir) if log_dir is not None else None,
      ),
      dashboard=cls.Dashboard(
        port=int(dashboard_data.get("port", DASHBOARD_SERVER_PORT)),
        read_timeout=float(dashboard_data.get("read_timeout", 1.0)),
        connect_timeout=float(dashboard_data.get("connect_timeout", 5.0)),
      ),
    )

  @property
  def as_dict(self) -> dict:
    return {
      "logging": {
        "level": LOG_TO_STRING[self.logging.level],
        "log_dir": str(self.logging.log_dir) if self.logging.log_dir is not None else None,
      },
      "dashboard": {
        "port": self.dashboard.port,
        "read_timeout": self.dashboard.read_timeout,
        "connect_timeout": self.dashboard.connect_timeout,
      },
    }
