from urdashboard.dashboard.backend import DashboardBackend, URDashboardBackend
from urdashboard.dashboard.chatterbox import DashboardChatterboxBackend
from urdashboard.dashboard.commands import CATALOG, CommandSpec, StatusWait
from urdashboard.dashboard.dashboard import Dashboard
from urdashboard.dashboard.engine import RequestResponseEngine
from urdashboard.dashboard.errors import (
  DashboardConnectionError,
  DashboardError,
  DashboardTimeoutError,
  ProtocolError,
)
from urdashboard.dashboard.matchers import (
  AllOf,
  Anything,
  Contains,
  Exactly,
  Not,
  Pattern,
  ResponseMatcher,
  StartsWith,
)
from urdashboard.dashboard.polling import PollRetryEngine
from urdashboard.dashboard.result import CommandResult, Status
from urdashboard.dashboard.simulator import DashboardSimulator
from urdashboard.dashboard.version import (
  UNSUPPORTED,
  HardwareVariant,
  SoftwareVersion,
  VersionGate,
)
