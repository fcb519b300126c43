import logging
from typing import Optional, Union

from urdashboard.dashboard import commands
from urdashboard.dashboard.backend import DashboardBackend
from urdashboard.dashboard.commands import CATALOG, CommandSpec
from urdashboard.dashboard.errors import DashboardConnectionError, DashboardError
from urdashboard.dashboard.matchers import Pattern, ResponseMatcher
from urdashboard.dashboard.polling import RETRY_EVERY_SECOND
from urdashboard.dashboard.result import CommandResult, Status
from urdashboard.dashboard.version import (
  HardwareVariant,
  SoftwareVersion,
  VersionGate,
  is_supported,
)
from urdashboard.machines.machine import Machine

logger = logging.getLogger(__name__)

Expected = Union[ResponseMatcher, str]


def _matcher(expected: Expected) -> ResponseMatcher:
  return Pattern(expected) if isinstance(expected, str) else expected


class Dashboard(Machine):
  """Frontend for the dashboard server of a Universal Robots controller.

  Every command of the catalog can be run through `invoke` (raising on transport and protocol
  failures) or `try_invoke` (never raising), and has a named method. Commands the connected
  controller's software does not offer are refused locally, without sending anything, and come
  back as `Status.UNSUPPORTED`, or False / None from the named methods.

  The client may be shared between threads: each request/reply exchange is atomic.
  """

  def __init__(self, backend: DashboardBackend):
    super().__init__(backend=backend)
    self.backend: DashboardBackend = backend  # fix type

  @property
  def gate(self) -> Optional[VersionGate]:
    return self.backend.gate

  @property
  def software_version(self) -> Optional[SoftwareVersion]:
    """Software version of the connected controller, None when not connected."""
    gate = self.gate
    return gate.version if gate is not None else None

  @property
  def variant(self) -> Optional[HardwareVariant]:
    gate = self.gate
    return gate.variant if gate is not None else None

  def invoke(
    self,
    spec: Union[CommandSpec, str],
    attempts: Optional[int] = None,
    wait_timeout: Optional[float] = None,
    **args: str,
  ) -> CommandResult:
    """Run one catalog command.

    Args:
      spec: the catalog entry, or its name.
      attempts: how often a resent command (power on) is sent at most. Default 1200.
      wait_timeout: seconds to wait for the status change a command causes. Default 30.
      args: values for the command's arguments, for example `program="demo.urp"`.

    Returns:
      `Status.OK` on success, `Status.REJECTED` when the controller did not reach the expected
      state or answered a query negatively, `Status.UNSUPPORTED` when the controller software does
      not offer the command.

    Raises:
      TypeError: wrong arguments for the command.
      ValueError: an argument contains a line break.
      DashboardConnectionError: not connected, or the connection failed.
      DashboardTimeoutError: the server did not answer in time. The connection is closed.
      ProtocolError: the server answered unexpectedly.
    """
    if isinstance(spec, str):
      spec = CATALOG[spec]
    spec.format_command(**args)

    # One-shot commands hold the lock from the gate check through the exchange. Commands that
    # poll release it after the check so other threads can interleave between polls.
    with self.backend.lock:
      if not self.backend.connected:
        raise DashboardConnectionError(
          f"Not connected to the dashboard server, cannot run {spec.name}. Call setup() first."
        )
      if spec.gated:
        gate = self.backend.gate
        if not is_supported(gate, spec):
          if gate is not None:
            logger.info(
              "%s is not supported on %s software %s, requires %s.",
              spec.name,
              gate.variant.value,
              gate.version,
              gate.required(spec.min_e_series, spec.min_cb3),
            )
          return CommandResult(spec.name, Status.UNSUPPORTED)
      if spec.wait_for is None:
        return self.backend.execute(spec, args, attempts=attempts, wait_timeout=wait_timeout)

    return self.backend.execute(spec, args, attempts=attempts, wait_timeout=wait_timeout)

  def try_invoke(
    self,
    spec: Union[CommandSpec, str],
    attempts: Optional[int] = None,
    wait_timeout: Optional[float] = None,
    **args: str,
  ) -> CommandResult:
    """Like `invoke`, but dashboard errors are reported in the result instead of raised."""
    name = spec if isinstance(spec, str) else spec.name
    try:
      return self.invoke(spec, attempts=attempts, wait_timeout=wait_timeout, **args)
    except DashboardError as e:
      return CommandResult.from_error(name, e)

  def _get(self, spec: CommandSpec, **args: str) -> Optional[str]:
    result = self.invoke(spec, **args)
    return result.response if result else None

  # raw requests

  def send_and_receive(self, command: str, read_timeout: Optional[float] = None) -> str:
    """Send any request line and return the reply line, without checks."""
    return self.backend.send_and_receive(command, read_timeout=read_timeout)

  def send_request(
    self, command: str, expected: Expected, read_timeout: Optional[float] = None
  ) -> bool:
    """Send a request line and require the reply to match `expected` (a regex if a string)."""
    return self.backend.send_request(command, _matcher(expected), read_timeout=read_timeout)

  def send_request_string(
    self, command: str, expected: Expected, read_timeout: Optional[float] = None
  ) -> str:
    return self.backend.send_request_string(command, _matcher(expected), read_timeout=read_timeout)

  def wait_for_reply(
    self, command: str, expected: Expected, timeout: float = commands.DEFAULT_WAIT_TIMEOUT
  ) -> bool:
    """Poll `command` every 100 ms until the reply matches `expected` or `timeout` seconds pass."""
    return self.backend.wait_for_reply(command, _matcher(expected), timeout)

  def retry_command(
    self,
    trigger: str,
    trigger_expected: Expected,
    status_query: str,
    status_expected: Expected,
    max_attempts: int,
  ) -> bool:
    """Send `trigger`, then poll `status_query` for a second, up to `max_attempts` times."""
    logger.debug(
      "Sending %s up to %d times, %s seconds apart", trigger, max_attempts, RETRY_EVERY_SECOND
    )
    return self.backend.retry_command(
      trigger,
      _matcher(trigger_expected),
      status_query,
      _matcher(status_expected),
      max_attempts,
    )

  # power and brakes

  def power_off(self, timeout: Optional[float] = None) -> bool:
    """Power off the robot arm and wait until the robot mode is POWER_OFF."""
    return bool(self.invoke(commands.POWER_OFF, wait_timeout=timeout))

  def power_on(self, attempts: int = commands.DEFAULT_POWER_ON_ATTEMPTS) -> bool:
    """Power on the robot arm and wait until the robot mode is IDLE.

    The controller ignores "power on" in some states, so the request is resent every second, at
    most `attempts` times.
    """
    return bool(self.invoke(commands.POWER_ON, attempts=attempts))

  def brake_release(self, timeout: Optional[float] = None) -> bool:
    """Release the brakes and wait until the robot mode is RUNNING."""
    return bool(self.invoke(commands.BRAKE_RELEASE, wait_timeout=timeout))

  # programs and installations

  def load_program(self, program: str, timeout: Optional[float] = None) -> bool:
    """Load a program file and wait until the controller reports it as loaded and stopped.

    Args:
      program: path of the program on the controller, e.g. "demo.urp".
      timeout: seconds to wait for the program state.
    """
    return bool(self.invoke(commands.LOAD_PROGRAM, wait_timeout=timeout, program=program))

  def load_installation(self, installation: str) -> bool:
    return bool(self.invoke(commands.LOAD_INSTALLATION, installation=installation))

  def play(self, timeout: Optional[float] = None) -> bool:
    """Start the loaded program and wait until it is playing."""
    return bool(self.invoke(commands.PLAY, wait_timeout=timeout))

  def pause(self, timeout: Optional[float] = None) -> bool:
    """Pause the running program and wait until it is paused."""
    return bool(self.invoke(commands.PAUSE, wait_timeout=timeout))

  def stop_program(self, timeout: Optional[float] = None) -> bool:
    """Stop the running program and wait until it is stopped.

    Not to be confused with `stop`, which disconnects from the dashboard server.
    """
    return bool(self.invoke(commands.STOP, wait_timeout=timeout))

  def running(self) -> bool:
    """Whether a program is running."""
    return bool(self.invoke(commands.RUNNING))

  def is_program_saved(self) -> bool:
    return bool(self.invoke(commands.IS_PROGRAM_SAVED))

  def get_loaded_program(self) -> Optional[str]:
    return self._get(commands.GET_LOADED_PROGRAM)

  def program_state(self) -> Optional[str]:
    """State and name of the loaded program, e.g. "STOPPED demo.urp"."""
    return self._get(commands.PROGRAM_STATE)

  # popups and log

  def close_popup(self) -> bool:
    return bool(self.invoke(commands.CLOSE_POPUP))

  def close_safety_popup(self) -> bool:
    return bool(self.invoke(commands.CLOSE_SAFETY_POPUP))

  def popup(self, text: str) -> bool:
    """Show a popup with `text` on the teach pendant."""
    return bool(self.invoke(commands.POPUP, text=text))

  def add_to_log(self, message: str) -> bool:
    """Add `message` to the controller's log."""
    return bool(self.invoke(commands.ADD_TO_LOG, message=message))

  # safety

  def restart_safety(self, timeout: Optional[float] = None) -> bool:
    """Restart the safety system after a safety fault. The robot ends up powered off."""
    return bool(self.invoke(commands.RESTART_SAFETY, wait_timeout=timeout))

  def unlock_protective_stop(self) -> bool:
    return bool(self.invoke(commands.UNLOCK_PROTECTIVE_STOP))

  def safety_mode(self) -> Optional[str]:
    return self._get(commands.SAFETY_MODE)

  def safety_status(self) -> Optional[str]:
    return self._get(commands.SAFETY_STATUS)

  # session and system

  def shutdown(self) -> bool:
    """Shut down the controller. The connection is lost shortly after."""
    return bool(self.invoke(commands.SHUTDOWN))

  def quit(self) -> bool:
    """Ask the server to close the connection."""
    return bool(self.invoke(commands.QUIT))

  def polyscope_version(self) -> Optional[str]:
    """Query the software version. Also updates `software_version`."""
    return self._get(commands.POLYSCOPE_VERSION)

  def get_robot_model(self) -> Optional[str]:
    return self._get(commands.GET_ROBOT_MODEL)

  def get_serial_number(self) -> Optional[str]:
    return self._get(commands.GET_SERIAL_NUMBER)

  def robot_mode(self) -> Optional[str]:
    """The robot mode line, e.g. "Robotmode: IDLE"."""
    return self._get(commands.ROBOT_MODE)

  def is_in_remote_control(self) -> bool:
    return bool(self.invoke(commands.IS_IN_REMOTE_CONTROL))

  # operational mode and user role

  def get_operational_mode(self) -> Optional[str]:
    return self._get(commands.GET_OPERATIONAL_MODE)

  def set_operational_mode(self, mode: str) -> bool:
    """Set the operational mode ("manual" or "automatic") and take control of it."""
    return bool(self.invoke(commands.SET_OPERATIONAL_MODE, mode=mode))

  def clear_operational_mode(self) -> bool:
    return bool(self.invoke(commands.CLEAR_OPERATIONAL_MODE))

  def set_user_role(self, role: str) -> bool:
    """Set the user role on CB3 controllers, e.g. "programmer" or "operator"."""
    return bool(self.invoke(commands.SET_USER_ROLE, role=role))

  def get_user_role(self) -> Optional[str]:
    return self._get(commands.GET_USER_ROLE)

  # diagnostics

  def generate_flight_report(self, report_type: str = "system") -> bool:
    """Generate a flight report on the controller. Can take up to three minutes.

    Args:
      report_type: "controller", "software" or "system".

    Returns:
      True once the controller reports the generated report id.
    """
    return bool(self.invoke(commands.GENERATE_FLIGHT_REPORT, report_type=report_type))

  def generate_support_file(self, dir_path: str) -> bool:
    """Generate a support file in `dir_path` on the controller. Can take up to ten minutes."""
    return bool(self.invoke(commands.GENERATE_SUPPORT_FILE, dir_path=dir_path))
