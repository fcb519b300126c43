"""The dashboard command catalog.

Each command is described once, as data: what is sent, what the reply must look like, which
controller versions offer it, and what has to be observed afterwards for the command to count as
done. `Dashboard.invoke` runs any of them; the named methods on `Dashboard` are thin wrappers.

Documentation of the dashboard server:
  - https://www.universal-robots.com/articles/ur/dashboard-server-cb-series-port-29999/
  - https://www.universal-robots.com/articles/ur/dashboard-server-e-series-port-29999/
"""

import string
from dataclasses import dataclass, field
from typing import Dict, Optional

from urdashboard.dashboard.engine import check_single_line
from urdashboard.dashboard.matchers import (
  NOT_UNDERSTOOD,
  Contains,
  Exactly,
  Not,
  ResponseMatcher,
  StartsWith,
)
from urdashboard.dashboard.version import UNSUPPORTED, Threshold, threshold

DEFAULT_WAIT_TIMEOUT = 30.0  # seconds to wait for a status after a command was accepted
DEFAULT_POWER_ON_ATTEMPTS = 1200


@dataclass(frozen=True)
class StatusWait:
  """A status query polled after a command was accepted, until its reply matches `expected`."""

  query: str
  expected: ResponseMatcher
  timeout: float = DEFAULT_WAIT_TIMEOUT

  def bind(self, **args: str) -> "StatusWait":
    return StatusWait(self.query, self.expected.bind(**args), self.timeout)


@dataclass(frozen=True)
class CommandSpec:
  """Immutable description of one dashboard command.

  Attributes:
    name: python name of the operation.
    command: wire command, may contain `{arg}` placeholders for caller supplied tokens.
    expected: what the reply must look like. May reference the same placeholders.
    min_e_series: first e-Series software version offering the command, or UNSUPPORTED.
    min_cb3: first CB3 software version offering the command, or UNSUPPORTED.
    wait_for: status to poll after the command was accepted.
    retry: resend the command once per second while polling `wait_for`.
    strict: a reply not matching `expected` raises ProtocolError. Non-strict commands are queries
      whose "no" answer is a normal negative result.
    returns_response: a "get" style command whose reply line is the result.
    read_timeout: read timeout for this command's exchange instead of the default.
    gated: whether the version gate applies. Only the version query itself is not gated.
    closes_connection: the server hangs up after answering.
    records_version: the reply carries the controller software version, which is recorded into the
      version gate.
    example: a typical successful reply, used by the chatterbox backend.
  """

  name: str
  command: str
  expected: ResponseMatcher
  min_e_series: Threshold
  min_cb3: Threshold
  wait_for: Optional[StatusWait] = None
  retry: bool = False
  strict: bool = True
  returns_response: bool = False
  read_timeout: Optional[float] = None
  gated: bool = True
  closes_connection: bool = False
  records_version: bool = False
  example: str = field(default="", compare=False)

  @property
  def arguments(self):
    """Names of the caller supplied arguments, in order of appearance."""
    return tuple(
      name for _, name, _, _ in string.Formatter().parse(self.command) if name is not None
    )

  def format_command(self, **args: str) -> str:
    """Fill in the caller's arguments.

    Raises:
      TypeError: an argument is missing or unknown.
      ValueError: an argument contains a line break.
    """
    expected_args = set(self.arguments)
    if set(args) != expected_args:
      raise TypeError(
        f"{self.name} takes arguments {sorted(expected_args)}, got {sorted(args)}"
      )
    for value in args.values():
      check_single_line(value)
    return self.command.format(**args)

  def supported_on(self, e_series: bool) -> bool:
    return (self.min_e_series if e_series else self.min_cb3) is not UNSUPPORTED


def _spec(name: str, command: str, expected: ResponseMatcher, e_series: Optional[str],
          cb3: Optional[str], **kwargs) -> CommandSpec:
  return CommandSpec(
    name=name,
    command=command,
    expected=expected,
    min_e_series=threshold(e_series),
    min_cb3=threshold(cb3),
    **kwargs,
  )


def _robot_mode(mode: str) -> StatusWait:
  return StatusWait("robotmode", Exactly(f"Robotmode: {mode}"))


def _program_state(expected: ResponseMatcher) -> StatusWait:
  return StatusWait("programState", expected)


# power and brakes

POWER_OFF = _spec(
  "power_off", "power off", Exactly("Powering off"), "5.0.0", "3.0",
  wait_for=_robot_mode("POWER_OFF"), example="Powering off")

POWER_ON = _spec(
  "power_on", "power on", Exactly("Powering on"), "5.0.0", "3.0",
  wait_for=_robot_mode("IDLE"), retry=True, example="Powering on")

BRAKE_RELEASE = _spec(
  "brake_release", "brake release", Exactly("Brake releasing"), "5.0.0", "3.0",
  wait_for=_robot_mode("RUNNING"), example="Brake releasing")

# programs and installations

LOAD_PROGRAM = _spec(
  "load_program", "load {program}", StartsWith("Loading program: ") & Contains("{program}"),
  "5.0.0", "1.4", wait_for=_program_state(Exactly("STOPPED {program}")),
  example="Loading program: {program}")

LOAD_INSTALLATION = _spec(
  "load_installation", "load installation {installation}",
  StartsWith("Loading installation: ") & Contains("{installation}"), "5.0.0", "3.2",
  example="Loading installation: {installation}")

PLAY = _spec(
  "play", "play", Exactly("Starting program"), "5.0.0", "1.4",
  wait_for=_program_state(StartsWith("PLAYING ")), example="Starting program")

PAUSE = _spec(
  "pause", "pause", Exactly("Pausing program"), "5.0.0", "1.4",
  wait_for=_program_state(StartsWith("PAUSED ")), example="Pausing program")

STOP = _spec(
  "stop_program", "stop", Exactly("Stopped"), "5.0.0", "1.4",
  wait_for=_program_state(StartsWith("STOPPED ")), example="Stopped")

RUNNING = _spec(
  "running", "running", Exactly("Program running: true"), "5.0.0", "1.6",
  strict=False, example="Program running: true")

IS_PROGRAM_SAVED = _spec(
  "is_program_saved", "isProgramSaved", StartsWith("true "), "5.0.0", "1.8",
  strict=False, example="true demo.urp")

GET_LOADED_PROGRAM = _spec(
  "get_loaded_program", "get loaded program", StartsWith("Loaded program: "), "5.0.0", "1.6",
  returns_response=True, example="Loaded program: /programs/demo.urp")

PROGRAM_STATE = _spec(
  "program_state", "programState", Not(NOT_UNDERSTOOD), "5.0.0", "1.8",
  strict=False, returns_response=True, example="STOPPED demo.urp")

# popups and log

CLOSE_POPUP = _spec(
  "close_popup", "close popup", Exactly("closing popup"), "5.0.0", "1.6",
  example="closing popup")

CLOSE_SAFETY_POPUP = _spec(
  "close_safety_popup", "close safety popup", Exactly("closing safety popup"), "5.0.0", "3.1",
  example="closing safety popup")

POPUP = _spec(
  "popup", "popup {text}", Exactly("showing popup"), "5.0.0", "1.6", example="showing popup")

ADD_TO_LOG = _spec(
  "add_to_log", "addToLog {message}", Exactly("Added log message"), "5.0.0", "1.8",
  example="Added log message")

# safety

RESTART_SAFETY = _spec(
  "restart_safety", "restart safety", Exactly("Restarting safety"), "5.1.0", "3.7",
  wait_for=_robot_mode("POWER_OFF"), example="Restarting safety")

UNLOCK_PROTECTIVE_STOP = _spec(
  "unlock_protective_stop", "unlock protective stop", Exactly("Protective stop releasing"),
  "5.0.0", "3.1", example="Protective stop releasing")

SAFETY_MODE = _spec(
  "safety_mode", "safetymode", StartsWith("Safetymode: "), "5.0.0", "3.0",
  returns_response=True, example="Safetymode: NORMAL")

SAFETY_STATUS = _spec(
  "safety_status", "safetystatus", StartsWith("Safetystatus: "), "5.4.0", "3.11",
  returns_response=True, example="Safetystatus: NORMAL")

# session and system

SHUTDOWN = _spec(
  "shutdown", "shutdown", Exactly("Shutting down"), "5.0.0", "1.4", example="Shutting down")

QUIT = _spec(
  "quit", "quit", Exactly("Disconnected"), "5.0.0", "1.4", closes_connection=True,
  example="Disconnected")

POLYSCOPE_VERSION = _spec(
  "polyscope_version", "PolyscopeVersion", StartsWith("URSoftware "), "0", "0",
  gated=False, returns_response=True, records_version=True,
  example="URSoftware 5.9.4.1031232 (Jul 19 2021)")

GET_ROBOT_MODEL = _spec(
  "get_robot_model", "get robot model", StartsWith("UR"), "5.6.0", "3.12",
  returns_response=True, example="UR5")

GET_SERIAL_NUMBER = _spec(
  "get_serial_number", "get serial number", StartsWith("20"), "5.6.0", "3.12",
  returns_response=True, example="20185500000")

ROBOT_MODE = _spec(
  "robot_mode", "robotmode", StartsWith("Robotmode: "), "5.0.0", "1.6",
  returns_response=True, example="Robotmode: IDLE")

IS_IN_REMOTE_CONTROL = _spec(
  "is_in_remote_control", "is in remote control", Exactly("true"), "5.6.0", None,
  strict=False, example="true")

# operational mode and user role

GET_OPERATIONAL_MODE = _spec(
  "get_operational_mode", "get operational mode", Not(NOT_UNDERSTOOD), "5.6.0", None,
  strict=False, returns_response=True, example="MANUAL")

SET_OPERATIONAL_MODE = _spec(
  "set_operational_mode", "set operational mode {mode}",
  StartsWith("Operational mode ") & Contains("{mode}"), "5.0.0", None,
  example="Operational mode '{mode}' is set")

CLEAR_OPERATIONAL_MODE = _spec(
  "clear_operational_mode", "clear operational mode",
  StartsWith("No longer controlling the operational mode. "), "5.0.0", None,
  example="No longer controlling the operational mode. Current operational mode: 'MANUAL'.")

SET_USER_ROLE = _spec(
  "set_user_role", "setUserRole {role}", StartsWith("Setting user role: "), None, "1.8",
  example="Setting user role: {role}")

GET_USER_ROLE = _spec(
  "get_user_role", "getUserRole", Not(NOT_UNDERSTOOD), None, "1.8",
  strict=False, returns_response=True, example="PROGRAMMER")

# diagnostics, these take minutes on the controller

GENERATE_FLIGHT_REPORT = _spec(
  "generate_flight_report", "generate flight report {report_type}",
  Contains("Flight Report generated with id"), "5.8.0", "3.13", read_timeout=180.0,
  example="Flight Report generated with id: 1a2b3c")

GENERATE_SUPPORT_FILE = _spec(
  "generate_support_file", "generate support file {dir_path}",
  Contains("Completed successfully"), "5.8.0", "3.13", read_timeout=600.0,
  example="Completed successfully: {dir_path}/ur_support_file.zip")


CATALOG: Dict[str, CommandSpec] = {
  spec.name: spec
  for spec in (
    POWER_OFF,
    POWER_ON,
    BRAKE_RELEASE,
    LOAD_PROGRAM,
    LOAD_INSTALLATION,
    PLAY,
    PAUSE,
    STOP,
    RUNNING,
    IS_PROGRAM_SAVED,
    GET_LOADED_PROGRAM,
    PROGRAM_STATE,
    CLOSE_POPUP,
    CLOSE_SAFETY_POPUP,
    POPUP,
    ADD_TO_LOG,
    RESTART_SAFETY,
    UNLOCK_PROTECTIVE_STOP,
    SAFETY_MODE,
    SAFETY_STATUS,
    SHUTDOWN,
    QUIT,
    POLYSCOPE_VERSION,
    GET_ROBOT_MODEL,
    GET_SERIAL_NUMBER,
    ROBOT_MODE,
    IS_IN_REMOTE_CONTROL,
    GET_OPERATIONAL_MODE,
    SET_OPERATIONAL_MODE,
    CLEAR_OPERATIONAL_MODE,
    SET_USER_ROLE,
    GET_USER_ROLE,
    GENERATE_FLIGHT_REPORT,
    GENERATE_SUPPORT_FILE,
  )
}
