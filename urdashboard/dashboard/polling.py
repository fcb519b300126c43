import logging
import time

from urdashboard.dashboard.engine import RequestResponseEngine
from urdashboard.dashboard.matchers import ResponseMatcher

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1  # seconds between two status queries

# Each trigger of `issue_then_poll` gets this long to show its effect before it is sent again.
RETRY_EVERY_SECOND = 1.0


class PollRetryEngine:
  """Turns asynchronous controller state changes into blocking boolean outcomes."""

  def __init__(self, engine: RequestResponseEngine, interval: float = POLL_INTERVAL):
    self.engine = engine
    self.interval = interval

  def poll_until(self, command: str, expected: ResponseMatcher, timeout: float) -> bool:
    """Send `command` every `interval` seconds until the reply matches `expected`.

    The deadline is counted in attempts: after n unsuccessful queries n * interval seconds are
    considered elapsed. A timeout of zero or less sends nothing.

    Returns:
      True as soon as a reply matches, False when the deadline is reached. Not reaching the
      state is not an error.
    """
    attempts = 0
    response = None
    while attempts * self.interval < timeout:
      response = self.engine.exchange(command)
      attempts += 1
      if expected.matches(response):
        return True
      if attempts * self.interval < timeout:
        time.sleep(self.interval)

    logger.info(
      "Did not get the expected %s response within %s seconds. Last response was: %r",
      expected,
      timeout,
      response,
    )
    return False

  def issue_then_poll(
    self,
    trigger: str,
    trigger_expected: ResponseMatcher,
    status_query: str,
    status_expected: ResponseMatcher,
    max_attempts: int,
  ) -> bool:
    """Send `trigger`, then poll `status_query` for one second; repeat up to `max_attempts` times.

    The controller may silently ignore a trigger in some states, so it is resent once per second
    until the status is observed.

    Raises:
      ProtocolError: the trigger itself was answered unexpectedly. This is not retried.
    """
    for attempt in range(max_attempts):
      self.engine.expect(trigger, trigger_expected)
      if self.poll_until(status_query, status_expected, RETRY_EVERY_SECOND):
        return True
      logger.debug(
        "%s not observed after trigger %d/%d", status_expected, attempt + 1, max_attempts
      )
    return False
