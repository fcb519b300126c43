"""Controller software versions and the version gate.

Thresholds in the command catalog are version strings per hardware variant ("5.6.0" for e-Series,
"3.12" for CB3). A command is supported when the connected controller's version is greater than
or equal to the threshold for its variant.
"""

import enum
import logging
import re
from typing import NamedTuple, Optional, Union

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"^\s*(\d+)((?:\.\d+){0,3})")


class HardwareVariant(enum.Enum):
  E_SERIES = "e-Series"
  CB3 = "CB3"


class SoftwareVersion(NamedTuple):
  """A controller software version. Compares lexicographically, so (3, 9) < (3, 10)."""

  major: int
  minor: int = 0
  patch: int = 0
  build: int = 0

  @classmethod
  def parse(cls, text: str) -> "SoftwareVersion":
    """Parse a dotted version string. Missing components are 0, trailing text is ignored.

    >>> SoftwareVersion.parse("5.9.4.1234")
    SoftwareVersion(major=5, minor=9, patch=4, build=1234)
    >>> SoftwareVersion.parse("3.13")
    SoftwareVersion(major=3, minor=13, patch=0, build=0)
    """
    match = _VERSION_RE.match(text)
    if match is None:
      raise ValueError(f"Cannot parse software version from {text!r}")
    parts = [int(match.group(1))]
    parts.extend(int(p) for p in match.group(2).split(".")[1:])
    return cls(*parts)

  @property
  def variant(self) -> HardwareVariant:
    return HardwareVariant.E_SERIES if self.major >= 5 else HardwareVariant.CB3

  def __str__(self) -> str:
    return ".".join(str(part) for part in self)


class _Unsupported:
  """Threshold marker for commands a hardware variant does not offer at all."""

  def __repr__(self) -> str:
    return "UNSUPPORTED"


UNSUPPORTED = _Unsupported()

Threshold = Union[SoftwareVersion, _Unsupported]


def threshold(text: Optional[str]) -> Threshold:
  """Build a catalog threshold from a version string, or UNSUPPORTED for None."""
  if text is None:
    return UNSUPPORTED
  return SoftwareVersion.parse(text)


def extract_version(response: str) -> str:
  """Cut the version number out of a `PolyscopeVersion` reply.

  The part before the first space is dropped, and so is everything from the following " (" on:
  "URSoftware 5.9.4.1234 (Jul 19 2021)" gives "5.9.4.1234".
  """
  _, sep, rest = response.partition(" ")
  if not sep:
    raise ValueError(f"No version in {response!r}")
  return rest.split(" (", 1)[0].strip()


class VersionGate:
  """Immutable view of the connected controller: its version and derived hardware variant.

  Produced once per connection from the version query and consulted before every gated command.
  """

  def __init__(self, version: SoftwareVersion):
    self._version = version

  @classmethod
  def from_response(cls, response: str) -> "VersionGate":
    """Record the version reported by `PolyscopeVersion`."""
    return cls(SoftwareVersion.parse(extract_version(response)))

  @property
  def version(self) -> SoftwareVersion:
    return self._version

  @property
  def variant(self) -> HardwareVariant:
    return self._version.variant

  def required(self, e_series: Threshold, cb3: Threshold) -> Threshold:
    return e_series if self.variant == HardwareVariant.E_SERIES else cb3

  def is_supported(self, e_series: Threshold, cb3: Threshold) -> bool:
    required = self.required(e_series, cb3)
    if not isinstance(required, SoftwareVersion):
      return False
    return self._version >= required

  def supports(self, spec) -> bool:
    """Whether the connected controller offers the command described by `spec`."""
    return self.is_supported(spec.min_e_series, spec.min_cb3)

  def __repr__(self) -> str:
    return f"VersionGate(version={self._version}, variant={self.variant.value})"


def is_supported(gate: Optional[VersionGate], spec) -> bool:
  """Gate check for `spec` that fails closed when no version has been recorded yet."""
  if gate is None:
    logger.warning("No controller version recorded, refusing %s.", spec.name)
    return False
  return gate.supports(spec)
