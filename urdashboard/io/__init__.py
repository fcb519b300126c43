from typing import Optional

from urdashboard.io.capture import (
  CaptureReader,
  capturer,
  get_capture_or_validation_active,
  start_capture,
  stop_capture,
)
from urdashboard.io.errors import ValidationError
from urdashboard.io.io import IOBase
from urdashboard.io.socket import ConnectionState, Socket, SocketValidator
from urdashboard.machines.backend import MachineBackend

cr: Optional[CaptureReader] = None


def validate(capture_file: str):
  """Start validation against a capture file.

  Every live backend that talks through a `Socket` gets it replaced by a `SocketValidator` that
  replays the capture. Create the backends before calling this, and call `setup` after.

  Args:
    capture_file: path to the capture file. Generate with start_capture.
  """

  if capturer.capture_active:
    raise RuntimeError("Cannot validate while capture is active")

  global cr
  cr = CaptureReader(path=capture_file)

  def _replace_io(obj) -> bool:
    if not hasattr(obj, "io"):
      return False
    if obj.io.__class__ is Socket:
      obj.io = SocketValidator(**obj.io.serialize(), cr=cr)
    elif isinstance(obj.io, SocketValidator):
      obj.io.cr = cr
    else:
      return False
    return True

  for machine_backend in MachineBackend.get_all_instances():
    if hasattr(machine_backend, "io") and not _replace_io(machine_backend):
      raise RuntimeError(f"Backend {machine_backend} not supported for validation")

  cr.start()


def end_validation():
  if cr is None:
    raise RuntimeError("Validation not started")
  cr.done()
