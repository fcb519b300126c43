class ValidationError(Exception):
  """Raised when IO does not match a captured session."""
