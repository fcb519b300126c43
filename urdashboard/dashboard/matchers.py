"""Structured matchers for dashboard replies.

Replies are free text, and commands only differ in how strictly the reply is checked: some must
equal a fixed string, some only start with a prefix, some must mention a caller supplied name.
Matchers may contain `{name}` placeholders that `bind` fills in with the caller's arguments.
"""

import re
from abc import ABC, abstractmethod
from typing import Tuple


class ResponseMatcher(ABC):
  """Decides whether a (trimmed) reply line is the expected one."""

  @abstractmethod
  def matches(self, response: str) -> bool:
    """Whether `response` is what this matcher expects."""

  def bind(self, **args: str) -> "ResponseMatcher":
    """Return a matcher with `{name}` placeholders replaced by `args`."""
    return self

  def __and__(self, other: "ResponseMatcher") -> "AllOf":
    return AllOf(self, other)

  def __invert__(self) -> "Not":
    return Not(self)

  def __eq__(self, other) -> bool:
    return type(self) is type(other) and self.__dict__ == other.__dict__

  def __hash__(self) -> int:
    return hash((type(self), tuple(sorted(self.__dict__.items()))))

  def __repr__(self) -> str:
    return str(self)


class _TextMatcher(ResponseMatcher):
  def __init__(self, text: str):
    self.text = text

  def bind(self, **args: str) -> "ResponseMatcher":
    if not args:
      return self
    return type(self)(self.text.format(**args))


class Exactly(_TextMatcher):
  def matches(self, response: str) -> bool:
    return response == self.text

  def __str__(self) -> str:
    return repr(self.text)


class StartsWith(_TextMatcher):
  def matches(self, response: str) -> bool:
    return response.startswith(self.text)

  def __str__(self) -> str:
    return f"{self.text!r}..."


class Contains(_TextMatcher):
  def matches(self, response: str) -> bool:
    return self.text in response

  def __str__(self) -> str:
    return f"...{self.text!r}..."


class Pattern(ResponseMatcher):
  """Regular expression that must match the whole reply. Compiled once.

  Bound arguments are escaped, so file names with dots or brackets match literally.
  """

  def __init__(self, pattern: str):
    self.pattern = pattern
    self._regex = re.compile(pattern)

  def matches(self, response: str) -> bool:
    return self._regex.fullmatch(response) is not None

  def bind(self, **args: str) -> "ResponseMatcher":
    if not args:
      return self
    return Pattern(self.pattern.format(**{k: re.escape(v) for k, v in args.items()}))

  def __eq__(self, other) -> bool:
    return isinstance(other, Pattern) and other.pattern == self.pattern

  def __hash__(self) -> int:
    return hash((Pattern, self.pattern))

  def __str__(self) -> str:
    return f"/{self.pattern}/"


class Anything(ResponseMatcher):
  def matches(self, response: str) -> bool:
    return True

  def __str__(self) -> str:
    return "anything"


class Not(ResponseMatcher):
  def __init__(self, matcher: ResponseMatcher):
    self.matcher = matcher

  def matches(self, response: str) -> bool:
    return not self.matcher.matches(response)

  def bind(self, **args: str) -> "ResponseMatcher":
    return Not(self.matcher.bind(**args))

  def __str__(self) -> str:
    return f"not {self.matcher}"


class AllOf(ResponseMatcher):
  def __init__(self, *matchers: ResponseMatcher):
    flat = []
    for matcher in matchers:
      flat.extend(matcher.matchers if isinstance(matcher, AllOf) else (matcher,))
    self.matchers: Tuple[ResponseMatcher, ...] = tuple(flat)

  def matches(self, response: str) -> bool:
    return all(matcher.matches(response) for matcher in self.matchers)

  def bind(self, **args: str) -> "ResponseMatcher":
    return AllOf(*(matcher.bind(**args) for matcher in self.matchers))

  def __str__(self) -> str:
    return " and ".join(str(matcher) for matcher in self.matchers)


NOT_UNDERSTOOD = StartsWith("could not understand")

