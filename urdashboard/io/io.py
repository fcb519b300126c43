from abc import ABC, abstractmethod


class IOBase(ABC):
  @abstractmethod
  def write(self, data: bytes, *args, **kwargs):
    pass

  @abstractmethod
  def read(self, *args, **kwargs) -> bytes:
    pass

  def serialize(self):
    return {}
