from .store import ResourceStore
from .instance import SympoziumInstance
from .channel import ChannelResource
from .memory import MemoryStore

__all__ = ["ResourceStore", "SympoziumInstance", "ChannelResource", "MemoryStore"]
