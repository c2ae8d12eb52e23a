from .instance_spec import (
    SecretRefSchema,
    ChannelSpecSchema,
    MemorySpecSchema,
    InstanceSpecSchema,
)
from .instance_status import ChannelStatusSchema, InstanceStatusSchema

__all__ = [
    "SecretRefSchema",
    "ChannelSpecSchema",
    "MemorySpecSchema",
    "InstanceSpecSchema",
    "ChannelStatusSchema",
    "InstanceStatusSchema",
]
