from .instance_resources import InstanceResources
from .instance_spec import SecretRef, ChannelSpec, MemorySpec, InstanceSpec
from .instance_status import (
    InstancePhase,
    ChannelConnectivity,
    ChannelStatus,
    InstanceStatus,
)

__all__ = [
    "InstanceResources",
    "SecretRef",
    "ChannelSpec",
    "MemorySpec",
    "InstanceSpec",
    "InstancePhase",
    "ChannelConnectivity",
    "ChannelStatus",
    "InstanceStatus",
]
