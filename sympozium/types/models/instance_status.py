from typing import List
from sympozium.types.base import BaseModel


class InstancePhase:
    PENDING = "Pending"
    RUNNING = "Running"
    ERROR = "Error"


class ChannelConnectivity:
    PENDING = "Pending"
    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"


class ChannelStatus(BaseModel):
    type: str
    status: str


class InstanceStatus(BaseModel):
    phase: str
    channels: List[ChannelStatus]
    active_runs: int
