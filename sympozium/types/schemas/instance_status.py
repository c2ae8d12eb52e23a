from marshmallow import fields, validate
from sympozium.types.base import BaseSchema
from sympozium.types.models import (
    ChannelStatus,
    InstanceStatus,
    InstancePhase,
    ChannelConnectivity,
)


class ChannelStatusSchema(BaseSchema):
    __model__ = ChannelStatus

    type = fields.Str(data_key="type", required=True)
    status = fields.Str(
        data_key="status",
        required=True,
        validate=validate.OneOf(
            [
                ChannelConnectivity.PENDING,
                ChannelConnectivity.CONNECTED,
                ChannelConnectivity.DISCONNECTED,
            ]
        ),
    )


class InstanceStatusSchema(BaseSchema):
    """Status as read by the API server and rendered by the frontend."""

    __model__ = InstanceStatus

    phase = fields.Str(
        data_key="phase",
        required=True,
        validate=validate.OneOf(
            [InstancePhase.PENDING, InstancePhase.RUNNING, InstancePhase.ERROR]
        ),
    )
    channels = fields.List(
        fields.Nested(ChannelStatusSchema()), data_key="channels", load_default=list
    )
    active_runs = fields.Int(
        data_key="activeRuns", load_default=0, validate=validate.Range(min=0)
    )
