from types import SimpleNamespace
from typing import Any, Dict, Optional
from marshmallow import INCLUDE, Schema, post_load

JSON = Dict[str, Any]
MAX_REPR_LEN = 80


class BaseModel(SimpleNamespace):
    """BaseModel that all models should inherit from.

    Args:
        **kwargs: All passed parameters as converted to instance attributes.
    """

    def __init__(self, **kwargs: Any) -> None:
        self.__dict__.update(kwargs)

    def __repr__(self) -> str:
        """Return a default repr of any Model, truncated to `MAX_REPR_LEN`."""
        repr_ = super().__repr__()
        if len(repr_) > MAX_REPR_LEN:
            return repr_[:MAX_REPR_LEN] + " ...)"
        else:
            return repr_


class UnknownModel(BaseModel):
    """A convenience class that inherits from `BaseModel`."""


class BaseSchema(Schema):
    """The default schema for all models.

    Unknown fields are kept so that parts of a custom resource this operator
    does not act on survive a load.
    """

    __model__: Any = UnknownModel
    """Determine the object that is created when the load method is called."""

    class Meta:
        unknown = INCLUDE

    @post_load
    def make_object(self, data: JSON, **kwargs: Any) -> Optional["__model__"]:
        """Build model for the given `__model__` class attribute.
        Args:
            data: The JSON dictionary to use to build the model.
            **kwargs: Unused but required to match signature of `Schema.make_object`
        Returns:
            An instance of the `__model__` class.
        """
        return self.__model__(**data)
