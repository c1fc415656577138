"""Runtime surface consumed by generated adapters."""

from sealedgen.adapters.base import (
    JsonAdapter,
    JsonDataError,
    ObjectJsonAdapter,
    PydanticJsonAdapter,
)
from sealedgen.adapters.polymorphic import PolymorphicJsonAdapterFactory
from sealedgen.adapters.registry import AdapterFactory, JsonRegistry

__all__ = [
    "AdapterFactory",
    "JsonAdapter",
    "JsonDataError",
    "JsonRegistry",
    "ObjectJsonAdapter",
    "PolymorphicJsonAdapterFactory",
    "PydanticJsonAdapter",
]
