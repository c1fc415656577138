from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from sealedgen.json_types import JSONValue

T = TypeVar("T")


class JsonDataError(ValueError):
    """A JSON value does not match the shape an adapter expects."""


class JsonAdapter(ABC, Generic[T]):
    """Converts between decoded JSON values and `T`.

    `None` on either side means "no value" and passes through unchanged.
    """

    @abstractmethod
    def from_json_value(self, value: Any) -> T | None: ...

    @abstractmethod
    def to_json_value(self, value: T | None) -> JSONValue: ...

    def from_json(self, text: str) -> T | None:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise JsonDataError(f"Malformed JSON: {exc}") from exc
        return self.from_json_value(payload)

    def to_json(self, value: T | None) -> str:
        return json.dumps(self.to_json_value(value), separators=(",", ":"))


class PydanticJsonAdapter(JsonAdapter[T]):
    """Field-level conversion for one concrete type via pydantic."""

    def __init__(self, type_: type[T]) -> None:
        self.type = type_
        self._adapter: TypeAdapter[T] = TypeAdapter(type_)

    def from_json_value(self, value: Any) -> T | None:
        if value is None:
            return None
        try:
            return self._adapter.validate_python(value)
        except ValidationError as exc:
            raise JsonDataError(
                f"Invalid value for {self.type.__qualname__}: {exc}"
            ) from exc

    def to_json_value(self, value: T | None) -> JSONValue:
        if value is None:
            return None
        return self._adapter.dump_python(value, mode="json")

    def __repr__(self) -> str:
        return f"PydanticJsonAdapter({self.type.__qualname__})"


class ObjectJsonAdapter(JsonAdapter[T]):
    """Adapter for singleton variants: decoding always yields `instance`."""

    def __init__(self, instance: T) -> None:
        self.instance = instance

    def from_json_value(self, value: Any) -> T | None:
        if value is None:
            return None
        if not isinstance(value, dict):
            raise JsonDataError(
                f"Expected an object for {type(self.instance).__qualname__}, "
                f"got {type(value).__name__}"
            )
        return self.instance

    def to_json_value(self, value: T | None) -> JSONValue:
        if value is None:
            return None
        return {}

    def __repr__(self) -> str:
        return f"ObjectJsonAdapter({self.instance!r})"
