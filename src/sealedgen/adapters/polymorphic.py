from __future__ import annotations

from typing import Any, Generic, TypeVar

from sealedgen.adapters.base import JsonAdapter, JsonDataError
from sealedgen.adapters.registry import JsonRegistry
from sealedgen.json_types import JSONValue

T = TypeVar("T")

_NO_DEFAULT = object()


class PolymorphicJsonAdapterFactory(Generic[T]):
    """Builds a label-dispatching adapter for one base type.

    Instances are immutable; every `with_*` call returns a new factory. A
    type may be registered under several labels: decode accepts any of
    them, encode writes the first one registered for the type.
    """

    def __init__(
        self,
        base: type[T],
        label_key: str,
        labels: tuple[str, ...] = (),
        subtypes: tuple[type, ...] = (),
        default_value: Any = _NO_DEFAULT,
    ) -> None:
        self.base = base
        self.label_key = label_key
        self.labels = labels
        self.subtypes = subtypes
        self._default_value = default_value

    @classmethod
    def of(cls, base: type[T], label_key: str) -> "PolymorphicJsonAdapterFactory[T]":
        return cls(base, label_key)

    def with_subtype(self, subtype: type, label: str) -> "PolymorphicJsonAdapterFactory[T]":
        if label in self.labels:
            raise ValueError(f"Labels must be unique: {label!r}")
        return PolymorphicJsonAdapterFactory(
            self.base,
            self.label_key,
            (*self.labels, label),
            (*self.subtypes, subtype),
            self._default_value,
        )

    def with_default_value(self, value: T | None) -> "PolymorphicJsonAdapterFactory[T]":
        return PolymorphicJsonAdapterFactory(
            self.base, self.label_key, self.labels, self.subtypes, value
        )

    def create(self, type_: Any, registry: JsonRegistry) -> JsonAdapter[T] | None:
        if type_ is not self.base:
            return None
        return _PolymorphicJsonAdapter(
            base=self.base,
            label_key=self.label_key,
            labels=self.labels,
            subtypes=self.subtypes,
            adapters=tuple(registry.adapter(subtype) for subtype in self.subtypes),
            default_value=self._default_value,
        )

    def __call__(self, type_: Any, registry: JsonRegistry) -> JsonAdapter[T] | None:
        return self.create(type_, registry)


class _PolymorphicJsonAdapter(JsonAdapter[T]):
    def __init__(
        self,
        *,
        base: type[T],
        label_key: str,
        labels: tuple[str, ...],
        subtypes: tuple[type, ...],
        adapters: tuple[JsonAdapter[Any], ...],
        default_value: Any,
    ) -> None:
        self._base = base
        self._label_key = label_key
        self._labels = labels
        self._subtypes = subtypes
        self._adapters = adapters
        self._default_value = default_value
        self._by_label = {label: index for index, label in enumerate(labels)}
        self._by_type: dict[type, int] = {}
        for index, subtype in enumerate(subtypes):
            self._by_type.setdefault(subtype, index)

    def from_json_value(self, value: Any) -> T | None:
        if value is None:
            return None
        if not isinstance(value, dict):
            raise JsonDataError(
                f"Expected an object for {self._base.__qualname__}, "
                f"got {type(value).__name__}"
            )
        label = value.get(self._label_key)
        if not isinstance(label, str):
            raise JsonDataError(
                f"Missing label for {self._label_key!r} "
                f"in {self._base.__qualname__}"
            )
        index = self._by_label.get(label)
        if index is None:
            if self._default_value is not _NO_DEFAULT:
                return self._default_value
            raise JsonDataError(
                f"Expected one of {list(self._labels)} for key {self._label_key!r} "
                f"but found {label!r}. Register a subtype for this label."
            )
        fields = {key: item for key, item in value.items() if key != self._label_key}
        return self._adapters[index].from_json_value(fields)

    def to_json_value(self, value: T | None) -> JSONValue:
        if value is None:
            return None
        index = self._by_type.get(type(value))
        if index is None:
            raise ValueError(
                f"Expected one of {[t.__qualname__ for t in self._subtypes]} but found "
                f"{value!r}, a {type(value).__qualname__}. Register this subtype."
            )
        encoded = self._adapters[index].to_json_value(value)
        if not isinstance(encoded, dict):
            raise JsonDataError(
                f"{type(value).__qualname__} did not encode to an object"
            )
        payload: dict[str, JSONValue] = {self._label_key: self._labels[index]}
        for key, item in encoded.items():
            if key != self._label_key:
                payload[key] = item
        return payload

    def __repr__(self) -> str:
        return (
            f"PolymorphicJsonAdapter({self._base.__qualname__}, "
            f"{self._label_key!r})"
        )
