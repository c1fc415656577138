from __future__ import annotations

import threading
from typing import Any, Callable, Mapping, Sequence

from sealedgen.adapters.base import JsonAdapter, PydanticJsonAdapter

# (requested type, registry) -> adapter, or None when the factory declines.
AdapterFactory = Callable[[Any, "JsonRegistry"], "JsonAdapter[Any] | None"]


class JsonRegistry:
    """Adapter lookup shared by generated adapters.

    Explicit adapters win, then factories in registration order, then a
    pydantic-backed adapter for the requested type.
    """

    def __init__(
        self,
        adapters: Mapping[Any, JsonAdapter[Any]] | None = None,
        factories: Sequence[AdapterFactory] = (),
    ) -> None:
        self._adapters: dict[Any, JsonAdapter[Any]] = dict(adapters or {})
        self._factories: tuple[AdapterFactory, ...] = tuple(factories)
        self._cache: dict[Any, JsonAdapter[Any]] = {}
        self._lock = threading.Lock()

    def adapter(self, type_: Any) -> JsonAdapter[Any]:
        explicit = self._adapters.get(type_)
        if explicit is not None:
            return explicit
        with self._lock:
            cached = self._cache.get(type_)
        if cached is not None:
            return cached
        resolved: JsonAdapter[Any] | None = None
        for factory in self._factories:
            resolved = factory(type_, self)
            if resolved is not None:
                break
        if resolved is None:
            resolved = PydanticJsonAdapter(type_)
        with self._lock:
            return self._cache.setdefault(type_, resolved)

    def new_builder(self) -> "JsonRegistry.Builder":
        return JsonRegistry.Builder(dict(self._adapters), list(self._factories))

    class Builder:
        def __init__(
            self,
            adapters: dict[Any, JsonAdapter[Any]] | None = None,
            factories: list[AdapterFactory] | None = None,
        ) -> None:
            self._adapters = adapters if adapters is not None else {}
            self._factories = factories if factories is not None else []

        def add(self, type_: Any, adapter: JsonAdapter[Any]) -> "JsonRegistry.Builder":
            self._adapters[type_] = adapter
            return self

        def add_factory(self, factory: AdapterFactory) -> "JsonRegistry.Builder":
            self._factories.append(factory)
            return self

        def build(self) -> "JsonRegistry":
            return JsonRegistry(self._adapters, self._factories)
