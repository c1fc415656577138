"""Markers recognised by the sealedgen scanner.

They are evaluated at import time of user code but only record metadata; the
generator reads the decorators from source and never imports user modules.
"""

from __future__ import annotations

from typing import Callable, Iterable, TypeVar

T = TypeVar("T", bound=type)

SEALED_METADATA = "__sealedgen__"


def _record(cls: type, **values: object) -> None:
    metadata = dict(cls.__dict__.get(SEALED_METADATA, {}))
    metadata.update(values)
    setattr(cls, SEALED_METADATA, metadata)


def json_class(
    generate_adapter: bool = True,
    generator: str = "",
    generate_retention_rules: bool | None = None,
) -> Callable[[T], T]:
    """Mark a base type. `generator="sealed:kind"` selects the label key."""

    def decorate(cls: T) -> T:
        _record(
            cls,
            generate_adapter=generate_adapter,
            generator=generator,
            generate_retention_rules=generate_retention_rules,
        )
        return cls

    return decorate


def type_label(label: str, alternate_labels: Iterable[str] = ()) -> Callable[[T], T]:
    def decorate(cls: T) -> T:
        _record(cls, label=label, alternate_labels=tuple(alternate_labels))
        return cls

    return decorate


def singleton(cls: T) -> T:
    """Attach the single instance as `cls.INSTANCE`."""
    _record(cls, singleton=True)
    cls.INSTANCE = cls()
    return cls


def default_object(cls: T) -> T:
    _record(cls, default_object=True)
    return cls


def default_null(cls: T) -> T:
    _record(cls, default_null=True)
    return cls
