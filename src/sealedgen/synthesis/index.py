from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from sealedgen.invariants import never
from sealedgen.synthesis.model import (
    BaseTypeDecl,
    Declaration,
    HierarchySnapshot,
    VariantDecl,
)
from sealedgen.timeout_context import check_deadline


@dataclass
class _HierarchyEntry:
    base: BaseTypeDecl | None = None
    variants: list[VariantDecl] = field(default_factory=list)
    variant_ids: set[str] = field(default_factory=set)


class HierarchyIndex:
    """Base identity -> (base declaration, variants in merge order).

    Variants may be registered before their base. Registration is serialized
    by a lock; snapshots are expected at round boundaries only.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _HierarchyEntry] = {}
        self._lock = threading.Lock()

    def register(self, decl: Declaration) -> bool:
        """Merge one declaration; return False when it was already known."""
        check_deadline()
        with self._lock:
            if isinstance(decl, BaseTypeDecl):
                entry = self._entries.setdefault(decl.identity, _HierarchyEntry())
                if entry.base is not None:
                    return False
                entry.base = decl
                return True
            if isinstance(decl, VariantDecl):
                entry = self._entries.setdefault(decl.base, _HierarchyEntry())
                if decl.identity in entry.variant_ids:
                    return False
                entry.variant_ids.add(decl.identity)
                entry.variants.append(decl)
                return True
        never("unsupported declaration", decl=decl)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def base(self, identity: str) -> BaseTypeDecl | None:
        entry = self._entries.get(identity)
        return entry.base if entry is not None else None

    def snapshot(self) -> Mapping[str, HierarchySnapshot]:
        with self._lock:
            return MappingProxyType(
                {
                    identity: HierarchySnapshot(
                        base=entry.base,
                        variants=tuple(entry.variants),
                    )
                    for identity, entry in self._entries.items()
                }
            )
