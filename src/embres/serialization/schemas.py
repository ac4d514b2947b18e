"""Value types describing how XML maps onto pydantic models."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"


class XmlRoot(BaseModel):
    """Names the element treated as the document root.

    Frozen, so two equal roots share one cache entry.
    """

    model_config = ConfigDict(frozen=True)

    element_name: str = Field(min_length=1)
    namespace: Optional[str] = None


class XmlFieldOverride(BaseModel):
    """Replaces the default mapping of a single model field.

    Args:
        element_name: XML name to read instead of the field alias/name.
        namespace: Namespace the node must belong to. ``None`` matches
            on local name only.
        kind: Read the value from a child ``element``, an ``attribute`` of the
            parent, or the parent's ``text``.
        ignore: Skip the field entirely; the model default applies.
    """

    model_config = ConfigDict(frozen=True)

    element_name: Optional[str] = None
    namespace: Optional[str] = None
    kind: Literal["element", "attribute", "text"] = "element"
    ignore: bool = False


class XmlAttributeOverrides:
    """Mutable set of per-model mapping overrides.

    Instances hash by identity: two sets with the same content are different
    dictionary keys. Pass an explicit ``cache_key`` alongside them (or derive
    one with :func:`embres.utils.cache_keys.compute_overrides_key`).
    """

    def __init__(self) -> None:
        self._fields: dict[tuple[type[BaseModel], str], XmlFieldOverride] = {}
        self._roots: dict[type[BaseModel], XmlRoot] = {}

    def add(
        self, model: type[BaseModel], field_name: str, override: XmlFieldOverride
    ) -> None:
        if field_name not in model.model_fields:
            raise KeyError(f"{model.__name__} has no field {field_name!r}")
        self._fields[(model, field_name)] = override

    def set_root(self, model: type[BaseModel], root: XmlRoot) -> None:
        self._roots[model] = root

    def field(
        self, model: type[BaseModel], field_name: str
    ) -> Optional[XmlFieldOverride]:
        return self._fields.get((model, field_name))

    def root(self, model: type[BaseModel]) -> Optional[XmlRoot]:
        return self._roots.get(model)

    def items(self) -> list[tuple[type[BaseModel], str, XmlFieldOverride]]:
        """Field overrides as ``(model, field_name, override)`` triples."""
        return [(m, f, o) for (m, f), o in self._fields.items()]

    def roots(self) -> list[tuple[type[BaseModel], XmlRoot]]:
        return list(self._roots.items())

    def __len__(self) -> int:
        return len(self._fields) + len(self._roots)


class CacheStats(BaseModel):
    """Counters reported by the serializer cache."""

    hits: int = 0
    misses: int = 0
    size: int = 0
