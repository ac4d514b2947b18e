"""Deterministic cache-key generation for XML attribute overrides."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pydantic import BaseModel

    from embres.serialization.schemas import XmlAttributeOverrides


def _type_name(model: type[BaseModel]) -> str:
    return f"{model.__module__}.{model.__qualname__}"


def compute_overrides_key(overrides: XmlAttributeOverrides) -> str:
    """Build a SHA256 key from the structural content of *overrides*.

    Two override sets holding the same roots and field overrides produce the
    same key regardless of insertion order or object identity.

    Args:
        overrides: Override set to summarise.

    Returns:
        Hex-encoded SHA256 digest.
    """
    parts = [
        f"root:{_type_name(model)}:{root.namespace or ''}:{root.element_name}"
        for model, root in overrides.roots()
    ]
    parts.extend(
        f"field:{_type_name(model)}.{name}:{override.model_dump_json()}"
        for model, name, override in overrides.items()
    )
    payload = "::".join(sorted(parts))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
