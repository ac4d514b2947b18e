"""XML deserialisation into pydantic models."""

from .cache import XmlSerializerCache
from .deserialiser import XmlDeserialiser
from .mapping import XmlMappingPlan, build_plan
from .parsing import parse_xml_text
from .schemas import (
    CacheStats,
    XmlAttributeOverrides,
    XmlFieldOverride,
    XmlRoot,
)

__all__ = [
    "CacheStats",
    "XmlAttributeOverrides",
    "XmlDeserialiser",
    "XmlFieldOverride",
    "XmlMappingPlan",
    "XmlRoot",
    "XmlSerializerCache",
    "build_plan",
    "parse_xml_text",
]
