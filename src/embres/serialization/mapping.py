"""Mapping plans that turn lxml elements into pydantic input dictionaries.

A plan is built once per model (and root/override combination) by walking
``model_fields``, then reused for every document of that shape. Building is
the expensive step, which is why the deserialiser caches plans.
"""

from __future__ import annotations

import types
from typing import Any, Literal, Optional, Union, get_args, get_origin

from lxml import etree
from pydantic import BaseModel

from embres.serialization.schemas import (
    XSI_NAMESPACE,
    XmlAttributeOverrides,
    XmlFieldOverride,
    XmlRoot,
)

_COLLECTION_ORIGINS = (list, set, frozenset, tuple)
_NIL_ATTRIBUTE = f"{{{XSI_NAMESPACE}}}nil"


def is_nil(element: etree._Element) -> bool:
    return element.get(_NIL_ATTRIBUTE) in ("true", "1")


def matches(element: etree._Element, name: str, namespace: Optional[str]) -> bool:
    """Compare an element against a local name and optional namespace."""
    qname = etree.QName(element)
    if qname.localname != name:
        return False
    return namespace is None or qname.namespace == namespace


def _strip_optional(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is Union or origin is getattr(types, "UnionType", None):
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return _strip_optional(args[0])
    return annotation


def _item_type(annotation: Any) -> tuple[Any, bool]:
    """Return ``(item_annotation, is_collection)`` for a field annotation."""
    annotation = _strip_optional(annotation)
    if get_origin(annotation) in _COLLECTION_ORIGINS:
        args = [a for a in get_args(annotation) if a is not Ellipsis]
        item = args[0] if args else Any
        return _strip_optional(item), True
    return annotation, False


def _is_model(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, BaseModel)


class FieldMapping:
    """How one model field is read from its parent element."""

    __slots__ = ("key", "xml_name", "namespace", "kind", "many", "nested")

    def __init__(
        self,
        key: str,
        xml_name: str,
        namespace: Optional[str],
        kind: Literal["element", "attribute", "text"],
        many: bool,
        nested: Optional[ModelMapping],
    ) -> None:
        self.key = key
        self.xml_name = xml_name
        self.namespace = namespace
        self.kind = kind
        self.many = many
        self.nested = nested

    def _convert(self, element: etree._Element) -> Any:
        if is_nil(element):
            return None
        if self.nested is not None:
            return self.nested.read(element)
        return element.text or ""

    def read_into(self, element: etree._Element, data: dict[str, Any]) -> None:
        if self.kind == "text":
            data[self.key] = element.text or ""
            return

        if self.kind == "attribute":
            name = (
                f"{{{self.namespace}}}{self.xml_name}"
                if self.namespace
                else self.xml_name
            )
            value = element.get(name)
            if value is not None:
                data[self.key] = value.split() if self.many else value
            return

        children = [
            child
            for child in element.iterchildren(tag=etree.Element)
            if matches(child, self.xml_name, self.namespace)
        ]
        if self.many:
            if children:
                data[self.key] = [self._convert(child) for child in children]
        elif children:
            data[self.key] = self._convert(children[0])


class ModelMapping:
    """Field mappings for one model type."""

    def __init__(self, model: type[BaseModel]) -> None:
        self.model = model
        self.fields: list[FieldMapping] = []

    def read(self, element: etree._Element) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for field in self.fields:
            field.read_into(element, data)
        return data


class XmlMappingPlan:
    """A cached unit of deserialisation machinery: document root + mapping."""

    def __init__(self, root: XmlRoot, mapping: ModelMapping) -> None:
        self.root = root
        self.mapping = mapping

    @property
    def model(self) -> type[BaseModel]:
        return self.mapping.model

    def accepts(self, element: etree._Element) -> bool:
        return matches(element, self.root.element_name, self.root.namespace)


class _PlanBuilder:
    def __init__(self, overrides: Optional[XmlAttributeOverrides]) -> None:
        self._overrides = overrides
        self._built: dict[type[BaseModel], ModelMapping] = {}

    def _override(self, model: type[BaseModel], name: str) -> XmlFieldOverride:
        found = self._overrides.field(model, name) if self._overrides else None
        return found or XmlFieldOverride()

    def mapping_for(self, model: type[BaseModel]) -> ModelMapping:
        if model in self._built:
            return self._built[model]

        # Registered before the fields so self-referencing models terminate
        mapping = ModelMapping(model)
        self._built[model] = mapping

        for name, info in model.model_fields.items():
            override = self._override(model, name)
            if override.ignore:
                continue

            if isinstance(info.validation_alias, str):
                key = info.validation_alias
            else:
                key = info.alias or name

            item, many = _item_type(info.annotation)
            nested = self.mapping_for(item) if _is_model(item) else None
            mapping.fields.append(
                FieldMapping(
                    key=key,
                    xml_name=override.element_name or info.alias or name,
                    namespace=override.namespace,
                    kind=override.kind,
                    many=many,
                    nested=nested,
                )
            )

        return mapping


def build_plan(
    model: type[BaseModel],
    root: Optional[XmlRoot] = None,
    overrides: Optional[XmlAttributeOverrides] = None,
) -> XmlMappingPlan:
    """Build the mapping plan for *model*.

    Args:
        model: Target pydantic model.
        root: Explicit document root. Falls back to a root registered on
            *overrides*, then to the model's class name.
        overrides: Optional field and root overrides.

    Returns:
        A reusable XmlMappingPlan.
    """
    if root is None and overrides is not None:
        root = overrides.root(model)
    if root is None:
        root = XmlRoot(element_name=model.__name__)

    mapping = _PlanBuilder(overrides).mapping_for(model)
    return XmlMappingPlan(root, mapping)
