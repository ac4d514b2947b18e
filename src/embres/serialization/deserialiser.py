"""XML-to-pydantic deserialiser.

Maps an XML document onto a pydantic model the way a classic XmlSerializer
would: the root element is named after the model class, each field after its
alias (or name), nested models recurse, and collections repeat. Mapping plans
are cached per ``(model, key)`` so repeated reads skip the build step.
"""

from __future__ import annotations

import logging
from typing import IO, Hashable, Optional, TypeVar

from lxml import etree
from pydantic import BaseModel, ValidationError

from embres.config import ResourceConfig
from embres.exceptions import InvalidArgumentError, XmlDeserialisationError
from embres.serialization.cache import XmlSerializerCache
from embres.serialization.mapping import XmlMappingPlan, build_plan, is_nil
from embres.serialization.parsing import parse_xml_stream
from embres.serialization.schemas import XmlAttributeOverrides, XmlRoot
from embres.utils.logging import configure_module_logger

logger = configure_module_logger(__name__, level=logging.INFO)

ModelT = TypeVar("ModelT", bound=BaseModel)


def check_call_shape(
    root: Optional[XmlRoot],
    cache_key: Optional[Hashable],
    overrides: Optional[XmlAttributeOverrides],
) -> None:
    """Reject argument combinations that have no defined cache key."""
    if overrides is not None and cache_key is None:
        raise InvalidArgumentError(
            "A cache_key is required when overrides are supplied; override "
            "sets compare by identity and would never hit the cache",
            argument="cache_key",
        )
    if overrides is not None and root is not None:
        raise InvalidArgumentError(
            "Pass either root or overrides, not both; register the root on "
            "the overrides with set_root() instead",
            argument="root",
        )
    if cache_key is not None and overrides is None:
        raise InvalidArgumentError(
            "cache_key is only meaningful together with overrides",
            argument="overrides",
        )


class XmlDeserialiser:
    """Deserialises XML streams into pydantic models."""

    def __init__(
        self,
        config: Optional[ResourceConfig] = None,
        cache: Optional[XmlSerializerCache] = None,
    ) -> None:
        """Initialize the deserialiser.

        Args:
            config: Parser settings. Defaults to ``ResourceConfig()``.
            cache: Plan cache, shareable between deserialisers. A private one
                is created when omitted.
        """
        self.config = config or ResourceConfig()
        self.cache = cache if cache is not None else XmlSerializerCache()

        if self.config.verbose:
            logger.setLevel(logging.DEBUG)
            logging.getLogger(XmlSerializerCache.__module__).setLevel(logging.DEBUG)

    def plan_for(
        self,
        model: type[BaseModel],
        root: Optional[XmlRoot] = None,
        cache_key: Optional[Hashable] = None,
        overrides: Optional[XmlAttributeOverrides] = None,
    ) -> XmlMappingPlan:
        """Return the cached mapping plan for a call shape, building it once."""
        if not (isinstance(model, type) and issubclass(model, BaseModel)):
            raise InvalidArgumentError(
                f"Model must be a Pydantic BaseModel subclass, got {model!r}",
                argument="model",
            )
        check_call_shape(root, cache_key, overrides)

        key: tuple[type[BaseModel], str, Hashable]
        if overrides is not None:
            key = (model, "overrides", cache_key)
        else:
            key = (model, "root", root)

        return self.cache.get_or_create(
            key, lambda: build_plan(model, root=root, overrides=overrides)
        )

    def deserialise(
        self,
        stream: IO[bytes],
        model: type[ModelT],
        *,
        root: Optional[XmlRoot] = None,
        cache_key: Optional[Hashable] = None,
        overrides: Optional[XmlAttributeOverrides] = None,
    ) -> Optional[ModelT]:
        """Read one XML document from *stream* into an instance of *model*.

        The stream is read but not closed; the caller owns it.

        Args:
            stream: Binary stream positioned at the start of the document.
            model: Target pydantic model.
            root: Document root override.
            cache_key: Equality key for *overrides*; required with them.
            overrides: Field/root overrides.

        Returns:
            The validated model, or ``None`` when the root is ``xsi:nil``.

        Raises:
            InvalidArgumentError: Bad model or argument combination.
            XmlDeserialisationError: Malformed XML, unexpected root element,
                or content that fails model validation.
        """
        plan = self.plan_for(model, root=root, cache_key=cache_key, overrides=overrides)

        try:
            element = parse_xml_stream(stream, self.config)
        except etree.XMLSyntaxError as e:
            raise XmlDeserialisationError(
                f"There is an error in the XML document "
                f"(line {e.lineno}, column {e.offset}): {e.msg}",
                model_name=model.__name__,
            ) from e

        if not plan.accepts(element):
            qname = etree.QName(element)
            raise XmlDeserialisationError(
                f"<{qname.localname} xmlns='{qname.namespace or ''}'> was not "
                f"expected; {model.__name__} reads <{plan.root.element_name} "
                f"xmlns='{plan.root.namespace or ''}'>",
                model_name=model.__name__,
            )

        if is_nil(element):
            return None

        data = plan.mapping.read(element)
        logger.debug(f"Mapped <{plan.root.element_name}> onto {model.__name__}")
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise XmlDeserialisationError(
                f"XML content does not fit {model.__name__}: {e}",
                model_name=model.__name__,
            ) from e
