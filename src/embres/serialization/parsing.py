"""Hardened lxml parsing helpers shared by the accessor and the deserialiser."""

from __future__ import annotations

from typing import IO, Optional

from lxml import etree

from embres.config import ResourceConfig
from embres.exceptions import MalformedXmlError


def make_parser(
    config: ResourceConfig, encoding: Optional[str] = None
) -> etree.XMLParser:
    """Build a fresh parser honouring the entity/network/size settings.

    A new parser per call keeps concurrent callers from sharing parser state.
    """
    return etree.XMLParser(
        encoding=encoding,
        resolve_entities=config.resolve_entities,
        no_network=config.no_network,
        huge_tree=config.huge_tree,
    )


def parse_xml_text(
    text: str,
    config: ResourceConfig,
    resource_name: Optional[str] = None,
) -> etree._Element:
    """Parse already-decoded XML text and return its root element.

    The text is re-encoded as UTF-8 and the parser is told so, which makes any
    ``encoding=`` in the XML declaration irrelevant.

    Raises:
        MalformedXmlError: If the text is empty or not well-formed.
    """
    where = f" in resource '{resource_name}'" if resource_name else ""
    if not text.strip():
        raise MalformedXmlError(
            f"No XML content{where}: document is empty",
            resource_name=resource_name,
            line=1,
            column=1,
        )

    parser = make_parser(config, encoding="utf-8")
    try:
        return etree.fromstring(text.encode("utf-8"), parser)
    except etree.XMLSyntaxError as e:
        raise MalformedXmlError(
            f"Malformed XML{where}: {e.msg}",
            resource_name=resource_name,
            line=e.lineno,
            column=e.offset,
        ) from e


def parse_xml_stream(stream: IO[bytes], config: ResourceConfig) -> etree._Element:
    """Parse a binary stream, letting the XML declaration or BOM pick the codec.

    ``etree.XMLSyntaxError`` propagates; the deserialiser wraps it.
    """
    return etree.parse(stream, make_parser(config)).getroot()
