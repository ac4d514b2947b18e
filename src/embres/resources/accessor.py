"""Access to data files packaged inside importable Python packages.

Resources are looked up through :func:`importlib.resources.files`, so they
work the same from a source checkout, an installed wheel, a zip-app or a
frozen binary.
"""

from __future__ import annotations

import codecs
import importlib
import importlib.resources
import logging
from types import ModuleType
from typing import BinaryIO, Hashable, Optional, TypeVar, Union

from lxml import etree
from pydantic import BaseModel

from embres.config import ResourceConfig
from embres.exceptions import InvalidArgumentError, ResourceNotFoundError
from embres.serialization.deserialiser import XmlDeserialiser
from embres.serialization.parsing import parse_xml_text
from embres.serialization.schemas import XmlAttributeOverrides, XmlRoot
from embres.utils.logging import configure_module_logger

logger = configure_module_logger(__name__, level=logging.INFO)

ModelT = TypeVar("ModelT", bound=BaseModel)
ModuleRef = Union[ModuleType, str]

# UTF-32 LE must be tested before UTF-16 LE: they share the FF FE prefix.
_BOMS = (
    (codecs.BOM_UTF32_LE, "utf-32-le"),
    (codecs.BOM_UTF32_BE, "utf-32-be"),
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)
_SKIPPED_SUFFIXES = (".py", ".pyc", ".pyo")


def decode_text(
    data: bytes,
    encoding: str = "utf-8",
    errors: str = "strict",
    detect_bom: bool = True,
) -> str:
    """Decode resource bytes, honouring a leading byte-order mark.

    Args:
        data: Raw resource content.
        encoding: Codec used when no BOM is present (or detection is off).
        errors: Codec error handler.
        detect_bom: Let a UTF-8/16/32 BOM choose the codec; the BOM is
            dropped from the result.

    Returns:
        Decoded text.
    """
    if detect_bom:
        for bom, codec in _BOMS:
            if data.startswith(bom):
                return data[len(bom) :].decode(codec, errors)
    return data.decode(encoding, errors)


def resolve_module(module: Optional[ModuleRef]) -> ModuleType:
    """Turn a module object or dotted import name into a package object.

    Only packages carry resources. Plain modules, builtins and modules
    without an import spec are refused.
    """
    if module is None:
        raise InvalidArgumentError("A module is required", argument="module")
    if isinstance(module, str):
        if not module:
            raise InvalidArgumentError(
                "Module name must not be empty", argument="module"
            )
        module = importlib.import_module(module)
    elif not isinstance(module, ModuleType):
        raise InvalidArgumentError(
            f"Expected a module or an import name, got {type(module).__name__}",
            argument="module",
        )

    spec = getattr(module, "__spec__", None)
    if spec is None or spec.submodule_search_locations is None:
        raise InvalidArgumentError(
            f"Module '{module.__name__}' is not a package and holds no resources",
            argument="module",
        )
    return module


def split_resource_name(resource_name: Optional[str]) -> list[str]:
    """Split a ``/``-separated resource name into path segments.

    Names are relative to the package; absolute names and ``.``/``..``
    segments are refused so a lookup cannot leave the package.
    """
    if not isinstance(resource_name, str) or not resource_name:
        raise InvalidArgumentError(
            "A non-empty resource name is required", argument="resource_name"
        )
    if resource_name.startswith("/"):
        raise InvalidArgumentError(
            f"Resource name must be relative to the package: '{resource_name}'",
            argument="resource_name",
        )
    segments = resource_name.split("/")
    if any(segment in ("", ".", "..") for segment in segments):
        raise InvalidArgumentError(
            f"Resource name contains an empty or relative segment: "
            f"'{resource_name}'",
            argument="resource_name",
        )
    return segments


class ResourceAccessor:
    """Reads package resources as streams, text, XML trees or typed models.

    Every method that consumes a stream closes it before returning, whether
    it succeeds or raises. Only :meth:`open_stream` hands an open stream to
    the caller.
    """

    def __init__(
        self,
        config: Optional[ResourceConfig] = None,
        deserialiser: Optional[XmlDeserialiser] = None,
    ) -> None:
        """Initialize the accessor.

        Args:
            config: Decoding and parsing settings. Defaults to ``ResourceConfig()``.
            deserialiser: XML deserialiser used by :meth:`read_typed`. One
                sharing *config* is created when omitted.
        """
        self.config = config or ResourceConfig()
        self.deserialiser = deserialiser or XmlDeserialiser(config=self.config)

        if self.config.verbose:
            logger.setLevel(logging.DEBUG)

    def open_stream(
        self, module: Optional[ModuleRef], resource_name: str
    ) -> BinaryIO:
        """Open a resource for binary reading.

        The caller owns the returned stream and must close it; using it as a
        context manager does that.

        Args:
            module: Package (module object or dotted import name).
            resource_name: ``/``-separated path relative to the package.

        Returns:
            Binary stream positioned at offset 0.

        Raises:
            InvalidArgumentError: If *module* is missing or not a package, or
                the name is invalid.
            ResourceNotFoundError: If the package has no such resource.
        """
        package = resolve_module(module)
        segments = split_resource_name(resource_name)

        resource = importlib.resources.files(package)
        for segment in segments:
            resource = resource.joinpath(segment)

        if not resource.is_file():
            raise ResourceNotFoundError(resource_name, package.__name__)

        logger.debug(f"Opening resource '{resource_name}' from {package.__name__}")
        stream: BinaryIO = resource.open("rb")
        return stream

    def read_bytes(self, module: Optional[ModuleRef], resource_name: str) -> bytes:
        with self.open_stream(module, resource_name) as stream:
            return stream.read()

    def read_text(
        self,
        module: Optional[ModuleRef],
        resource_name: str,
        encoding: Optional[str] = None,
    ) -> str:
        """Read a resource as text.

        Args:
            module: Package (module object or dotted import name).
            resource_name: ``/``-separated path relative to the package.
            encoding: Codec override for this call.

        Returns:
            Complete decoded content; ``""`` for an empty resource.

        Raises:
            UnicodeDecodeError: If the bytes are invalid for the codec and the
                configured error handler is ``strict``.
        """
        data = self.read_bytes(module, resource_name)
        return decode_text(
            data,
            encoding=encoding or self.config.encoding,
            errors=self.config.errors,
            detect_bom=self.config.detect_bom,
        )

    def read_xml(
        self, module: Optional[ModuleRef], resource_name: str
    ) -> etree._Element:
        """Read a resource and parse it as an XML tree.

        Returns:
            Root element of the parsed document.

        Raises:
            MalformedXmlError: If the text is not well-formed XML.
        """
        text = self.read_text(module, resource_name)
        return parse_xml_text(text, self.config, resource_name=resource_name)

    def read_typed(
        self,
        module: Optional[ModuleRef],
        resource_name: str,
        model: type[ModelT],
        *,
        root: Optional[XmlRoot] = None,
        cache_key: Optional[Hashable] = None,
        overrides: Optional[XmlAttributeOverrides] = None,
    ) -> Optional[ModelT]:
        """Deserialise an XML resource into *model*.

        The raw stream goes straight to the deserialiser and is closed once
        it returns or raises. Deserialiser errors are not caught here.

        Args:
            module: Package (module object or dotted import name).
            resource_name: ``/``-separated path relative to the package.
            model: Target pydantic model.
            root: Document root override.
            cache_key: Equality key identifying *overrides* in the plan cache.
            overrides: Field/root overrides, only together with *cache_key*.

        Returns:
            Model instance, or ``None`` if the document root is ``xsi:nil``.
        """
        with self.open_stream(module, resource_name) as stream:
            return self.deserialiser.deserialise(
                stream, model, root=root, cache_key=cache_key, overrides=overrides
            )

    def list_resources(
        self, module: Optional[ModuleRef], subpath: str = ""
    ) -> list[str]:
        """List resource names under a package, recursively.

        Python sources, bytecode and ``__pycache__`` directories are skipped.

        Args:
            module: Package (module object or dotted import name).
            subpath: Optional directory inside the package to start from.

        Returns:
            Sorted names usable with :meth:`open_stream`.
        """
        package = resolve_module(module)
        base = importlib.resources.files(package)
        prefix = ""
        if subpath:
            for segment in split_resource_name(subpath.rstrip("/")):
                base = base.joinpath(segment)
            if not base.is_dir():
                raise ResourceNotFoundError(subpath, package.__name__)
            prefix = subpath.rstrip("/") + "/"

        names: list[str] = []
        pending = [(base, prefix)]
        while pending:
            node, node_prefix = pending.pop()
            for child in node.iterdir():
                if child.is_dir():
                    if child.name != "__pycache__":
                        pending.append((child, f"{node_prefix}{child.name}/"))
                elif not child.name.endswith(_SKIPPED_SUFFIXES):
                    names.append(node_prefix + child.name)

        return sorted(names)
