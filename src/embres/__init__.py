from typing import BinaryIO, Hashable, Optional, TypeVar

from lxml import etree
from pydantic import BaseModel

from embres._version import __version__
from embres.config import ResourceConfig, load_config
from embres.exceptions import (
    EmbresError,
    InvalidArgumentError,
    MalformedXmlError,
    ResourceNotFoundError,
    XmlDeserialisationError,
)
from embres.resources.accessor import ModuleRef, ResourceAccessor
from embres.serialization import (
    XmlAttributeOverrides,
    XmlDeserialiser,
    XmlFieldOverride,
    XmlRoot,
)
from embres.utils.cache_keys import compute_overrides_key

__all__ = [
    "__version__",
    "EmbresError",
    "InvalidArgumentError",
    "MalformedXmlError",
    "ResourceAccessor",
    "ResourceConfig",
    "ResourceNotFoundError",
    "XmlAttributeOverrides",
    "XmlDeserialisationError",
    "XmlDeserialiser",
    "XmlFieldOverride",
    "XmlRoot",
    "compute_overrides_key",
    "get_accessor",
    "list_resources",
    "load_config",
    "open_stream",
    "read_text",
    "read_typed",
    "read_xml",
]

ModelT = TypeVar("ModelT", bound=BaseModel)

_ACCESSOR_INSTANCE: Optional[ResourceAccessor] = None


def get_accessor(verbose: Optional[bool] = None) -> ResourceAccessor:
    """Get or create the global ResourceAccessor instance.

    When called without arguments, returns a singleton built from
    :func:`load_config`, so its deserialiser cache is shared process-wide.
    When called with overrides, creates a new dedicated instance.

    Args:
        verbose: Enable debug logging.

    Returns:
        ResourceAccessor instance.
    """
    global _ACCESSOR_INSTANCE

    if verbose is None:
        if _ACCESSOR_INSTANCE is None:
            _ACCESSOR_INSTANCE = ResourceAccessor(config=load_config())
        return _ACCESSOR_INSTANCE

    return ResourceAccessor(config=load_config(verbose=verbose))


def open_stream(module: Optional[ModuleRef], resource_name: str) -> BinaryIO:
    """Open a package resource for binary reading; the caller closes it.

    Example::

        import embres

        with embres.open_stream("mypkg", "data/logo.png") as stream:
            header = stream.read(8)
    """
    return get_accessor().open_stream(module, resource_name)


def read_text(
    module: Optional[ModuleRef],
    resource_name: str,
    encoding: Optional[str] = None,
) -> str:
    """Read a package resource as text."""
    return get_accessor().read_text(module, resource_name, encoding=encoding)


def read_xml(module: Optional[ModuleRef], resource_name: str) -> etree._Element:
    """Read a package resource and parse it into an lxml element tree."""
    return get_accessor().read_xml(module, resource_name)


def read_typed(
    module: Optional[ModuleRef],
    resource_name: str,
    model: type[ModelT],
    *,
    root: Optional[XmlRoot] = None,
    cache_key: Optional[Hashable] = None,
    overrides: Optional[XmlAttributeOverrides] = None,
) -> Optional[ModelT]:
    """Deserialise an XML package resource into a pydantic model.

    Example::

        import embres
        from pydantic import BaseModel

        class Person(BaseModel):
            Name: str

        person = embres.read_typed("mypkg", "data/person.xml", Person)
        print(person)  # Name='Alice'

    Args:
        module: Package (module object or dotted import name).
        resource_name: ``/``-separated path relative to the package.
        model: Target pydantic model.
        root: Document root override.
        cache_key: Equality key identifying *overrides*.
        overrides: Field/root overrides, only together with *cache_key*.

    Returns:
        Model instance, or ``None`` for an ``xsi:nil`` document.
    """
    return get_accessor().read_typed(
        module,
        resource_name,
        model,
        root=root,
        cache_key=cache_key,
        overrides=overrides,
    )


def list_resources(module: Optional[ModuleRef], subpath: str = "") -> list[str]:
    """List the resource names packaged under *module*."""
    return get_accessor().list_resources(module, subpath=subpath)
