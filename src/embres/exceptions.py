"""Exception types raised by embres.

Every exception also inherits from the closest builtin so callers can catch
either the library type or the standard one.
"""

from typing import Optional


class EmbresError(Exception):
    """Base class for all embres errors."""


class InvalidArgumentError(EmbresError, ValueError):
    """Raised when a required argument is missing or malformed."""

    def __init__(self, message: str, argument: Optional[str] = None) -> None:
        super().__init__(message)
        self.argument = argument


class ResourceNotFoundError(EmbresError, FileNotFoundError):
    """Raised when a package does not contain the requested resource.

    Args:
        resource_name: Name of the missing resource.
        module_name: Import name of the package that was searched.
    """

    def __init__(self, resource_name: str, module_name: str) -> None:
        super().__init__(
            f"Cannot find the embedded resource '{resource_name}' "
            f"in module '{module_name}'."
        )
        self.resource_name = resource_name
        self.module_name = module_name


class MalformedXmlError(EmbresError, ValueError):
    """Raised when resource text is not well-formed XML."""

    def __init__(
        self,
        message: str,
        resource_name: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.resource_name = resource_name
        self.line = line
        self.column = column


class XmlDeserialisationError(EmbresError, ValueError):
    """Raised when XML content cannot be mapped onto the requested model."""

    def __init__(self, message: str, model_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.model_name = model_name
