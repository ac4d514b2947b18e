"""Package resource access."""

from .accessor import ResourceAccessor, decode_text

__all__ = ["ResourceAccessor", "decode_text"]
