"""Error taxonomy for the resource-array remapping pass."""

from __future__ import annotations

from typing import Optional


class ResourceRemapError(Exception):
    """Base class for all errors raised by the pass."""


class MalformedPayload(ResourceRemapError):
    """A fill-array-data payload violates the binary format."""


class MalformedInitializer(ResourceRemapError):
    """
    A static initializer cannot be reconstructed into consistent array groups.

    Fatal for the containing class only; the driver skips the class and
    reports it at the end of the pass.
    """

    def __init__(self, message: str, class_name: Optional[str] = None):
        super().__init__(message)
        self.class_name = class_name

    def __str__(self) -> str:
        msg = super().__str__()
        if self.class_name:
            return f"{self.class_name}: {msg}"
        return msg


class UnknownRole(ResourceRemapError):
    """An id-holder class matched no role rule; a configuration error."""

    def __init__(self, class_name: str):
        super().__init__(
            f"{class_name} looks like a resource id holder but no role rule matches it"
        )
        self.class_name = class_name
