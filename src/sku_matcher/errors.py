"""Exceptions raised by the SKU resolution engine.

A device with no acceptable candidate is not an error: the resolver returns
``None``. A device excluded by its inspection notes is not an error either: it
gets a ``failed_device`` result.
"""


class SkuMatchingError(Exception):
    """Base class for resolution errors."""


class MalformedDeviceError(SkuMatchingError, ValueError):
    """Device attributes cannot be scored (the model is missing)."""


class CatalogQueryError(SkuMatchingError):
    """The catalog store could not answer a tier query."""

    def __init__(self, message: str, tier: str = ''):
        super().__init__(message)
        self.tier = tier
