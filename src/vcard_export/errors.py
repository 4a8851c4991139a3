from __future__ import annotations


class ExportError(Exception):
    """Base class for contact export failures."""


class ShareCancelled(ExportError):
    """The user dismissed the native share sheet."""


class DeliveryError(ExportError):
    """A delivery strategy could not hand the file to the user."""


class FallbackError(DeliveryError):
    """The pre-rendered card could not be fetched from the backend."""
