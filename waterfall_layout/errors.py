from __future__ import annotations


class WaterfallError(Exception):
    """Base class for all waterfall layout failures."""


class ValidationError(WaterfallError, ValueError):
    """Input data or configuration was rejected before any layout work."""


class LayoutError(WaterfallError):
    """A layout pass could not produce complete geometry."""
