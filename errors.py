"""Exceptions raised by the colouring engine."""


class ColoringError(Exception):
    """Base class for every error the engine raises on purpose."""


class ImageLoadError(ColoringError):
    """The outline image could not be decoded or has unusable dimensions."""


class RegionIntegrityError(ColoringError):
    """Segmentation produced data that breaks the region invariants.

    Raised for overlapping masks or region ids that are not dense. These point
    at a bug in segmentation rather than at bad input.
    """
