"""Exceptions raised by the document scanner."""


class DocumentScannerError(Exception):
    """Base class for all scanner errors."""


class DecodeError(DocumentScannerError):
    """Input bytes could not be decoded into an image."""


class EncodeError(DocumentScannerError):
    """An image could not be encoded to bytes."""


class DegenerateQuadrilateralError(DocumentScannerError):
    """Four points do not describe a usable quadrilateral.

    Raised for coincident corners or three corners lying on one line.
    """


class SingularHomographyError(DegenerateQuadrilateralError):
    """The projective system for a quadrilateral has no stable solution."""


# Fallback reasons reported in AutoCropResult.metadata["fallbackReason"]
FALLBACK_TIMEOUT = "timeout"
FALLBACK_LOW_CONFIDENCE = "low_confidence"
FALLBACK_ERROR_PREFIX = "error: "
