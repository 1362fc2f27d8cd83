"""Error classes for KrakenClip."""

class KrakenClipError(Exception):
    """Base class for KrakenClip exceptions."""
    pass

class InputError(KrakenClipError):
    """Raised when an input file is missing or unreadable."""
    pass

class TaxonomyError(KrakenClipError):
    """Raised when there's an issue with a taxonomic rank or query."""
    pass

class ExtractionError(KrakenClipError):
    """Raised when sequence extraction fails."""
    pass

class OutputError(KrakenClipError):
    """Raised when an output file cannot be written."""
    pass
