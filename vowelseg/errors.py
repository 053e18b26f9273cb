"""
VowelSeg Errors - Fatal error taxonomy.

Every error here aborts the run. There is no per-line recovery and no
automatic retry at any layer; the CLI turns these into a message on
stderr and a non-zero exit code.

End of input is not an error: the record iterator simply stops.
"""


class VowelSegError(Exception):
    """Base class for all fatal run errors."""
    pass


class MalformedRecord(VowelSegError):
    """
    Raised when a feature table row does not conform to the schema.
    
    Attributes:
        line_number: 1-based line in the table (None when parsing a bare line)
    """
    
    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class FieldTooWide(MalformedRecord):
    """Raised when a field exceeds the maximum width (likely corrupt data)."""
    pass


class HeaderMismatch(MalformedRecord):
    """Raised when the feature table header is not the expected one."""
    pass


class ConfigurationError(VowelSegError):
    """Raised at startup for non-positive parameters or an oversized segment."""
    pass


class AnalysisFailure(VowelSegError):
    """Raised when the acoustic analysis step cannot produce a feature table."""
    pass


class ExtractionFailure(VowelSegError):
    """
    Raised when an accepted segment cannot be persisted or handed off.
    
    Attributes:
        stem: Output stem of the segment being extracted, if known
    """
    
    def __init__(self, message: str, stem: str | None = None):
        self.stem = stem
        super().__init__(message)
