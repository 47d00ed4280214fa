"""
Exception hierarchy for the split/upload/extract pipeline.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline failures."""


class ConfigurationError(PipelineError):
    """Raised when a required setting (usually the API key) is missing."""


class MaterializationError(PipelineError):
    """Raised when a chunk cannot be built from the source document.

    This signals a corrupt source or an out-of-bounds page range, which is an
    internal-consistency fault rather than a user error.
    """


class UploadError(PipelineError):
    """Raised when the document service fails to store a chunk."""

    def __init__(self, message: str, filename: Optional[str] = None):
        super().__init__(message)
        self.filename = filename


class ExtractionError(PipelineError):
    """Raised when an analysis request for an uploaded file fails."""

    def __init__(self, message: str, file_id: Optional[str] = None):
        super().__init__(message)
        self.file_id = file_id


class ConsolidationError(PipelineError):
    """Raised when the merge response is not a valid ownership tree.

    The uncleaned response is kept on ``raw_text`` so the data can be
    recovered by hand.
    """

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text
