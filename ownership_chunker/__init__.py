"""
Ownership Chunker
=================

Splits large PDF documents into page-range chunks, uploads them to a
document-analysis service, extracts parent-subsidiary relationships from every
chunk and consolidates them into one hierarchical ownership tree.
"""

__version__ = "0.1.0"

from .data_models import ConsolidatedTree, PageRange, ProgressEvent, SplitUnit, UploadRecord
from .errors import (
    ConfigurationError,
    ConsolidationError,
    ExtractionError,
    MaterializationError,
    PipelineError,
    UploadError,
)
from .splitter import compute_page_ranges

__all__ = [
    "ConsolidatedTree",
    "PageRange",
    "ProgressEvent",
    "SplitUnit",
    "UploadRecord",
    "ConfigurationError",
    "ConsolidationError",
    "ExtractionError",
    "MaterializationError",
    "PipelineError",
    "UploadError",
    "compute_page_ranges",
]
