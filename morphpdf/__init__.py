"""
morphpdf - document transformation pipeline for PDF files.

Compress, merge, split, organize, watermark, number, sign and convert
PDF documents in memory. Every request takes input files plus one
operation and returns a single artifact or a ZIP bundle of artifacts.

Quick Start:
    >>> from morphpdf import InputFile, SplitOperation, run_request
    >>> source = InputFile("report.pdf", open("report.pdf", "rb").read())
    >>> result = run_request(SplitOperation("1-3,5"), source)
    >>> result.primary_name
    'report_pages_1-3,5.zip'

Main Entry Points:
    - run_request: Run one operation synchronously
    - execute: Run one operation and publish its events to a channel
    - TransformWorker: Run operations on a thread pool with timeouts

Operations:
    - CompressOperation, MergeOperation, SplitOperation, OrganizeOperation
    - WatermarkOperation, PageNumberOperation, SignOperation
    - ImagesToPdfOperation, PdfToImagesOperation

Exceptions:
    - MorphPDFError: Base exception
    - SelectionError: Invalid page selection (EmptyExpression, InvalidToken, OutOfRange)
    - ProcessingError: Rendering, encoding, assembly or packaging failed
    - DocumentOpenError: Input could not be opened

For CLI usage, use the 'morphpdf' command after installation.
"""

__version__ = "1.0.0"

# Core entry points
from morphpdf.pipeline import run_request, execute
from morphpdf.worker import TransformWorker, RequestHandle
from morphpdf.progress import ProgressChannel, ProgressReporter
from morphpdf.config import PipelineConfig, DEFAULT_CONFIG
from morphpdf.ranges import resolve, resolve_or_all

# Operations
from morphpdf.operations import (
    CompressOperation,
    MergeOperation,
    SplitOperation,
    PageOrder,
    OrganizeOperation,
    WatermarkOperation,
    PageNumberOperation,
    SignatureElement,
    SignOperation,
    ImagesToPdfOperation,
    PdfToImagesOperation,
)

# Data types
from morphpdf.types import (
    InputFile,
    Artifact,
    TransformResult,
    PageSelection,
    CompressionPreset,
    Stage,
    ProgressEvent,
    ResultEvent,
    ErrorEvent,
)

# Exceptions
from morphpdf.exceptions import (
    MorphPDFError,
    SelectionError,
    EmptyExpression,
    InvalidToken,
    OutOfRange,
    DocumentOpenError,
    ProcessingError,
    PageRenderError,
    EncodeError,
    AssemblyError,
    PackagingError,
    LimitExceededError,
    RequestCancelled,
    RequestTimeout,
)

__author__ = "morphpdf Contributors"
__license__ = "MIT"

__all__ = [
    # Entry points
    "run_request",
    "execute",
    "TransformWorker",
    "RequestHandle",
    "ProgressChannel",
    "ProgressReporter",
    "PipelineConfig",
    "DEFAULT_CONFIG",
    "resolve",
    "resolve_or_all",
    # Operations
    "CompressOperation",
    "MergeOperation",
    "SplitOperation",
    "PageOrder",
    "OrganizeOperation",
    "WatermarkOperation",
    "PageNumberOperation",
    "SignatureElement",
    "SignOperation",
    "ImagesToPdfOperation",
    "PdfToImagesOperation",
    # Data types
    "InputFile",
    "Artifact",
    "TransformResult",
    "PageSelection",
    "CompressionPreset",
    "Stage",
    "ProgressEvent",
    "ResultEvent",
    "ErrorEvent",
    # Exceptions
    "MorphPDFError",
    "SelectionError",
    "EmptyExpression",
    "InvalidToken",
    "OutOfRange",
    "DocumentOpenError",
    "ProcessingError",
    "PageRenderError",
    "EncodeError",
    "AssemblyError",
    "PackagingError",
    "LimitExceededError",
    "RequestCancelled",
    "RequestTimeout",
    # Version info
    "__version__",
]
