"""
header-doc: documentation extractor for annotated C++ headers.

This package can be used both as a CLI tool and as a library.

CLI Usage:
    header-doc Source/Public

Library Usage:
    from pathlib import Path
    from header_doc import build_document, dump_json

    model = build_document(Path("Foo.h").read_text(), "Foo.h")
    print(dump_json(model))
"""

__version__ = "0.1.0"

from .classifier import classify_lines
from .comments import aggregate_comments, parse_doc_block
from .config import ConfigError, DocConfig, build_config, load_config
from .declarations import parse_declarations, parse_metadata
from .document import build_document, build_model
from .exceptions import (
    AmbiguousReferenceError,
    DocError,
    DuplicateRegionNameError,
    LineTooLongError,
    MalformedMetadataError,
    MissingProxyReferenceError,
    MissingSnippetReferenceError,
    NestedRegionError,
    OrphanedAnnotationError,
    ParseError,
    RegionOverlapError,
    ResolutionError,
    UnmatchedMarkerError,
    UnresolvedReferenceError,
    UnterminatedRegionError,
)
from .models import (
    CrossReference,
    Declaration,
    DeclarationKind,
    DocBlock,
    DocumentModel,
    LineKind,
    ParseResult,
    Region,
    RegionKind,
    SymbolTable,
    TaggedLine,
    Visibility,
)
from .regions import extract_regions
from .resolver import resolve_reference, resolve_references
from .serializer import dump_header, dump_json

__all__ = [
    # Pipeline
    "classify_lines",
    "extract_regions",
    "aggregate_comments",
    "parse_doc_block",
    "parse_declarations",
    "parse_metadata",
    "resolve_reference",
    "resolve_references",
    "build_model",
    "build_document",
    # Serialization
    "dump_json",
    "dump_header",
    # Configuration
    "DocConfig",
    "ConfigError",
    "build_config",
    "load_config",
    # Data models
    "CrossReference",
    "Declaration",
    "DeclarationKind",
    "DocBlock",
    "DocumentModel",
    "LineKind",
    "ParseResult",
    "Region",
    "RegionKind",
    "SymbolTable",
    "TaggedLine",
    "Visibility",
    # Exceptions
    "DocError",
    "ParseError",
    "ResolutionError",
    "LineTooLongError",
    "UnmatchedMarkerError",
    "UnterminatedRegionError",
    "DuplicateRegionNameError",
    "NestedRegionError",
    "RegionOverlapError",
    "MalformedMetadataError",
    "OrphanedAnnotationError",
    "UnresolvedReferenceError",
    "AmbiguousReferenceError",
    "MissingSnippetReferenceError",
    "MissingProxyReferenceError",
    # Version
    "__version__",
]
