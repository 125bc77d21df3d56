"""Package-specific exception types."""

from __future__ import annotations


class DocError(ValueError):
    """Base class for every error raised while documenting a source file.

    The file identifier is usually unknown where the error is detected;
    `header_doc.document.build_document` fills it in before re-raising.

    Args:
        message: Human-readable description naming the offending token or path.
        line_number: One-based line where the problem was found, if known.
        file: Identifier of the source file, if known.
    """

    def __init__(self, message: str, line_number: int | None = None, file: str | None = None):
        self.message = message
        self.line_number = line_number
        self.file = file
        super().__init__(message)

    def __str__(self) -> str:
        location = self.file or "<string>"
        if self.line_number is not None:
            location = f"{location}:{self.line_number}"
        return f"{location}: {self.message}"


class ParseError(DocError):
    """Base class for structural errors found while scanning a source file."""


class LineTooLongError(ParseError):
    """Raised when a line exceeds the configured maximum length.

    Args:
        line_number: One-based index of the offending line.
        max_line_length: Maximum allowed line length in characters.
    """

    def __init__(self, line_number: int, max_line_length: int):
        self.max_line_length = max_line_length
        super().__init__(
            f"Line exceeds maximum allowed length of {max_line_length} characters",
            line_number,
        )


class UnmatchedMarkerError(ParseError):
    """Raised when a closing marker has no open region of its kind."""


class UnterminatedRegionError(ParseError):
    """Raised when input ends while a region is still open.

    The line number points at the opening marker.
    """


class DuplicateRegionNameError(ParseError):
    """Raised when two regions of the same kind share a name."""


class NestedRegionError(ParseError):
    """Raised when a region opens while another of the same kind is open."""


class RegionOverlapError(ParseError):
    """Raised when a snippet or proxy boundary falls inside an ignore region."""


class MalformedMetadataError(ParseError):
    """Raised when an annotation macro has an unbalanced argument list."""


class OrphanedAnnotationError(ParseError):
    """Raised when an annotation is not followed by a matching declaration.

    Also raised for an inject marker outside of a struct or class body and
    for a proxy whose content is not a declaration.
    """


class ResolutionError(DocError):
    """Base class for errors raised after parsing, while linking the model."""


class UnresolvedReferenceError(ResolutionError):
    """Raised when a cross-reference matches no declaration.

    Args:
        path: Reference path as written in the markdown.
        referrer: Qualified path of the declaration owning the doc block.
        line_number: Line of the doc comment holding the reference.
    """

    def __init__(self, path: str, referrer: str, line_number: int | None = None):
        self.path = path
        self.referrer = referrer
        super().__init__(
            f"Unresolved reference `{path}` in documentation of `{referrer}`", line_number
        )


class AmbiguousReferenceError(ResolutionError):
    """Raised when a bare-name reference matches declarations at several paths.

    Args:
        path: Reference path as written in the markdown.
        candidates: Every qualified path the name matched.
        line_number: Line of the doc comment holding the reference.
    """

    def __init__(self, path: str, candidates: list[str], line_number: int | None = None):
        self.path = path
        self.candidates = candidates
        super().__init__(
            f"Ambiguous reference `{path}`, candidates: {', '.join(candidates)}", line_number
        )


class MissingSnippetReferenceError(ResolutionError):
    """Raised when an example fence names a snippet that was never captured."""


class MissingProxyReferenceError(ResolutionError):
    """Raised when an inject marker names a proxy that was never captured."""
