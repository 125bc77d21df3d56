"""Line classification for annotated headers."""

from __future__ import annotations

from .config import DocConfig, validate_config
from .constants import (
    BOM,
    IGNORE_BEGIN_PATTERN,
    IGNORE_END_PATTERN,
    INJECT_PATTERN,
    REGION_BEGIN_PATTERN,
    REGION_END_PATTERN,
)
from .exceptions import (
    LineTooLongError,
    NestedRegionError,
    RegionOverlapError,
    UnmatchedMarkerError,
    UnterminatedRegionError,
)
from .models import LineKind, ScannerContext, ScannerState, TaggedLine

_END_KINDS = {"snippet": LineKind.SNIPPET_END, "proxy": LineKind.PROXY_END}


def strip_comment_prefix(text: str, prefix: str) -> str:
    """Remove a comment prefix and the single space that usually follows it.

    Deeper indentation is kept so nested markdown lists survive.

    Examples:
        strip_comment_prefix("/// Hello", "///")  # "Hello"
        strip_comment_prefix("///   - item", "///")  # "  - item"
    """
    body = text[len(prefix) :] if text.startswith(prefix) else text
    if body.startswith(" "):
        body = body[1:]
    return body.rstrip()


def classify_directive(body: str) -> tuple[LineKind, str | None] | None:
    """Recognize a bracketed directive inside a tool comment.

    Args:
        body: Tool comment text without its prefix.

    Returns:
        tuple[LineKind, str | None] | None: Directive kind and name, or None
            when the comment is not a directive.

    Examples:
        classify_directive("[snippet: hello_world]")  # (LineKind.SNIPPET_BEGIN, "hello_world")
        classify_directive("[proxy: a, b]")  # (LineKind.PROXY_BEGIN, "a,b")
        classify_directive("[/proxy]")  # (LineKind.PROXY_END, None)
        classify_directive("void Injected() const;")  # None
    """
    body = body.strip()
    if not body.startswith("["):
        return None

    begin_match = REGION_BEGIN_PATTERN.match(body)
    if begin_match:
        if begin_match.group("proxy"):
            # A proxy may carry several tags, stored comma-joined
            tags = ",".join(tag.strip() for tag in begin_match.group("tags").split(","))
            return LineKind.PROXY_BEGIN, tags
        return LineKind.SNIPPET_BEGIN, begin_match.group("name")
    end_match = REGION_END_PATTERN.match(body)
    if end_match:
        return _END_KINDS[end_match.group("kind")], None
    inject_match = INJECT_PATTERN.match(body)
    if inject_match:
        return LineKind.INJECT_REF, inject_match.group("name")
    if IGNORE_BEGIN_PATTERN.match(body):
        return LineKind.IGNORE_BEGIN, None
    if IGNORE_END_PATTERN.match(body):
        return LineKind.IGNORE_END, None
    return None


def _try_enter_ignore(ctx: ScannerContext, kind: LineKind, line_number: int) -> bool:
    """Open an ignore region when the line is an ignore marker.

    Raises:
        NestedRegionError: If an ignore region is already open.
    """
    if kind is not LineKind.IGNORE_BEGIN:
        return False

    if ctx.state is ScannerState.IN_IGNORE:
        raise NestedRegionError(
            f"`[ignore]` opened while the ignore region from line {ctx.ignore_line} is open",
            line_number,
        )

    ctx.state = ScannerState.IN_IGNORE
    ctx.ignore_line = line_number
    return True


def _try_exit_ignore(ctx: ScannerContext, kind: LineKind, line_number: int) -> bool:
    """Close the open ignore region when the line is a closing ignore marker.

    Raises:
        UnmatchedMarkerError: If no ignore region is open.
    """
    if kind is not LineKind.IGNORE_END:
        return False

    if ctx.state is not ScannerState.IN_IGNORE:
        raise UnmatchedMarkerError("`[/ignore]` without an open `[ignore]`", line_number)

    ctx.state = ScannerState.NORMAL
    ctx.ignore_line = None
    return True


def _line_length(line: str) -> int:
    line_len = len(line)
    if line.endswith("\n"):
        line_len -= 1
        if line_len > 0 and line[line_len - 1] == "\r":
            line_len -= 1
    return line_len


def classify_lines(content: str, config: DocConfig | None = None) -> list[TaggedLine]:
    """Scan source text into tagged lines.

    The tool prefix is tested before the doc prefix since the default tool
    prefix (``////``) extends the doc prefix (``///``). Lines inside an ignore
    region are kept with ``ignored=True`` so line numbering stays intact.

    Args:
        content: Source text.
        config: Configuration with the comment prefixes and line limit.
            Defaults to a new `DocConfig` when omitted.

    Returns:
        list[TaggedLine]: One entry per source line, in source order.

    Raises:
        ConfigError: If the configuration fails validation.
        LineTooLongError: If a line exceeds `config.max_line_length`.
        NestedRegionError: If an ignore region opens inside another one.
        RegionOverlapError: If a snippet or proxy marker sits inside an ignore region.
        UnmatchedMarkerError: If `[/ignore]` has no open ignore region.
        UnterminatedRegionError: If an ignore region is still open at end of input.

    Examples:
        classify_lines("/// Docs\\nstruct Foo;\\n")
    """
    config = config or DocConfig()
    validate_config(config)

    if content.startswith(BOM):
        content = content[1:]

    tagged: list[TaggedLine] = []
    ctx = ScannerContext()
    offset = 0

    for index, line in enumerate(content.splitlines(keepends=True)):
        line_number = index + 1
        line_offset = offset
        offset += len(line)

        if _line_length(line) > config.max_line_length:
            raise LineTooLongError(line_number, config.max_line_length)

        raw = line.rstrip("\r\n")
        stripped = raw.lstrip()
        ignored = ctx.state is ScannerState.IN_IGNORE

        if stripped.startswith(config.tool_prefix):
            body = strip_comment_prefix(stripped, config.tool_prefix)
            directive = classify_directive(body)
            if directive is None:
                tagged.append(
                    TaggedLine(
                        body, LineKind.TOOL_COMMENT, line_number, line_offset, None, ignored, raw
                    )
                )
                continue

            kind, name = directive
            if _try_enter_ignore(ctx, kind, line_number) or _try_exit_ignore(
                ctx, kind, line_number
            ):
                tagged.append(TaggedLine(body, kind, line_number, line_offset, raw=raw))
                continue

            if ignored and kind is not LineKind.INJECT_REF:
                raise RegionOverlapError(
                    f"`{body.strip()}` inside the ignore region opened at line {ctx.ignore_line}",
                    line_number,
                )

            tagged.append(TaggedLine(body, kind, line_number, line_offset, name, ignored, raw))
            continue

        if stripped.startswith(config.doc_prefix):
            body = strip_comment_prefix(stripped, config.doc_prefix)
            tagged.append(
                TaggedLine(body, LineKind.DOC_COMMENT, line_number, line_offset, None, ignored, raw)
            )
            continue

        tagged.append(TaggedLine(raw, LineKind.CODE, line_number, line_offset, None, ignored, raw))

    if ctx.state is ScannerState.IN_IGNORE:
        raise UnterminatedRegionError("Unterminated `[ignore]` region", ctx.ignore_line)

    return tagged
