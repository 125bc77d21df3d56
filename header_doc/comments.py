"""Doc comment aggregation and markdown doc block parsing."""

from __future__ import annotations

import re

from .config import DocConfig
from .constants import CODE_FENCE_PATTERN, CROSS_REFERENCE_PATTERN, HEADING_PATTERN
from .models import CommentBlock, CrossReference, DocBlock, ExampleRef, LineKind, Paragraph, TaggedLine


def _is_blank(line: TaggedLine) -> bool:
    return line.kind is LineKind.CODE and not line.text.strip()


def _next_significant(lines: list[TaggedLine], start: int) -> int | None:
    """Return the index of the first non-blank, non-ignored line at or after `start`."""
    for index in range(start, len(lines)):
        line = lines[index]
        if line.ignored or _is_blank(line):
            continue
        return index
    return None


def aggregate_comments(lines: list[TaggedLine]) -> list[CommentBlock]:
    """Merge consecutive doc-comment lines into comment blocks.

    Blank lines between two doc comments are kept as empty markdown lines;
    a blank line followed by anything else closes the block. Ignored lines
    are invisible to the aggregator.

    Args:
        lines: Output of `classify_lines`.

    Returns:
        list[CommentBlock]: Blocks in source order, each pointing at the tagged
            line it precedes.

    Examples:
        blocks = aggregate_comments(classify_lines("/// A\\n///\\n/// B\\nstruct X;\\n"))
        blocks[0].markdown  # "A\\n\\nB"
    """
    blocks: list[CommentBlock] = []
    index = 0

    while index < len(lines):
        line = lines[index]
        if line.ignored or line.kind is not LineKind.DOC_COMMENT:
            index += 1
            continue

        start = index
        texts = [line.text]
        end = index
        probe = index + 1
        while probe < len(lines):
            following = _next_significant(lines, probe)
            if following is None or lines[following].kind is not LineKind.DOC_COMMENT:
                break
            # Blank separators between comment lines become empty markdown lines
            texts.extend("" for skipped in lines[probe:following] if not skipped.ignored)
            texts.append(lines[following].text)
            end = following
            probe = following + 1

        blocks.append(
            CommentBlock(
                markdown="\n".join(texts),
                start_index=start,
                end_index=end,
                target_index=_next_significant(lines, end + 1),
                line_number=line.line_number,
            )
        )
        index = end + 1

    return blocks


def _find_closing_fence(lines: list[str], start: int, fence: str) -> int | None:
    for index in range(start, len(lines)):
        candidate = lines[index].strip()
        if candidate and set(candidate) == {fence[0]} and len(candidate) >= len(fence):
            return index
    return None


def _collect_references(
    text: str, line_number: int, references: list[CrossReference]
) -> None:
    for match in CROSS_REFERENCE_PATTERN.finditer(text):
        path = re.sub(r"\s+", "", match.group("path"))
        references.append(CrossReference(match.group("kind"), path, line_number))


def parse_doc_block(
    markdown: str, line_number: int = 0, config: DocConfig | None = None
) -> DocBlock:
    """Split a markdown comment into paragraphs, example references and links.

    A fenced block whose info string is `config.snippet_info` names a snippet
    instead of holding code; it becomes an `ExampleRef` whose code is filled in
    when the document model is built. Cross-references inside other fenced
    blocks are not collected.

    Args:
        markdown: Comment text with prefixes removed.
        line_number: Source line of the first comment line.
        config: Configuration with the snippet info string. Defaults to a new
            `DocConfig` when omitted.

    Returns:
        DocBlock: Parsed documentation with unresolved references.

    Examples:
        block = parse_doc_block("Greets.\\n\\n# Examples\\n```snippet\\nhello_world\\n```")
        block.examples[0].name  # "hello_world"
    """
    config = config or DocConfig()
    lines = markdown.split("\n")

    body: list[Paragraph | ExampleRef] = []
    references: list[CrossReference] = []
    paragraph: list[str] = []
    section: str | None = None

    def flush() -> None:
        if paragraph:
            body.append(Paragraph("\n".join(paragraph), section))
            paragraph.clear()

    index = 0
    while index < len(lines):
        text = lines[index]
        stripped = text.strip()
        fence_match = CODE_FENCE_PATTERN.match(stripped)

        if fence_match:
            fence = fence_match.group("fence")
            closing = _find_closing_fence(lines, index + 1, fence)
            if closing is not None and fence_match.group("info") == config.snippet_info:
                flush()
                names = [item.strip() for item in lines[index + 1 : closing] if item.strip()]
                if names:
                    body.append(ExampleRef(names[0], section, line_number + index + 1))
                index = closing + 1
                continue
            if closing is not None:
                # Ordinary code fence, kept verbatim inside the paragraph
                paragraph.extend(lines[index : closing + 1])
                index = closing + 1
                continue

        if not stripped:
            flush()
            index += 1
            continue

        heading_match = HEADING_PATTERN.match(stripped)
        if heading_match:
            flush()
            section = heading_match.group("title")
            body.append(Paragraph(text, section))
            _collect_references(text, line_number + index, references)
            index += 1
            continue

        paragraph.append(text)
        _collect_references(text, line_number + index, references)
        index += 1

    flush()

    return DocBlock(
        markdown=markdown,
        body=tuple(body),
        references=tuple(references),
        line_number=line_number,
    )
