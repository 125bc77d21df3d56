"""Snippet and proxy region extraction."""

from __future__ import annotations

from dataclasses import dataclass, field

from .exceptions import (
    DuplicateRegionNameError,
    NestedRegionError,
    UnmatchedMarkerError,
    UnterminatedRegionError,
)
from .models import LineKind, Region, RegionKind, RegionMap, TaggedLine

_BEGIN = {LineKind.SNIPPET_BEGIN: RegionKind.SNIPPET, LineKind.PROXY_BEGIN: RegionKind.PROXY}
_END = {LineKind.SNIPPET_END: RegionKind.SNIPPET, LineKind.PROXY_END: RegionKind.PROXY}

# Line kinds each region kind captures
_CAPTURED = {
    RegionKind.SNIPPET: frozenset({LineKind.CODE, LineKind.DOC_COMMENT}),
    RegionKind.PROXY: frozenset({LineKind.CODE, LineKind.TOOL_COMMENT}),
}


@dataclass
class _OpenRegion:
    name: str
    line_number: int
    tags: tuple[str, ...] = ()
    lines: list[str] = field(default_factory=list)


def _capture_text(line: TaggedLine) -> str:
    # Snippets show doc comments as written, proxies keep the tool comment body
    if line.kind is LineKind.DOC_COMMENT:
        return line.raw
    return line.text


def extract_regions(lines: list[TaggedLine]) -> RegionMap:
    """Collect named snippet and proxy regions from tagged lines.

    Each kind keeps its own stack of open regions; regions of one kind never
    nest, but a snippet and a proxy may be open at the same time. Marker lines
    and ignored lines are never captured. A proxy listing several tags is
    registered once per tag.

    Args:
        lines: Output of `classify_lines`.

    Returns:
        RegionMap: Regions keyed by kind and name.

    Raises:
        NestedRegionError: If a region opens while another of its kind is open.
        UnmatchedMarkerError: If an end marker has no open region of its kind.
        UnterminatedRegionError: If a region is still open at end of input.
        DuplicateRegionNameError: If two regions of one kind share a name.

    Examples:
        regions = extract_regions(classify_lines(source))
        regions.snippets["hello_world"].text
    """
    stacks: dict[RegionKind, list[_OpenRegion]] = {kind: [] for kind in RegionKind}
    regions = RegionMap()

    for line in lines:
        if line.kind in _BEGIN:
            kind = _BEGIN[line.kind]
            stack = stacks[kind]
            if stack:
                raise NestedRegionError(
                    f"`[{kind.value}: {line.name}]` opened inside `{stack[-1].name}` "
                    f"(line {stack[-1].line_number})",
                    line.line_number,
                )
            stack.append(_OpenRegion(line.name or "", line.line_number, line.tags or ("",)))
            continue

        if line.kind in _END:
            kind = _END[line.kind]
            stack = stacks[kind]
            if not stack:
                raise UnmatchedMarkerError(
                    f"`[/{kind.value}]` without an open `[{kind.value}: ...]`", line.line_number
                )
            open_region = stack.pop()
            for tag in open_region.tags:
                key = (kind, tag)
                if key in regions.regions:
                    previous = regions.regions[key]
                    raise DuplicateRegionNameError(
                        f"Duplicate {kind.value} `{tag}` "
                        f"(first defined at line {previous.line_number})",
                        open_region.line_number,
                    )
                regions.regions[key] = Region(
                    name=tag,
                    kind=kind,
                    lines=tuple(open_region.lines),
                    line_number=open_region.line_number,
                )
            continue

        if line.ignored:
            continue

        for kind, stack in stacks.items():
            if stack and line.kind in _CAPTURED[kind]:
                stack[-1].lines.append(_capture_text(line))

    for kind, stack in stacks.items():
        if stack:
            raise UnterminatedRegionError(
                f"Unterminated {kind.value} `{stack[-1].name}`", stack[-1].line_number
            )

    return regions
