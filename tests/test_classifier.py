from __future__ import annotations

import textwrap

import pytest

from header_doc.classifier import (
    _try_enter_ignore,
    _try_exit_ignore,
    classify_directive,
    classify_lines,
    strip_comment_prefix,
)
from header_doc.config import ConfigError, DocConfig
from header_doc.exceptions import (
    LineTooLongError,
    NestedRegionError,
    RegionOverlapError,
    UnmatchedMarkerError,
    UnterminatedRegionError,
)
from header_doc.models import LineKind, ScannerContext, ScannerState


def _classify(source: str, config: DocConfig | None = None):
    return classify_lines(textwrap.dedent(source).lstrip("\n"), config)


def _kinds(source: str) -> list[LineKind]:
    return [line.kind for line in _classify(source)]


def test_classifies_every_line_kind():
    kinds = _kinds(
        """
        /// Docs
        //// [snippet: a]
        int X = 0;
        //// [/snippet]
        //// [proxy: p]
        //// void Injected() const;
        //// [/proxy]
        //// [inject: p]
        //// [ignore]
        //// [/ignore]
        // ordinary comment
        """
    )

    assert kinds == [
        LineKind.DOC_COMMENT,
        LineKind.SNIPPET_BEGIN,
        LineKind.CODE,
        LineKind.SNIPPET_END,
        LineKind.PROXY_BEGIN,
        LineKind.TOOL_COMMENT,
        LineKind.PROXY_END,
        LineKind.INJECT_REF,
        LineKind.IGNORE_BEGIN,
        LineKind.IGNORE_END,
        LineKind.CODE,
    ]


def test_tool_prefix_wins_over_doc_prefix():
    lines = _classify("//// [snippet: hello]\n")

    assert lines[0].kind is LineKind.SNIPPET_BEGIN
    assert lines[0].name == "hello"


def test_doc_comment_text_has_prefix_removed():
    lines = _classify("\t///   - nested item\n/// Title\n///\n")

    assert [line.text for line in lines] == ["  - nested item", "Title", ""]
    assert lines[0].raw == "\t///   - nested item"


def test_line_numbers_and_offsets():
    lines = classify_lines("a\nbb\n\nccc")

    assert [line.line_number for line in lines] == [1, 2, 3, 4]
    assert [line.offset for line in lines] == [0, 2, 5, 6]


def test_strips_byte_order_mark():
    lines = classify_lines("\ufeff/// Docs\nstruct Foo;\n")

    assert lines[0].kind is LineKind.DOC_COMMENT
    assert lines[0].text == "Docs"


def test_handles_windows_line_endings():
    lines = classify_lines("/// Docs\r\nstruct Foo;\r\n")

    assert lines[0].text == "Docs"
    assert lines[1].text == "struct Foo;"


def test_lines_inside_ignore_are_flagged():
    lines = _classify(
        """
        int A;
        //// [ignore]
        int B;
        /// hidden
        //// [/ignore]
        int C;
        """
    )

    assert [line.ignored for line in lines] == [False, False, True, True, False, False]


def test_inject_inside_ignore_is_flagged_not_rejected():
    lines = _classify(
        """
        //// [ignore]
        //// [inject: p]
        //// [/ignore]
        """
    )

    assert lines[1].kind is LineKind.INJECT_REF
    assert lines[1].ignored is True


@pytest.mark.parametrize("marker", ["[snippet: a]", "[/snippet]", "[proxy: a]", "[/proxy]"])
def test_region_marker_inside_ignore_raises(marker: str):
    source = f"//// [ignore]\n//// {marker}\n//// [/ignore]\n"

    with pytest.raises(RegionOverlapError) as error:
        classify_lines(source)

    assert error.value.line_number == 2


def test_unterminated_ignore_reports_opening_line():
    with pytest.raises(UnterminatedRegionError) as error:
        classify_lines("int A;\n//// [ignore]\nint B;\n")

    assert error.value.line_number == 2


def test_nested_ignore_raises():
    with pytest.raises(NestedRegionError):
        classify_lines("//// [ignore]\n//// [ignore]\n//// [/ignore]\n//// [/ignore]\n")


def test_unmatched_ignore_end_raises():
    with pytest.raises(UnmatchedMarkerError) as error:
        classify_lines("int A;\n//// [/ignore]\n")

    assert error.value.line_number == 2


def test_line_too_long_raises():
    config = DocConfig(max_line_length=10)

    with pytest.raises(LineTooLongError) as error:
        classify_lines("short\n" + "x" * 11 + "\n", config)

    assert error.value.line_number == 2
    assert error.value.max_line_length == 10


def test_line_ending_does_not_count_towards_length():
    config = DocConfig(max_line_length=5)

    lines = classify_lines("12345\r\n12345\n", config)

    assert len(lines) == 2


def test_custom_prefixes():
    config = DocConfig(doc_prefix="//!", tool_prefix="//@")

    lines = classify_lines("//! Docs\n//@ [snippet: a]\n/// plain\n//@ [/snippet]\n", config)

    assert [line.kind for line in lines] == [
        LineKind.DOC_COMMENT,
        LineKind.SNIPPET_BEGIN,
        LineKind.CODE,
        LineKind.SNIPPET_END,
    ]


def test_invalid_config_is_rejected():
    with pytest.raises(ConfigError):
        classify_lines("int A;\n", DocConfig(doc_prefix="////", tool_prefix="///"))


def test_unknown_bracketed_tool_comment_is_content():
    lines = classify_lines("//// [unknown: x]\n")

    assert lines[0].kind is LineKind.TOOL_COMMENT
    assert lines[0].text == "[unknown: x]"


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        ("[snippet: hello_world]", (LineKind.SNIPPET_BEGIN, "hello_world")),
        ("[ snippet :  spaced ]", (LineKind.SNIPPET_BEGIN, "spaced")),
        ("[/snippet]", (LineKind.SNIPPET_END, None)),
        ("[proxy: injectable]", (LineKind.PROXY_BEGIN, "injectable")),
        ("[proxy: a , b,c]", (LineKind.PROXY_BEGIN, "a,b,c")),
        ("[snippet: a, b]", None),
        ("[/proxy]", (LineKind.PROXY_END, None)),
        ("[inject: injectable]", (LineKind.INJECT_REF, "injectable")),
        ("[ignore]", (LineKind.IGNORE_BEGIN, None)),
        ("[/ignore]", (LineKind.IGNORE_END, None)),
        ("void Injected() const;", None),
        ("[snippet: two words]", None),
    ],
)
def test_classify_directive(body: str, expected):
    assert classify_directive(body) == expected


def test_strip_comment_prefix_keeps_deeper_indentation():
    assert strip_comment_prefix("/// Hello", "///") == "Hello"
    assert strip_comment_prefix("///Hello", "///") == "Hello"
    assert strip_comment_prefix("///    code", "///") == "   code"
    assert strip_comment_prefix("///   ", "///") == ""


def test_try_enter_ignore_sets_context_fields():
    ctx = ScannerContext()

    assert _try_enter_ignore(ctx, LineKind.CODE, 1) is False
    assert _try_enter_ignore(ctx, LineKind.IGNORE_BEGIN, 4) is True
    assert ctx.state is ScannerState.IN_IGNORE
    assert ctx.ignore_line == 4


def test_try_exit_ignore_resets_context():
    ctx = ScannerContext(state=ScannerState.IN_IGNORE, ignore_line=4)

    assert _try_exit_ignore(ctx, LineKind.CODE, 5) is False
    assert _try_exit_ignore(ctx, LineKind.IGNORE_END, 6) is True
    assert ctx.state is ScannerState.NORMAL
    assert ctx.ignore_line is None
