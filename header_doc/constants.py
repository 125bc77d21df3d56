"""Constants used across the header-doc package."""

from __future__ import annotations

import re

BOM = "\ufeff"
PATH_SEPARATOR = "::"
SELF_ALIAS = "Self"
HEADER_EXTENSIONS = (".h", ".hh", ".hpp", ".hxx")

# Directives found inside tool comments
REGION_BEGIN_PATTERN = re.compile(
    r"^\[\s*(?:(?P<kind>snippet)\s*:\s*(?P<name>\w+)"
    r"|(?P<proxy>proxy)\s*:\s*(?P<tags>\w+(?:\s*,\s*\w+)*))\s*\]$"
)
REGION_END_PATTERN = re.compile(r"^\[\s*/\s*(?P<kind>snippet|proxy)\s*\]$")
INJECT_PATTERN = re.compile(r"^\[\s*inject\s*:\s*(?P<name>\w+)\s*\]$")
IGNORE_BEGIN_PATTERN = re.compile(r"^\[\s*ignore\s*\]$")
IGNORE_END_PATTERN = re.compile(r"^\[\s*/\s*ignore\s*\]$")

# Markdown inside doc comments
CROSS_REFERENCE_PATTERN = re.compile(
    r"\[`\s*(?P<kind>enum|struct|class|function)\s*:\s*"
    r"(?P<path>\w+(?:\s*::\s*\w+)*)\s*`\]\(\s*\)"
)
CODE_FENCE_PATTERN = re.compile(r"^(?P<fence>`{3,}|~{3,})\s*(?P<info>[^`]*?)\s*$")
HEADING_PATTERN = re.compile(r"^#{1,6}\s+(?P<title>.+?)\s*#*\s*$")

# Declaration heads
ACCESS_SPECIFIER_PATTERN = re.compile(r"^(?P<visibility>public|protected|private)\s*:$")
TEMPLATE_PATTERN = re.compile(r"^template\s*<")
BARE_MACRO_PATTERN = re.compile(r"^[A-Z_][A-Z0-9_]*\s*(\(.*\))?$", re.DOTALL)
ENUM_PATTERN = re.compile(
    r"^enum\s+(?:(?:class|struct)\s+)?(?P<name>\w+)\s*(?::\s*(?P<underlying>[\w:\s]+?))?$"
)
RECORD_PATTERN = re.compile(
    r"^(?P<keyword>struct|class)\s+(?:(?P<api>\w+)\s+(?=\w))?(?P<name>\w+)"
    r"(?:\s+final)?\s*(?::\s*(?P<bases>.+))?$",
    re.DOTALL,
)
NAMESPACE_PATTERN = re.compile(r"^(?:namespace\b|extern\s+\"C\")")
ALIAS_PATTERN = re.compile(r"^(?:using|typedef|friend|static_assert)\b")
OPERATOR_NAME_PATTERN = re.compile(r"(?P<name>\boperator\s*(?:\(\)|[^\s(]+))\s*$")

FUNCTION_SPECIFIERS = frozenset(
    {"virtual", "static", "inline", "explicit", "constexpr", "friend", "FORCEINLINE"}
)
FUNCTION_SUFFIXES = frozenset({"const", "override", "final", "noexcept"})
