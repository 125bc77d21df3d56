"""Serialization of document models to JSON and back to header text."""

from __future__ import annotations

import json
from dataclasses import asdict
from enum import Enum

from .models import Declaration, DeclarationKind, DocBlock, DocumentModel, Visibility

INDENT = "\t"

_DEFAULT_VISIBILITY = {
    DeclarationKind.STRUCT: Visibility.PUBLIC,
    DeclarationKind.CLASS: Visibility.PRIVATE,
}


def _dict_factory(items: list[tuple[str, object]]) -> dict[str, object]:
    return {key: value.value if isinstance(value, Enum) else value for key, value in items}


def model_to_dict(model: DocumentModel) -> dict[str, object]:
    """Convert a document model to plain data.

    The symbol table is left out; it is derived from the declarations.
    """
    return {
        "file": model.file,
        "declarations": [
            asdict(declaration, dict_factory=_dict_factory) for declaration in model.declarations
        ],
        "snippets": {name: region.text for name, region in model.snippets.items()},
        "proxies": {name: region.text for name, region in model.proxies.items()},
        "inject_sites": [asdict(site) for site in model.inject_sites],
    }


def dump_json(model: DocumentModel, indent: int | None = 2) -> str:
    """Return the document model as JSON text.

    Examples:
        print(dump_json(build_document(source, "Foo.h")))
    """
    return json.dumps(model_to_dict(model), indent=indent, ensure_ascii=False)


def _comment_lines(doc: DocBlock | None, depth: int, language: str) -> list[str]:
    if doc is None:
        return []
    # Examples are written inline since snippet regions are not reproduced
    text = doc.render(language)
    prefix = INDENT * depth
    return [f"{prefix}/// {line}" if line else f"{prefix}///" for line in text.split("\n")]


def _function_lines(declaration: Declaration, depth: int, language: str) -> list[str]:
    prefix = INDENT * depth
    signature = declaration.signature
    documented = any(parameter.doc is not None for parameter in declaration.parameters)
    if not documented or "operator()" in signature:
        return [prefix + signature]

    open_paren = signature.index("(")
    close_paren = signature.rindex(")")
    lines = [prefix + signature[: open_paren + 1]]
    for index, parameter in enumerate(declaration.parameters):
        lines.extend(_comment_lines(parameter.doc, depth + 1, language))
        separator = "," if index < len(declaration.parameters) - 1 else ""
        lines.append(f"{prefix}{INDENT}{parameter.signature}{separator}")
    lines[-1] += signature[close_paren:]
    return lines


def _declaration_lines(declaration: Declaration, depth: int, language: str) -> list[str]:
    prefix = INDENT * depth
    lines = _comment_lines(declaration.doc, depth, language)
    if declaration.annotation is not None and declaration.kind is not DeclarationKind.MEMBER:
        lines.append(f"{prefix}{declaration.annotation}({declaration.annotation_args or ''})")
    if declaration.template is not None:
        lines.append(prefix + declaration.template)

    if declaration.kind is DeclarationKind.MEMBER:
        lines.append(f"{prefix}{declaration.signature},")
        return lines
    if declaration.kind is DeclarationKind.FUNCTION:
        return lines + _function_lines(declaration, depth, language)
    if declaration.kind is DeclarationKind.PROPERTY or declaration.is_forward:
        return lines + [prefix + declaration.signature]

    lines.append(prefix + declaration.signature.rstrip(";"))
    lines.append(prefix + "{")
    visibility = _DEFAULT_VISIBILITY.get(declaration.kind)
    for member in declaration.members:
        if visibility is not None and member.visibility is not visibility:
            visibility = member.visibility
            lines.append(f"{prefix}{visibility.value}:")
        lines.extend(_declaration_lines(member, depth + 1, language))
    lines.append(prefix + "};")
    return lines


def dump_header(model: DocumentModel, language: str = "cpp") -> str:
    """Write the declarations of a model back as annotated header text.

    Doc comments keep their unresolved cross-references, examples are
    written as ordinary code fences and no directive markers are emitted, so
    the text can be documented again on its own. Function bodies are not
    reproduced.

    Args:
        model: Document model to serialize.
        language: Info string of the example code fences.

    Returns:
        str: Header text ending with a newline.
    """
    lines: list[str] = []
    for declaration in model.declarations:
        if lines:
            lines.append("")
        lines.extend(_declaration_lines(declaration, 0, language))
    return "\n".join(lines) + "\n"
