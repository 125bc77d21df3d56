"""Cross-reference resolution against the symbol table."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import replace

from .constants import PATH_SEPARATOR, SELF_ALIAS
from .exceptions import AmbiguousReferenceError, UnresolvedReferenceError
from .models import CrossReference, Declaration, DocBlock, ParseResult, SymbolTable


def _ancestors(path: str) -> Iterator[str]:
    """Yield `path` and each enclosing path, nearest first.

    Examples:
        list(_ancestors("A::B::C"))  # ["A::B::C", "A::B", "A"]
    """
    segments = path.split(PATH_SEPARATOR)
    for end in range(len(segments), 0, -1):
        yield PATH_SEPARATOR.join(segments[:end])


def _matches_kind(candidate: str, tail: int, kind: str, symbols: SymbolTable) -> bool:
    """Check the kind hint against the declaration the first written segment names.

    `tail` is the number of written segments after the first one, so the
    anchor is `candidate` with that many trailing segments removed.
    """
    if candidate not in symbols:
        return False
    segments = candidate.split(PATH_SEPARATOR)
    anchor = PATH_SEPARATOR.join(segments[: len(segments) - tail])
    return any(declaration_kind.value == kind for declaration_kind in symbols.kinds(anchor))


def resolve_reference(
    reference: CrossReference, context: str, symbols: SymbolTable
) -> CrossReference:
    """Resolve one cross-reference to a qualified path.

    A leading `Self` segment is replaced by `context` and the result must
    match exactly. Other paths are tried as written, then below `context` and
    each of its ancestors (nearest first), and finally, for a bare name, by
    a unique global match on the last path segment.

    Args:
        reference: Reference as collected from the markdown.
        context: Qualified path of the declaration owning the doc block.
        symbols: Complete symbol table of the source file.

    Returns:
        CrossReference: Copy of `reference` with `target` set.

    Raises:
        UnresolvedReferenceError: If no declaration of the hinted kind matches.
        AmbiguousReferenceError: If a bare name matches several paths.

    Examples:
        resolve_reference(CrossReference("struct", "Self::Foo"), "Foo", symbols).target
        # "Foo::Foo"
    """
    segments = reference.path.split(PATH_SEPARATOR)
    tail = len(segments) - 1

    if segments[0] == SELF_ALIAS:
        expanded = PATH_SEPARATOR.join([context, *segments[1:]])
        if _matches_kind(expanded, tail, reference.kind, symbols):
            return replace(reference, target=expanded)
        raise UnresolvedReferenceError(reference.path, context, reference.line_number)

    if _matches_kind(reference.path, tail, reference.kind, symbols):
        return replace(reference, target=reference.path)

    for prefix in _ancestors(context):
        candidate = f"{prefix}{PATH_SEPARATOR}{reference.path}"
        if _matches_kind(candidate, tail, reference.kind, symbols):
            return replace(reference, target=candidate)

    if tail == 0:
        candidates = [
            path
            for path in symbols.paths_named(reference.path)
            if _matches_kind(path, 0, reference.kind, symbols)
        ]
        if len(candidates) > 1:
            raise AmbiguousReferenceError(reference.path, candidates, reference.line_number)
        if candidates:
            return replace(reference, target=candidates[0])

    raise UnresolvedReferenceError(reference.path, context, reference.line_number)


def resolve_doc(doc: DocBlock | None, context: str, symbols: SymbolTable) -> DocBlock | None:
    if doc is None or not doc.references:
        return doc
    return replace(
        doc,
        references=tuple(
            resolve_reference(reference, context, symbols) for reference in doc.references
        ),
    )


def resolve_declaration(declaration: Declaration, symbols: SymbolTable) -> Declaration:
    """Return a copy of `declaration` and its members with every reference resolved.

    Parameter docs resolve with the owning function as context.
    """
    return replace(
        declaration,
        doc=resolve_doc(declaration.doc, declaration.path, symbols),
        parameters=tuple(
            replace(parameter, doc=resolve_doc(parameter.doc, declaration.path, symbols))
            for parameter in declaration.parameters
        ),
        members=tuple(resolve_declaration(member, symbols) for member in declaration.members),
    )


def resolve_references(result: ParseResult) -> ParseResult:
    """Resolve every cross-reference of a parse result.

    The input is left untouched; declarations are rebuilt with resolved
    documentation and the symbol table is rebuilt from them.

    Args:
        result: Output of `parse_declarations`.

    Returns:
        ParseResult: Result whose references all carry a target.

    Raises:
        UnresolvedReferenceError: If a reference matches no declaration.
        AmbiguousReferenceError: If a bare-name reference matches several paths.
    """
    declarations = tuple(
        resolve_declaration(declaration, result.symbols) for declaration in result.declarations
    )
    return ParseResult(
        declarations=declarations,
        symbols=SymbolTable.from_declarations(declarations),
        inject_sites=result.inject_sites,
    )
