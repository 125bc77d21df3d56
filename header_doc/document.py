"""Document model building: snippet substitution, proxy injection and export filtering."""

from __future__ import annotations

import logging
from dataclasses import replace

from .classifier import classify_lines
from .comments import aggregate_comments, parse_doc_block
from .config import DocConfig, validate_config
from .constants import PATH_SEPARATOR
from .declarations import parse_declarations, parse_signature
from .exceptions import (
    DocError,
    MissingProxyReferenceError,
    MissingSnippetReferenceError,
    OrphanedAnnotationError,
)
from .models import (
    CommentBlock,
    Declaration,
    DeclarationKind,
    DocBlock,
    DocumentModel,
    ExampleRef,
    LineKind,
    ParseResult,
    Region,
    RegionKind,
    RegionMap,
    SymbolTable,
    TaggedLine,
    Visibility,
)
from .regions import extract_regions
from .resolver import resolve_declaration, resolve_references

logger = logging.getLogger(__name__)


def _fill_examples(doc: DocBlock | None, snippets: dict[str, Region]) -> DocBlock | None:
    if doc is None or not doc.examples:
        return doc
    body = []
    for item in doc.body:
        if isinstance(item, ExampleRef):
            region = snippets.get(item.name)
            if region is None:
                raise MissingSnippetReferenceError(
                    f"Example references unknown snippet `{item.name}`", item.line_number
                )
            item = replace(item, code=region.text)
        body.append(item)
    return replace(doc, body=tuple(body))


def _substitute_snippets(declaration: Declaration, snippets: dict[str, Region]) -> Declaration:
    return replace(
        declaration,
        doc=_fill_examples(declaration.doc, snippets),
        parameters=tuple(
            replace(parameter, doc=_fill_examples(parameter.doc, snippets))
            for parameter in declaration.parameters
        ),
        members=tuple(_substitute_snippets(member, snippets) for member in declaration.members),
    )


def _proxy_doc(
    name: str, blocks: list[CommentBlock], lines: list[TaggedLine], config: DocConfig
) -> DocBlock | None:
    """Return the doc block written directly above `[proxy: name]`."""
    for block in blocks:
        if block.target_index is None:
            continue
        target = lines[block.target_index]
        if target.kind is LineKind.PROXY_BEGIN and name in target.tags:
            return parse_doc_block(block.markdown, block.line_number, config)
    return None


def _splice(
    declarations: tuple[Declaration, ...], owner: str, member: Declaration
) -> tuple[Declaration, ...]:
    """Return `declarations` with `member` appended to the declaration at `owner`."""
    spliced = []
    for declaration in declarations:
        if declaration.path == owner:
            declaration = replace(declaration, members=(*declaration.members, member))
        elif owner.startswith(declaration.path + PATH_SEPARATOR):
            declaration = replace(
                declaration, members=_splice(declaration.members, owner, member)
            )
        spliced.append(declaration)
    return tuple(spliced)


def _inject_proxies(
    result: ParseResult,
    regions: RegionMap,
    blocks: list[CommentBlock],
    lines: list[TaggedLine],
    config: DocConfig,
) -> tuple[Declaration, ...]:
    synthetic = []
    for site in result.inject_sites:
        region = regions.get(RegionKind.PROXY, site.proxy)
        if region is None:
            raise MissingProxyReferenceError(
                f"`[inject: {site.proxy}]` references unknown proxy `{site.proxy}`",
                site.line_number,
            )
        signature = region.first_line()
        head = parse_signature(signature, site.owner) if signature else None
        if head is None:
            raise OrphanedAnnotationError(
                f"Proxy `{site.proxy}` does not start with a declaration", region.line_number
            )
        synthetic.append(
            (
                site.owner,
                replace(
                    head,
                    doc=_proxy_doc(site.proxy, blocks, lines, config),
                    line_number=site.line_number,
                    synthetic=True,
                ),
            )
        )

    if not synthetic:
        return result.declarations

    symbols = SymbolTable.from_declarations(result.declarations)
    for _, member in synthetic:
        symbols.add(member)

    declarations = result.declarations
    for owner, member in synthetic:
        logger.debug("Injecting proxy member `%s` into `%s`", member.path, owner)
        declarations = _splice(declarations, owner, resolve_declaration(member, symbols))
    return declarations


def _is_visible(visibility: Visibility, config: DocConfig) -> bool:
    if visibility is Visibility.PROTECTED:
        return config.document_protected
    if visibility is Visibility.PRIVATE:
        return config.document_private
    return True


def _export(declaration: Declaration, config: DocConfig) -> Declaration | None:
    """Apply the export settings to a declaration and its members.

    Enumerators always follow their enum. A struct or class stays when it is
    documented or when any of its members stays.
    """
    if not _is_visible(declaration.visibility, config):
        return None
    if declaration.kind in (DeclarationKind.STRUCT, DeclarationKind.CLASS):
        members = tuple(
            exported
            for exported in (_export(member, config) for member in declaration.members)
            if exported is not None
        )
        if config.show_all or declaration.doc is not None or members:
            return replace(declaration, members=members)
        return None
    if config.show_all or declaration.doc is not None:
        return declaration
    return None


def build_model(
    result: ParseResult,
    regions: RegionMap,
    blocks: list[CommentBlock],
    lines: list[TaggedLine],
    file: str,
    config: DocConfig | None = None,
) -> DocumentModel:
    """Assemble the document model of one source file.

    Proxies are injected into their owners as synthetic members whose
    references resolve with the synthetic path as context. Example fences
    then receive their snippet text, and the export settings are applied
    last.

    Injection runs after `resolve_references`, so docs written in the source
    cannot link to an injected member; only the proxy's own doc sees it.

    Args:
        result: Resolved output of `parse_declarations`.
        regions: Output of `extract_regions`.
        blocks: Output of `aggregate_comments`, used to find proxy docs.
        lines: Output of `classify_lines`.
        file: Identifier of the source file.
        config: Configuration with the export settings. Defaults to a new
            `DocConfig` when omitted.

    Returns:
        DocumentModel: Fully linked documentation of the file.

    Raises:
        MissingSnippetReferenceError: If an example names an unknown snippet.
        MissingProxyReferenceError: If an inject marker names an unknown proxy.
        OrphanedAnnotationError: If a proxy does not start with a declaration.
        UnresolvedReferenceError: If a proxy doc reference matches nothing.
        AmbiguousReferenceError: If a proxy doc reference matches several paths.
    """
    config = config or DocConfig()
    snippets = regions.snippets

    declarations = _inject_proxies(result, regions, blocks, lines, config)
    declarations = tuple(_substitute_snippets(declaration, snippets) for declaration in declarations)
    declarations = tuple(
        exported
        for exported in (_export(declaration, config) for declaration in declarations)
        if exported is not None
    )

    return DocumentModel(
        file=file,
        declarations=declarations,
        symbols=SymbolTable.from_declarations(declarations),
        snippets=snippets,
        proxies=regions.proxies,
        inject_sites=result.inject_sites,
    )


def build_document(
    content: str, file: str = "<string>", config: DocConfig | None = None
) -> DocumentModel:
    """Run the whole pipeline on one source text.

    Args:
        content: Source text of an annotated header.
        file: Identifier used in error messages and stored on the model.
        config: Configuration. Defaults to a new `DocConfig` when omitted.

    Returns:
        DocumentModel: Fully linked documentation of the file.

    Raises:
        ConfigError: If the configuration fails validation.
        DocError: Any parse or resolution error, with `file` filled in.

    Examples:
        model = build_document(Path("Foo.h").read_text(), "Foo.h")
        model.find("Foo::Foo").doc.references
    """
    config = config or DocConfig()
    validate_config(config)

    try:
        lines = classify_lines(content, config)
        regions = extract_regions(lines)
        blocks = aggregate_comments(lines)
        result = parse_declarations(lines, blocks, config)
        result = resolve_references(result)
        model = build_model(result, regions, blocks, lines, file, config)
    except DocError as error:
        if error.file is None:
            error.file = file
        raise

    logger.info(
        "Built documentation for %s: %d declarations, %d snippets, %d proxies",
        file,
        len(model.symbols),
        len(model.snippets),
        len(model.proxies),
    )
    return model
