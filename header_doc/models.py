"""Data models for header-doc."""

from __future__ import annotations

import textwrap
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum, auto

from .constants import PATH_SEPARATOR

MetadataValue = str | bool | dict[str, "MetadataValue"]


class LineKind(Enum):
    """Classification of a single source line.

    Attributes:
        CODE: Ordinary source text, blank lines included.
        DOC_COMMENT: Markdown documentation line.
        TOOL_COMMENT: Tool comment that carries no directive (proxy content).
        SNIPPET_BEGIN: Opens a named snippet region.
        SNIPPET_END: Closes the open snippet region.
        PROXY_BEGIN: Opens a named proxy region.
        PROXY_END: Closes the open proxy region.
        INJECT_REF: Requests a proxy to be spliced into the enclosing declaration.
        IGNORE_BEGIN: Opens an ignore region.
        IGNORE_END: Closes the open ignore region.
    """

    CODE = auto()
    DOC_COMMENT = auto()
    TOOL_COMMENT = auto()
    SNIPPET_BEGIN = auto()
    SNIPPET_END = auto()
    PROXY_BEGIN = auto()
    PROXY_END = auto()
    INJECT_REF = auto()
    IGNORE_BEGIN = auto()
    IGNORE_END = auto()


class ScannerState(Enum):
    """Classifier states used while scanning source lines.

    Attributes:
        NORMAL: Default state.
        IN_IGNORE: Inside an ignore region.
    """

    NORMAL = auto()
    IN_IGNORE = auto()


@dataclass
class ScannerContext:
    """Encapsulate classifier state while walking source text.

    Attributes:
        state: Current scanner state.
        ignore_line: Line number of the open ignore marker, if any.
    """

    state: ScannerState = ScannerState.NORMAL
    ignore_line: int | None = None


@dataclass(frozen=True)
class TaggedLine:
    """One classified source line.

    Attributes:
        text: Line content. For comment kinds the comment prefix is removed.
        kind: Line classification.
        line_number: One-based line number in the source.
        offset: Character offset of the line start in the source.
        name: Directive argument for named markers; proxy tags are comma-joined.
        ignored: True for lines inside an ignore region.
        raw: Line as written, without the line ending.
    """

    text: str
    kind: LineKind
    line_number: int
    offset: int
    name: str | None = None
    ignored: bool = False
    raw: str = ""

    @property
    def tags(self) -> tuple[str, ...]:
        """Directive names; a proxy marker may list several, comma-separated."""
        return tuple(self.name.split(",")) if self.name else ()


class RegionKind(Enum):
    SNIPPET = "snippet"
    PROXY = "proxy"


@dataclass(frozen=True)
class Region:
    """Named span of captured code.

    Attributes:
        name: Region name, unique within its kind.
        kind: Snippet or proxy.
        lines: Captured lines in source order.
        line_number: Line of the opening marker.
    """

    name: str
    kind: RegionKind
    lines: tuple[str, ...]
    line_number: int

    @property
    def text(self) -> str:
        """Captured lines with their common indentation removed."""
        return textwrap.dedent("\n".join(self.lines)).strip("\n")

    def first_line(self) -> str | None:
        for line in self.lines:
            if line.strip():
                return line.strip()
        return None


@dataclass
class RegionMap:
    """Regions keyed by kind and name."""

    regions: dict[tuple[RegionKind, str], Region] = field(default_factory=dict)

    def get(self, kind: RegionKind, name: str) -> Region | None:
        return self.regions.get((kind, name))

    def _of_kind(self, kind: RegionKind) -> dict[str, Region]:
        return {name: region for (key, name), region in self.regions.items() if key is kind}

    @property
    def snippets(self) -> dict[str, Region]:
        return self._of_kind(RegionKind.SNIPPET)

    @property
    def proxies(self) -> dict[str, Region]:
        return self._of_kind(RegionKind.PROXY)


@dataclass(frozen=True)
class CommentBlock:
    """Consecutive doc-comment lines merged into one markdown text.

    Attributes:
        markdown: Comment text with prefixes removed.
        start_index: Index of the first tagged line of the block.
        end_index: Index of the last tagged line of the block.
        target_index: Index of the next non-blank tagged line, or None at end of input.
        line_number: Source line of the first comment line.
    """

    markdown: str
    start_index: int
    end_index: int
    target_index: int | None
    line_number: int


@dataclass(frozen=True)
class CrossReference:
    """Markdown link to a declaration.

    Attributes:
        kind: Kind hint written in the link (`enum`, `struct`, `class`, `function`).
        path: Path as written, `Self` alias included.
        line_number: Source line of the doc comment holding the link.
        target: Resolved qualified path, None before resolution.
    """

    kind: str
    path: str
    line_number: int = 0
    target: str | None = None


@dataclass(frozen=True)
class Paragraph:
    text: str
    section: str | None = None


@dataclass(frozen=True)
class ExampleRef:
    """Example fence naming a snippet.

    Attributes:
        name: Snippet name written in the fence body.
        section: Heading the fence appears under.
        line_number: Source line of the fence body.
        code: Snippet text, filled in when the document model is built.
    """

    name: str
    section: str | None = None
    line_number: int = 0
    code: str | None = None


@dataclass(frozen=True)
class DocBlock:
    """Markdown documentation attached to one declaration.

    Attributes:
        markdown: Unresolved markdown text as written in the comments.
        body: Paragraphs and example references in document order.
        references: Cross-references in document order.
        line_number: Source line of the first comment line.
    """

    markdown: str
    body: tuple[Paragraph | ExampleRef, ...] = ()
    references: tuple[CrossReference, ...] = ()
    line_number: int = 0

    @property
    def examples(self) -> tuple[ExampleRef, ...]:
        return tuple(item for item in self.body if isinstance(item, ExampleRef))

    def render(self, language: str = "cpp", snippet_info: str = "snippet") -> str:
        """Return the markdown with every example fence holding its snippet code.

        Fences whose snippet has not been substituted yet are written back
        unchanged.
        """
        parts = []
        for item in self.body:
            if isinstance(item, Paragraph):
                parts.append(item.text)
            elif item.code is None:
                parts.append(f"```{snippet_info}\n{item.name}\n```")
            else:
                parts.append(f"```{language}\n{item.code}\n```")
        return "\n\n".join(parts)


class DeclarationKind(Enum):
    ENUM = "enum"
    STRUCT = "struct"
    CLASS = "class"
    FUNCTION = "function"
    MEMBER = "member"
    PROPERTY = "property"


class Visibility(Enum):
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"


@dataclass(frozen=True)
class Parameter:
    """Function parameter. The default expression is kept as text."""

    type: str
    name: str | None = None
    default: str | None = None
    doc: DocBlock | None = None

    @property
    def signature(self) -> str:
        text = self.type if self.name is None else f"{self.type} {self.name}"
        if self.default is not None:
            text = f"{text} = {self.default}"
        return text


@dataclass(frozen=True)
class Declaration:
    """Named, kind-tagged structural unit of a header.

    Which optional fields are meaningful depends on `kind`: `members` for
    enums (enumerators), structs and classes; `parameters` and `return_type`
    for functions; `value_type` and `default` for properties and enumerators.

    Attributes:
        kind: Declaration kind.
        name: Unqualified name.
        path: Qualified path, ancestry joined with ``::``.
        line_number: Line where the declaration head starts.
        signature: Normalized declaration head text.
        annotation: Reflection macro name, if annotated.
        annotation_args: Raw argument text of the reflection macro.
        metadata: Parsed annotation arguments.
        template: Template head text, for example ``template <typename T>``.
        template_parameters: Parameters of the template head.
        visibility: Access level inside the enclosing declaration.
        doc: Attached documentation.
        members: Nested declarations in source order.
        parameters: Function parameters.
        return_type: Function return type, None for constructors.
        value_type: Property type or enum underlying type.
        default: Property initializer or enumerator value text.
        bases: Base class specifiers of structs and classes.
        api: Export macro between the keyword and the name.
        qualifiers: Function and property qualifiers such as ``virtual`` or ``const``.
        is_forward: True for declarations without a body.
        synthetic: True for members spliced in from a proxy.
    """

    kind: DeclarationKind
    name: str
    path: str
    line_number: int = 0
    signature: str = ""
    annotation: str | None = None
    annotation_args: str | None = None
    metadata: dict[str, MetadataValue] = field(default_factory=dict)
    template: str | None = None
    template_parameters: tuple[str, ...] = ()
    visibility: Visibility = Visibility.PUBLIC
    doc: DocBlock | None = None
    members: tuple[Declaration, ...] = ()
    parameters: tuple[Parameter, ...] = ()
    return_type: str | None = None
    value_type: str | None = None
    default: str | None = None
    bases: tuple[str, ...] = ()
    api: str | None = None
    qualifiers: tuple[str, ...] = ()
    is_forward: bool = False
    synthetic: bool = False

    @property
    def owner_path(self) -> str | None:
        head, separator, _ = self.path.rpartition(PATH_SEPARATOR)
        return head if separator else None

    def walk(self) -> Iterator[Declaration]:
        """Yield this declaration and every nested member, depth first."""
        yield self
        for member in self.members:
            yield from member.walk()

    def member(self, name: str) -> Declaration | None:
        for member in self.members:
            if member.name == name:
                return member
        return None


@dataclass(frozen=True)
class InjectSite:
    """Inject marker inside a struct or class body.

    Attributes:
        proxy: Name of the referenced proxy region.
        owner: Qualified path of the enclosing declaration.
        line_number: Line of the inject marker.
    """

    proxy: str
    owner: str
    line_number: int


@dataclass
class SymbolTable:
    """Qualified path to declarations. Overloads share one path."""

    entries: dict[str, list[Declaration]] = field(default_factory=dict)

    @classmethod
    def from_declarations(cls, declarations: tuple[Declaration, ...]) -> SymbolTable:
        table = cls()
        for declaration in declarations:
            for item in declaration.walk():
                table.add(item)
        return table

    def add(self, declaration: Declaration) -> None:
        self.entries.setdefault(declaration.path, []).append(declaration)

    def __contains__(self, path: str) -> bool:
        return path in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def lookup(self, path: str) -> list[Declaration]:
        return list(self.entries.get(path, ()))

    def paths_named(self, name: str) -> list[str]:
        """Return every path whose last segment is `name`, sorted."""
        return sorted(
            path for path in self.entries if path.rpartition(PATH_SEPARATOR)[2] == name
        )

    def kinds(self, path: str) -> set[DeclarationKind]:
        return {declaration.kind for declaration in self.entries.get(path, ())}


@dataclass(frozen=True)
class ParseResult:
    """Structured result of parsing declarations from one source text.

    Attributes:
        declarations: Top-level declarations in source order.
        symbols: Table of every declaration, nested members included.
        inject_sites: Inject markers in source order.
    """

    declarations: tuple[Declaration, ...]
    symbols: SymbolTable
    inject_sites: tuple[InjectSite, ...] = ()


@dataclass(frozen=True)
class DocumentModel:
    """Fully resolved documentation of one source file.

    Attributes:
        file: Identifier of the source file.
        declarations: Top-level declarations with resolved documentation.
        symbols: Table of every declaration in `declarations`.
        snippets: Snippet regions by name.
        proxies: Proxy regions by name.
        inject_sites: Inject markers that were spliced.
    """

    file: str
    declarations: tuple[Declaration, ...]
    symbols: SymbolTable
    snippets: dict[str, Region] = field(default_factory=dict)
    proxies: dict[str, Region] = field(default_factory=dict)
    inject_sites: tuple[InjectSite, ...] = ()

    def find(self, path: str) -> Declaration | None:
        """Return the last declaration registered at `path`, if any."""
        declarations = self.symbols.lookup(path)
        return declarations[-1] if declarations else None
