"""Declaration recognition and symbol table construction."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from enum import Enum, auto

from .comments import parse_doc_block
from .config import DocConfig, validate_config
from .constants import (
    ACCESS_SPECIFIER_PATTERN,
    ALIAS_PATTERN,
    BARE_MACRO_PATTERN,
    ENUM_PATTERN,
    FUNCTION_SPECIFIERS,
    FUNCTION_SUFFIXES,
    NAMESPACE_PATTERN,
    OPERATOR_NAME_PATTERN,
    PATH_SEPARATOR,
    RECORD_PATTERN,
    TEMPLATE_PATTERN,
)
from .exceptions import MalformedMetadataError, OrphanedAnnotationError
from .models import (
    CommentBlock,
    Declaration,
    DeclarationKind,
    DocBlock,
    InjectSite,
    LineKind,
    MetadataValue,
    Parameter,
    ParseResult,
    SymbolTable,
    TaggedLine,
    Visibility,
)

logger = logging.getLogger(__name__)

_DOC_PLACEHOLDER = re.compile(r"\x00DOC_(\d+)\x00")
_ANNOTATION_CALL = re.compile(r"^(?P<macro>[A-Za-z_]\w*)\s*\((?P<args>.*)\)$", re.DOTALL)
_ENUMERATOR_PATTERN = re.compile(
    r"^(?P<name>[A-Za-z_]\w*)(?:\s*=\s*(?P<value>.+?))?(?:\s+(?P<macro>[A-Za-z_]\w*\s*\(.*\)))?$",
    re.DOTALL,
)
_PARAMETER_PATTERN = re.compile(
    r"^(?P<type>.*?[\s*&>])(?P<name>[A-Za-z_]\w*)(?P<array>\s*\[[^\]]*\])?$", re.DOTALL
)
_PROPERTY_PATTERN = re.compile(
    r"^(?P<type>.*?[\s*&>])(?P<name>[A-Za-z_]\w*)\s*(?P<array>\[[^\]]*\])?$", re.DOTALL
)
_TRAILING_NAME = re.compile(r"(?P<name>~?[A-Za-z_]\w*)\s*$")
_BUILTIN_TYPES = frozenset(
    {"int", "char", "short", "long", "float", "double", "bool", "unsigned", "signed", "void"}
)
_PROPERTY_QUALIFIERS = frozenset({"static", "mutable", "constexpr", "inline"})
_ANNOTATION_KINDS = {
    "enum": DeclarationKind.ENUM,
    "struct": DeclarationKind.STRUCT,
    "class": DeclarationKind.CLASS,
    "function": DeclarationKind.FUNCTION,
    "property": DeclarationKind.PROPERTY,
}


class _Body(Enum):
    """What a brace-delimited scope contains."""

    ROOT = auto()
    RECORD = auto()
    ENUM = auto()
    TRANSPARENT = auto()
    SKIP = auto()


@dataclass
class _Scope:
    body: _Body
    head: Declaration | None = None
    visibility: Visibility = Visibility.PUBLIC
    members: list[Declaration] = field(default_factory=list)
    depth: int = 0


@dataclass
class _Annotation:
    macro: str
    kind: DeclarationKind
    args: str
    metadata: dict[str, MetadataValue]
    line_number: int


@dataclass
class _ParseState:
    """Mutable scanner state while walking code lines."""

    config: DocConfig
    macros: dict[str, str]
    scopes: list[_Scope] = field(default_factory=lambda: [_Scope(_Body.ROOT)])
    statement: list[str] = field(default_factory=list)
    statement_line: int = 0
    paren_depth: int = 0
    angle_depth: int = 0
    init_depth: int = 0
    equals_seen: bool = False
    parameter_docs: list[DocBlock] = field(default_factory=list)
    pending_doc: DocBlock | None = None
    pending_annotation: _Annotation | None = None
    pending_template: str | None = None
    in_block_comment: bool = False
    in_preprocessor: bool = False
    in_proxy: bool = False
    inject_sites: list[InjectSite] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.statement)

    def reset_statement(self) -> None:
        self.statement.clear()
        self.statement_line = 0
        self.paren_depth = 0
        self.angle_depth = 0
        self.init_depth = 0
        self.equals_seen = False
        self.parameter_docs = []


def normalize_signature(text: str) -> str:
    """Collapse whitespace in declaration text and drop doc placeholders.

    Examples:
        normalize_signature("void Foo(\\n    int A,\\n    int B)")  # "void Foo(int A, int B)"
    """
    text = _DOC_PLACEHOLDER.sub(" ", text)
    text = re.sub(r"\s+", " ", text).strip()
    text = re.sub(r"\(\s+", "(", text)
    text = re.sub(r"\s+\)", ")", text)
    return re.sub(r"\s+,", ",", text)


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split text on a separator that is not nested in brackets or quotes.

    Examples:
        split_top_level("TMap<int, int> A, int B = F(1, 2)")
        # ["TMap<int, int> A", " int B = F(1, 2)"]
    """
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    index = 0
    while index < len(text):
        char = text[index]
        if quote:
            current.append(char)
            if char == "\\" and index + 1 < len(text):
                current.append(text[index + 1])
                index += 2
                continue
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
            current.append(char)
        elif char in "([{<":
            depth += 1
            current.append(char)
        elif char in ")]}>":
            depth = max(depth - 1, 0)
            current.append(char)
        elif char == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
        index += 1
    parts.append("".join(current))
    return parts


def _find_top_level(text: str, target: str) -> int:
    """Return the index of the first `target` character outside brackets, or -1."""
    depth = 0
    for index, char in enumerate(text):
        if char in "([{":
            if char == target and depth == 0:
                return index
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif char == target and depth == 0:
            return index
    return -1


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _is_balanced(text: str) -> bool:
    depth = 0
    quote: str | None = None
    for char in text:
        if quote:
            if char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def parse_metadata(args: str, line_number: int = 0) -> dict[str, MetadataValue]:
    """Parse an annotation macro argument list into a mapping.

    Bare flags map to True, ``key = value`` pairs to the value with quotes
    removed, and ``key = (...)`` groups to nested mappings.

    Args:
        args: Text between the macro's outer parentheses.
        line_number: Line reported when the argument list is malformed.

    Returns:
        dict[str, MetadataValue]: Metadata in argument order.

    Raises:
        MalformedMetadataError: If parentheses are unbalanced.

    Examples:
        parse_metadata("BlueprintType, Meta = (Foo = Bar)")
        # {"BlueprintType": True, "Meta": {"Foo": "Bar"}}
    """
    if not _is_balanced(args):
        raise MalformedMetadataError(f"Unbalanced parentheses in `({args.strip()})`", line_number)

    metadata: dict[str, MetadataValue] = {}
    for item in split_top_level(args):
        item = item.strip()
        if not item:
            continue
        equals = _find_top_level(item, "=")
        if equals < 0:
            metadata[_strip_quotes(item)] = True
            continue
        key = _strip_quotes(item[:equals].strip())
        value = item[equals + 1 :].strip()
        if not key:
            raise MalformedMetadataError(f"Missing key in `{item}`", line_number)
        if value.startswith("(") and value.endswith(")"):
            metadata[key] = parse_metadata(value[1:-1], line_number)
        else:
            metadata[key] = _strip_quotes(value)
    return metadata


def _template_parameters(template: str) -> tuple[str, ...]:
    start = template.find("<")
    end = template.rfind(">")
    if start < 0 or end <= start:
        return ()
    return tuple(
        normalize_signature(part) for part in split_top_level(template[start + 1 : end]) if part.strip()
    )


def _join(owner_path: str | None, name: str) -> str:
    return f"{owner_path}{PATH_SEPARATOR}{name}" if owner_path else name


def _parse_parameters(args: str, docs: list[DocBlock]) -> tuple[Parameter, ...]:
    parameters = []
    for chunk in split_top_level(args):
        doc = None
        placeholder = _DOC_PLACEHOLDER.search(chunk)
        if placeholder:
            doc = docs[int(placeholder.group(1))]
        text = normalize_signature(chunk)
        if not text or text == "void":
            continue
        default = None
        equals = _find_top_level(text, "=")
        if equals >= 0:
            default = text[equals + 1 :].strip()
            text = text[:equals].strip()
        name = None
        value_type = text
        match = _PARAMETER_PATTERN.match(text)
        if match and match.group("type").strip() and match.group("name") not in _BUILTIN_TYPES:
            name = match.group("name")
            value_type = match.group("type").strip() + (match.group("array") or "").strip()
        parameters.append(Parameter(type=value_type, name=name, default=default, doc=doc))
    return tuple(parameters)


def _find_matching_paren(text: str, start: int) -> int:
    depth = 0
    for index in range(start, len(text)):
        if text[index] == "(":
            depth += 1
        elif text[index] == ")":
            depth -= 1
            if depth == 0:
                return index
    return -1


def _parse_function(
    text: str, owner_path: str | None, owner_name: str | None, docs: list[DocBlock], line_number: int
) -> Declaration | None:
    search_from = 0
    call_operator = text.find("operator()")
    if call_operator >= 0:
        search_from = call_operator + len("operator()")
    open_paren = text.find("(", search_from)
    if open_paren < 0:
        return None
    close_paren = _find_matching_paren(text, open_paren)
    if close_paren < 0:
        return None

    before = normalize_signature(text[:open_paren])
    operator_match = OPERATOR_NAME_PATTERN.search(before)
    name_match = operator_match or _TRAILING_NAME.search(before)
    if not name_match:
        return None
    name = re.sub(r"\s+", "", name_match.group("name")) if operator_match else name_match.group("name")

    qualifiers: list[str] = []
    return_tokens: list[str] = []
    for token in before[: name_match.start()].split():
        if token in FUNCTION_SPECIFIERS:
            qualifiers.append(token)
        else:
            return_tokens.append(token)
    return_type = " ".join(return_tokens) or None

    is_special = name == owner_name or name.startswith("~")
    if return_type is None and not is_special:
        # A bare call, not a declaration
        return None

    after = normalize_signature(text[close_paren + 1 :])
    if after.startswith(":"):
        # Constructor initializer list
        after = ""
    suffix = after
    pure = re.search(r"=\s*0$", suffix)
    if pure:
        qualifiers.append("pure")
        suffix = suffix[: pure.start()]
    for keyword in ("default", "delete"):
        if re.search(rf"=\s*{keyword}$", suffix):
            qualifiers.append(keyword)
            suffix = re.sub(rf"=\s*{keyword}$", "", suffix)
    qualifiers.extend(token for token in suffix.split() if token in FUNCTION_SUFFIXES)

    return Declaration(
        kind=DeclarationKind.FUNCTION,
        name=name,
        path=_join(owner_path, name),
        line_number=line_number,
        signature=normalize_signature(text) + ";",
        parameters=_parse_parameters(text[open_paren + 1 : close_paren], docs),
        return_type=return_type,
        qualifiers=tuple(qualifiers),
    )


def _parse_property(text: str, owner_path: str | None, line_number: int) -> Declaration | None:
    text = normalize_signature(text)
    default = None
    equals = _find_top_level(text, "=")
    if equals >= 0:
        default = text[equals + 1 :].strip()
        declarator = text[:equals].strip()
    else:
        brace = _find_top_level(text, "{")
        if brace >= 0:
            default = text[brace:].strip()
            declarator = text[:brace].strip()
        else:
            declarator = text

    match = _PROPERTY_PATTERN.match(declarator)
    if not match:
        return None

    qualifiers = []
    type_tokens = []
    for token in match.group("type").split():
        if token in _PROPERTY_QUALIFIERS:
            qualifiers.append(token)
        else:
            type_tokens.append(token)
    value_type = " ".join(type_tokens)
    if not value_type or match.group("name") in _BUILTIN_TYPES:
        return None
    if not re.match(r"^[A-Za-z_]", value_type) or "." in value_type or "->" in value_type:
        return None
    value_type += (match.group("array") or "").replace(" ", "")

    name = match.group("name")
    return Declaration(
        kind=DeclarationKind.PROPERTY,
        name=name,
        path=_join(owner_path, name),
        line_number=line_number,
        signature=text + ";",
        value_type=value_type,
        default=default,
        qualifiers=tuple(qualifiers),
    )


def classify_head(
    text: str,
    owner_path: str | None = None,
    owner_name: str | None = None,
    docs: list[DocBlock] | None = None,
    line_number: int = 0,
) -> Declaration | None:
    """Recognize a declaration head.

    Args:
        text: Statement text without its terminator. May contain doc
            placeholders for parameter comments.
        owner_path: Qualified path of the enclosing declaration.
        owner_name: Name of the enclosing declaration, used to spot constructors.
        docs: Parameter docs referenced by placeholders in `text`.
        line_number: Line where the statement starts.

    Returns:
        Declaration | None: Declaration without documentation, annotation or
            members, or None when the statement declares nothing.

    Examples:
        classify_head("struct BAR Foo : public Bar").name  # "Foo"
        classify_head("void Injected() const").qualifiers  # ("const",)
    """
    normalized = normalize_signature(text)
    if not normalized or ALIAS_PATTERN.match(normalized) or NAMESPACE_PATTERN.match(normalized):
        return None

    enum_match = ENUM_PATTERN.match(normalized)
    if enum_match:
        name = enum_match.group("name")
        return Declaration(
            kind=DeclarationKind.ENUM,
            name=name,
            path=_join(owner_path, name),
            line_number=line_number,
            signature=normalized + ";",
            value_type=(enum_match.group("underlying") or "").strip() or None,
        )

    record_match = RECORD_PATTERN.match(normalized)
    if record_match:
        name = record_match.group("name")
        api = record_match.group("api")
        if name == "final" and api:
            name, api = api, None
        bases = tuple(
            base.strip() for base in split_top_level(record_match.group("bases") or "") if base.strip()
        )
        kind = DeclarationKind.STRUCT if record_match.group("keyword") == "struct" else DeclarationKind.CLASS
        return Declaration(
            kind=kind,
            name=name,
            path=_join(owner_path, name),
            line_number=line_number,
            signature=normalized + ";",
            bases=bases,
            api=api,
            visibility=Visibility.PUBLIC,
        )

    paren = text.find("(")
    equals = _find_top_level(text, "=")
    if paren >= 0 and (equals < 0 or equals > paren or "operator" in text[:paren]):
        return _parse_function(text, owner_path, owner_name, docs or [], line_number)

    return _parse_property(text, owner_path, line_number)


def parse_signature(text: str, owner_path: str | None = None) -> Declaration | None:
    """Recognize a single declaration written on one line, such as proxy content.

    Examples:
        parse_signature("void Injected() const;", "Who").path  # "Who::Injected"
    """
    text = text.strip()
    if text.endswith(";"):
        text = text[:-1]
    owner_name = owner_path.rpartition(PATH_SEPARATOR)[2] if owner_path else None
    return classify_head(text, owner_path, owner_name)


def _owner(state: _ParseState) -> Declaration | None:
    for scope in reversed(state.scopes):
        if scope.body in (_Body.RECORD, _Body.ENUM):
            return scope.head
    return None


def _record_scope(state: _ParseState) -> _Scope | None:
    for scope in reversed(state.scopes):
        if scope.body is _Body.RECORD:
            return scope
    return None


def _same_declaration(first: Declaration, second: Declaration) -> bool:
    if first.path != second.path or first.kind is not second.kind:
        return False
    if first.kind is DeclarationKind.FUNCTION:
        return [p.type for p in first.parameters] == [p.type for p in second.parameters]
    return True


def _add_member(state: _ParseState, declaration: Declaration) -> None:
    for scope in reversed(state.scopes):
        if scope.body in (_Body.ROOT, _Body.RECORD):
            break
    for index, existing in enumerate(scope.members):
        if _same_declaration(existing, declaration):
            if declaration.is_forward and not existing.is_forward:
                logger.debug(
                    "Keeping the definition of `%s` from line %d over the forward declaration at line %d",
                    existing.path,
                    existing.line_number,
                    declaration.line_number,
                )
                return
            logger.debug(
                "Replacing `%s` from line %d with the declaration at line %d",
                existing.path,
                existing.line_number,
                declaration.line_number,
            )
            del scope.members[index]
            break
    scope.members.append(declaration)


def _drop_pending_doc(state: _ParseState, reason: str) -> None:
    if state.pending_doc is not None:
        logger.debug("Dropping doc comment at line %d: %s", state.pending_doc.line_number, reason)
        state.pending_doc = None


def _decorate(state: _ParseState, head: Declaration | None) -> Declaration | None:
    """Attach pending documentation, annotation and template to a declaration head."""
    annotation = state.pending_annotation
    template = state.pending_template
    state.pending_annotation = None
    state.pending_template = None

    if head is None:
        if annotation is not None:
            raise OrphanedAnnotationError(
                f"`{annotation.macro}` is not followed by a declaration", annotation.line_number
            )
        _drop_pending_doc(state, "no declaration follows")
        return None

    if annotation is not None and annotation.kind is not head.kind:
        raise OrphanedAnnotationError(
            f"`{annotation.macro}` expects a {annotation.kind.value} declaration, "
            f"found {head.kind.value} `{head.name}`",
            annotation.line_number,
        )

    record = _record_scope(state)
    doc = state.pending_doc
    state.pending_doc = None
    return replace(
        head,
        doc=doc,
        annotation=annotation.macro if annotation else None,
        annotation_args=annotation.args if annotation else None,
        metadata=annotation.metadata if annotation else {},
        template=template,
        template_parameters=_template_parameters(template) if template else (),
        visibility=record.visibility if record else Visibility.PUBLIC,
    )


def _starts_with_annotation(state: _ParseState) -> bool:
    match = re.match(r"\s*(?P<macro>[A-Za-z_]\w*)\s*\(", state.text)
    return bool(match and match.group("macro") in state.macros)


def _try_take_annotation(state: _ParseState) -> bool:
    """Pull a completed annotation or macro invocation out of the statement."""
    if state.scopes[-1].body is _Body.ENUM:
        return False
    text = state.text.strip()
    match = _ANNOTATION_CALL.match(text)
    if not match:
        return False

    macro = match.group("macro")
    if macro in state.macros:
        previous = state.pending_annotation
        if previous is not None:
            raise OrphanedAnnotationError(
                f"`{previous.macro}` is followed by another annotation `{macro}` "
                f"(line {state.statement_line}) instead of a declaration",
                previous.line_number,
            )
        state.pending_annotation = _Annotation(
            macro=macro,
            kind=_ANNOTATION_KINDS[state.macros[macro]],
            args=match.group("args").strip(),
            metadata=parse_metadata(match.group("args"), state.statement_line),
            line_number=state.statement_line,
        )
        state.reset_statement()
        return True

    if BARE_MACRO_PATTERN.match(text):
        # Macro invocation such as GENERATED_BODY()
        state.reset_statement()
        return True
    return False


def _append(state: _ParseState, chunk: str, line_number: int) -> None:
    if not state.statement:
        if not chunk.strip():
            return
        state.statement_line = line_number
    state.statement.append(chunk)


def _take_template(state: _ParseState) -> None:
    state.pending_template = normalize_signature(state.text)
    state.reset_statement()


def _try_access_specifier(state: _ParseState, text: str, index: int) -> bool:
    scope = state.scopes[-1]
    if scope.body is not _Body.RECORD:
        return False
    if text.startswith("::", index) or (index > 0 and text[index - 1] == ":"):
        return False
    match = ACCESS_SPECIFIER_PATTERN.match(state.text.strip() + ":")
    if not match:
        return False
    scope.visibility = Visibility(match.group("visibility"))
    state.reset_statement()
    return True


def _end_enumerator(state: _ParseState) -> None:
    text = normalize_signature(state.text)
    line_number = state.statement_line
    state.reset_statement()
    scope = state.scopes[-1]
    if not text:
        return
    match = _ENUMERATOR_PATTERN.match(text)
    if not match:
        _drop_pending_doc(state, f"`{text}` is not an enumerator")
        return

    annotation = None
    metadata: dict[str, MetadataValue] = {}
    if match.group("macro"):
        call = _ANNOTATION_CALL.match(match.group("macro").strip())
        if call:
            annotation = call.group("macro")
            metadata = parse_metadata(call.group("args"), line_number)

    name = match.group("name")
    doc = state.pending_doc
    state.pending_doc = None
    scope.members.append(
        Declaration(
            kind=DeclarationKind.MEMBER,
            name=name,
            path=_join(scope.head.path if scope.head else None, name),
            line_number=line_number,
            signature=text,
            annotation=annotation,
            metadata=metadata,
            doc=doc,
            default=(match.group("value") or "").strip() or None,
        )
    )


def _end_statement(state: _ParseState, terminator: str) -> None:
    text = state.text
    line_number = state.statement_line
    docs = state.parameter_docs
    scope = state.scopes[-1]

    if scope.body is _Body.ENUM:
        _end_enumerator(state)
        return

    state.reset_statement()
    if not text.strip():
        if terminator == "{":
            _decorate(state, None)
            state.scopes.append(_Scope(_Body.SKIP, depth=1))
        return

    owner = _owner(state)
    head = classify_head(
        text,
        owner.path if owner else None,
        owner.name if owner else None,
        docs,
        line_number,
    )

    if terminator == ";":
        if head is not None and head.kind is not DeclarationKind.PROPERTY:
            head = replace(head, is_forward=True)
        declaration = _decorate(state, head)
        if declaration is not None:
            _add_member(state, declaration)
        return

    if head is not None and head.kind is DeclarationKind.PROPERTY:
        # Brace initializer such as `int A{0};`
        state.statement = [text, "{"]
        state.statement_line = line_number
        state.parameter_docs = docs
        state.init_depth = 1
        return

    if head is None and NAMESPACE_PATTERN.match(text.strip()):
        _decorate(state, None)
        state.scopes.append(_Scope(_Body.TRANSPARENT))
        return

    declaration = _decorate(state, head)
    if declaration is None:
        state.scopes.append(_Scope(_Body.SKIP, depth=1))
    elif declaration.kind in (DeclarationKind.STRUCT, DeclarationKind.CLASS):
        default_visibility = (
            Visibility.PUBLIC if declaration.kind is DeclarationKind.STRUCT else Visibility.PRIVATE
        )
        state.scopes.append(_Scope(_Body.RECORD, head=declaration, visibility=default_visibility))
    elif declaration.kind is DeclarationKind.ENUM:
        state.scopes.append(_Scope(_Body.ENUM, head=declaration))
    else:
        _add_member(state, declaration)
        state.scopes.append(_Scope(_Body.SKIP, depth=1))


def _close_scope(state: _ParseState) -> None:
    scope = state.scopes[-1]
    if scope.body is _Body.ENUM:
        _end_enumerator(state)
    elif state.text.strip():
        _end_statement(state, ";")

    if state.pending_annotation is not None:
        raise OrphanedAnnotationError(
            f"`{state.pending_annotation.macro}` is not followed by a declaration",
            state.pending_annotation.line_number,
        )
    _drop_pending_doc(state, "scope closes before a declaration")
    state.pending_template = None

    if len(state.scopes) == 1:
        return
    state.scopes.pop()
    if scope.body in (_Body.RECORD, _Body.ENUM) and scope.head is not None:
        _add_member(state, replace(scope.head, members=tuple(scope.members)))


def _literal_end(text: str, start: int) -> int:
    quote = text[start]
    index = start + 1
    while index < len(text):
        if text[index] == "\\":
            index += 2
            continue
        if text[index] == quote:
            return index + 1
        index += 1
    return len(text)


def _scan_code(state: _ParseState, text: str, line_number: int) -> None:
    """Feed one code line to the statement scanner."""
    index = 0
    while index < len(text):
        scope = state.scopes[-1]
        char = text[index]

        if state.in_block_comment:
            end = text.find("*/", index)
            if end < 0:
                break
            state.in_block_comment = False
            index = end + 2
            continue
        if text.startswith("/*", index):
            state.in_block_comment = True
            index += 2
            continue
        if text.startswith("//", index):
            break

        if char in "\"'":
            end = _literal_end(text, index)
            if scope.body is not _Body.SKIP:
                _append(state, text[index:end], line_number)
            index = end
            continue

        if scope.body is _Body.SKIP:
            if char == "{":
                scope.depth += 1
            elif char == "}":
                scope.depth -= 1
                if scope.depth == 0:
                    state.scopes.pop()
            index += 1
            continue

        if state.init_depth:
            _append(state, char, line_number)
            if char == "{":
                state.init_depth += 1
            elif char == "}":
                state.init_depth -= 1
            index += 1
            continue

        if char == "(":
            state.paren_depth += 1
            _append(state, char, line_number)
        elif char == ")":
            state.paren_depth -= 1
            _append(state, char, line_number)
            if state.paren_depth < 0:
                if _starts_with_annotation(state):
                    raise MalformedMetadataError(
                        f"Unbalanced parentheses in `{normalize_signature(state.text)}`",
                        state.statement_line,
                    )
                state.paren_depth = 0
            elif state.paren_depth == 0:
                _try_take_annotation(state)
        elif state.paren_depth > 0:
            if char in ";{}" and _starts_with_annotation(state):
                raise MalformedMetadataError(
                    f"Unbalanced parentheses in `{normalize_signature(state.text)}`",
                    state.statement_line,
                )
            _append(state, char, line_number)
        elif TEMPLATE_PATTERN.match(state.text.lstrip() + char) and char in "<>":
            state.angle_depth += 1 if char == "<" else -1
            _append(state, char, line_number)
            if state.angle_depth == 0:
                _take_template(state)
        elif state.angle_depth > 0:
            _append(state, char, line_number)
        elif char == ";":
            _end_statement(state, ";")
        elif char == "{":
            if state.equals_seen:
                state.init_depth = 1
                _append(state, char, line_number)
            else:
                _end_statement(state, "{")
        elif char == "}":
            _close_scope(state)
        elif char == "," and scope.body is _Body.ENUM:
            _end_enumerator(state)
        elif char == ":" and _try_access_specifier(state, text, index):
            pass
        else:
            if char == "=" and "operator" not in state.text:
                state.equals_seen = True
            _append(state, char, line_number)
        index += 1

    _end_line(state)


def _end_line(state: _ParseState) -> None:
    text = state.text.strip()
    if not text:
        return
    if (
        state.paren_depth == 0
        and state.scopes[-1].body is not _Body.ENUM
        and re.fullmatch(r"[A-Z_][A-Z0-9_]*", text)
        and text not in state.macros
    ):
        # Lone macro invocation such as INJECT
        state.reset_statement()
        return
    state.statement.append("\n")


def _handle_doc(state: _ParseState, block: CommentBlock) -> None:
    if state.scopes[-1].body is _Body.SKIP:
        return
    doc = parse_doc_block(block.markdown, block.line_number, state.config)
    if state.statement and state.paren_depth > 0:
        if _starts_with_annotation(state):
            logger.debug(
                "Dropping doc comment at line %d: inside annotation arguments", block.line_number
            )
            return
        # Parameter documentation, attached when the parameter list is split
        state.statement.append(f"\x00DOC_{len(state.parameter_docs)}\x00")
        state.parameter_docs.append(doc)
        return
    _drop_pending_doc(state, "another doc comment follows")
    state.pending_doc = doc


def _handle_inject(state: _ParseState, line: TaggedLine) -> None:
    scope = _record_scope(state)
    if scope is None or scope.head is None:
        raise OrphanedAnnotationError(
            f"`[inject: {line.name}]` outside of a struct or class body", line.line_number
        )
    state.inject_sites.append(InjectSite(line.name or "", scope.head.path, line.line_number))


def _handle_preprocessor(state: _ParseState, line: TaggedLine) -> bool:
    stripped = line.text.strip()
    if state.in_preprocessor:
        state.in_preprocessor = stripped.endswith("\\")
        return True
    if not state.statement and not state.in_block_comment and stripped.startswith("#"):
        state.in_preprocessor = stripped.endswith("\\")
        return True
    return False


def parse_declarations(
    lines: list[TaggedLine], blocks: list[CommentBlock], config: DocConfig | None = None
) -> ParseResult:
    """Recognize declarations and build the symbol table.

    Declarations are found by a statement scanner that follows parentheses,
    braces, string literals and comments without parsing the host language.
    Struct and class bodies recurse, enum bodies yield enumerators, function
    bodies and unknown blocks are skipped. Redeclarations of one path are
    merged, the last one wins.

    Args:
        lines: Output of `classify_lines`.
        blocks: Output of `aggregate_comments` for the same lines.
        config: Configuration with the annotation macros. Defaults to a new
            `DocConfig` when omitted.

    Returns:
        ParseResult: Top-level declarations, symbol table and inject sites.

    Raises:
        ConfigError: If the configuration fails validation.
        MalformedMetadataError: If an annotation argument list is unbalanced.
        OrphanedAnnotationError: If an annotation or inject marker has no
            matching declaration.

    Examples:
        lines = classify_lines(source)
        result = parse_declarations(lines, aggregate_comments(lines))
        result.symbols.lookup("Foo::Foo")
    """
    config = config or DocConfig()
    validate_config(config)
    state = _ParseState(config=config, macros=config.annotation_macros())
    blocks_by_start = {block.start_index: block for block in blocks}

    for index, line in enumerate(lines):
        if line.ignored:
            continue

        if line.kind is LineKind.PROXY_BEGIN:
            # The doc comment above a proxy documents the proxy
            state.pending_doc = None
            state.in_proxy = True
            continue
        if line.kind is LineKind.PROXY_END:
            state.in_proxy = False
            continue
        if state.in_proxy:
            continue

        if line.kind is LineKind.DOC_COMMENT:
            if index in blocks_by_start:
                _handle_doc(state, blocks_by_start[index])
        elif line.kind is LineKind.INJECT_REF:
            _handle_inject(state, line)
        elif line.kind is LineKind.CODE:
            if not _handle_preprocessor(state, line):
                _scan_code(state, line.text, line.line_number)

    if state.statement and _starts_with_annotation(state):
        raise MalformedMetadataError(
            f"Unbalanced parentheses in `{normalize_signature(state.text)}`", state.statement_line
        )
    if state.pending_annotation is not None:
        raise OrphanedAnnotationError(
            f"`{state.pending_annotation.macro}` is not followed by a declaration",
            state.pending_annotation.line_number,
        )
    _drop_pending_doc(state, "end of input")

    while len(state.scopes) > 1:
        logger.debug("Closing scope left open at end of input")
        state.reset_statement()
        _close_scope(state)

    declarations = tuple(state.scopes[0].members)
    return ParseResult(
        declarations=declarations,
        symbols=SymbolTable.from_declarations(declarations),
        inject_sites=tuple(state.inject_sites),
    )
