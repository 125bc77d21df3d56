from __future__ import annotations

import pytest

from header_doc.config import ConfigError, DocConfig
from header_doc.document import build_document
from header_doc.exceptions import (
    MissingProxyReferenceError,
    MissingSnippetReferenceError,
    OrphanedAnnotationError,
    UnresolvedReferenceError,
    UnterminatedRegionError,
)
from header_doc.serializer import dump_header


def _targets(model) -> dict[str, tuple[str, ...]]:
    targets = {}
    for declaration in model.declarations:
        for item in declaration.walk():
            if item.doc is not None and item.doc.references:
                targets[item.path] = tuple(reference.target for reference in item.doc.references)
    return targets


def test_examples_receive_snippet_code(sample_model):
    main = sample_model.find("Main")

    rendered = main.doc.render()
    assert rendered.count('printf("Hello");') == 1
    assert 'printf("World");' in rendered
    assert "struct Wait\n{\n\tint What = 0;\n};" in rendered
    assert "```snippet" not in rendered
    assert "////" not in rendered
    assert [example.code is not None for example in main.doc.examples] == [True, True, True]


def test_ignored_code_never_reaches_the_model(sample_model):
    for region in (*sample_model.snippets.values(), *sample_model.proxies.values()):
        assert "this->What" not in region.text
    for declaration in sample_model.declarations:
        for item in declaration.walk():
            if item.doc is not None:
                assert "this->What" not in item.doc.render()


def test_proxy_is_injected_into_owner(sample_model):
    who = sample_model.find("Who")
    injected = sample_model.find("Who::Injected")

    assert [member.name for member in who.members] == ["What", "SetWhat", "Injected"]
    assert injected.synthetic is True
    assert injected.signature == "void Injected() const;"
    assert injected.qualifiers == ("const",)
    assert injected.line_number == 138
    assert injected.doc.render() == "Proxy documentation for injecting code with macros."


def test_sample_references_are_resolved(sample_model):
    assert _targets(sample_model) == {
        "Foo": ("Foo::Foo", "Foo::A"),
        "Bar": ("Bar::Bar",),
        "Main": ("Main", "Something", "Foo", "Foo::Foo", "Foo::A", "Bar", "Main"),
    }


def test_model_carries_regions_and_file(sample_model):
    assert sample_model.file == "sample.h"
    assert set(sample_model.snippets) == {"hello_world", "hello_world2", "wait_what"}
    assert set(sample_model.proxies) == {"injectable"}
    assert [site.proxy for site in sample_model.inject_sites] == ["injectable"]


def test_dump_header_round_trip(sample_model):
    text = dump_header(sample_model)

    reparsed = build_document(text, "roundtrip.h")

    assert set(reparsed.symbols.entries) == set(sample_model.symbols.entries)
    assert _targets(reparsed) == _targets(sample_model)
    assert dump_header(reparsed) == text


def test_proxy_docs_resolve_with_synthetic_context():
    model = build_document(
        "\n".join(
            [
                "/// Calls [`function: Self`]()",
                "//// [proxy: getter]",
                "//// int Get() const;",
                "//// [/proxy]",
                "struct Foo",
                "{",
                "//// [inject: getter]",
                "};",
            ]
        )
    )

    injected = model.find("Foo::Get")
    assert injected.doc.references[0].target == "Foo::Get"


def test_missing_snippet_is_reported_with_file():
    source = "/// ```snippet\n/// nope\n/// ```\nvoid F();\n"

    with pytest.raises(MissingSnippetReferenceError) as error:
        build_document(source, "missing.h")

    assert error.value.file == "missing.h"
    assert "nope" in str(error.value)
    assert str(error.value).startswith("missing.h:")


def test_missing_proxy_is_reported():
    source = "struct Foo\n{\n//// [inject: nope]\n};\n"

    with pytest.raises(MissingProxyReferenceError) as error:
        build_document(source, "inject.h")

    assert error.value.line_number == 3
    assert "nope" in str(error.value)


def test_proxy_without_declaration_is_orphaned():
    source = "//// [proxy: broken]\n//// 42\n//// [/proxy]\nstruct Foo\n{\n//// [inject: broken]\n};\n"

    with pytest.raises(OrphanedAnnotationError) as error:
        build_document(source)

    assert error.value.line_number == 1


def test_parse_errors_are_stamped_with_file():
    with pytest.raises(UnterminatedRegionError) as error:
        build_document("int A;\n//// [snippet: open]\nint B;\n", "broken.h")

    assert error.value.file == "broken.h"
    assert str(error.value).startswith("broken.h:2: ")


def test_resolution_errors_are_stamped_with_file():
    with pytest.raises(UnresolvedReferenceError) as error:
        build_document("/// [`enum: Nothing`]()\nstruct Foo {};\n", "refs.h")

    assert error.value.file == "refs.h"
    assert error.value.line_number == 1


def test_invalid_config_is_rejected_before_parsing():
    with pytest.raises(ConfigError):
        build_document("int A;\n", config=DocConfig(max_line_length=0))


def test_export_defaults_keep_everything(sample_model):
    assert "Wait" in sample_model.symbols
    assert "Foo::A" in sample_model.symbols
    assert "Foo::Foo" in sample_model.symbols


def test_private_and_protected_members_can_be_hidden(sample_source: str):
    config = DocConfig(document_private=False, document_protected=False)

    model = build_document(sample_source, "sample.h", config)

    assert "Foo::A" not in model.symbols
    assert "Foo::Foo" not in model.symbols
    assert "Foo" in model.symbols
    assert "Bar::Bar" in model.symbols


def test_exported_only_keeps_documented_declarations(sample_source: str):
    model = build_document(sample_source, "sample.h", DocConfig(show_all=False))

    assert [declaration.name for declaration in model.declarations] == [
        "Something",
        "Foo",
        "Bar",
        "Main",
        "Who",
    ]
    assert [member.name for member in model.find("Who").members] == ["Injected"]
    assert [member.name for member in model.find("Something").members] == ["A", "B"]


def test_undocumented_record_with_documented_member_is_kept():
    model = build_document(
        "struct Plain\n{\n\t/// Documented\n\tint A;\n\tint B;\n};\n",
        config=DocConfig(show_all=False),
    )

    assert [member.name for member in model.find("Plain").members] == ["A"]


def test_inject_matches_any_proxy_tag():
    source = (
        "/// Shared proxy docs\n"
        "//// [proxy: a, b]\n"
        "//// void G();\n"
        "//// [/proxy]\n"
        "struct S\n"
        "{\n"
        "\t//// [inject: b]\n"
        "};\n"
    )

    model = build_document(source)

    injected = model.find("S::G")
    assert injected is not None
    assert injected.synthetic is True
    assert injected.doc.markdown == "Shared proxy docs"
    assert sorted(model.proxies) == ["a", "b"]


def test_owner_doc_cannot_link_to_injected_member():
    source = (
        "//// [proxy: p]\n"
        "//// void G();\n"
        "//// [/proxy]\n"
        "/// See [`struct: Self::G`]()\n"
        "struct S\n"
        "{\n"
        "\t//// [inject: p]\n"
        "};\n"
    )

    with pytest.raises(UnresolvedReferenceError) as error:
        build_document(source, "s.h")

    assert error.value.file == "s.h"
    assert error.value.line_number == 4
