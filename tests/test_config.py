from __future__ import annotations

import textwrap
import pytest
from pathlib import Path

from header_doc.config import (
    ConfigError,
    DocConfig,
    apply_overrides,
    build_config,
    load_config,
    validate_config,
)


def _write_pyproject(base: Path, body: str) -> Path:
    path = base / "pyproject.toml"
    path.write_text(textwrap.dedent(body).lstrip(), encoding="utf-8")
    return path


def _write_dotfile(base: Path, body: str) -> Path:
    path = base / ".header-doc.toml"
    path.write_text(textwrap.dedent(body).lstrip(), encoding="utf-8")
    return path


def test_loads_config_from_pyproject(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool.header-doc]
        doc_prefix = "//!"
        tool_prefix = "//@"
        snippet_info = "example"
        snippet_language = "c++"
        struct_macros = ["USTRUCT", "GAME_STRUCT"]
        show_all = false
        document_private = false
        max_file_size = 1
        max_line_length = 2
        """,
    )

    config = load_config(tmp_path)

    assert config == DocConfig(
        doc_prefix="//!",
        tool_prefix="//@",
        snippet_info="example",
        snippet_language="c++",
        struct_macros=["USTRUCT", "GAME_STRUCT"],
        show_all=False,
        document_private=False,
        max_file_size=1,
        max_line_length=2,
    )


def test_dashed_keys_are_accepted(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool.header-doc]
        show-all = false
        document-protected = false
        """,
    )

    config = load_config(tmp_path)

    assert config.show_all is False
    assert config.document_protected is False


@pytest.mark.parametrize("table", ["header-doc", "tool.header-doc"])
def test_loads_config_from_dotfile(tmp_path: Path, table: str):
    _write_dotfile(
        tmp_path,
        f"""
        [{table}]
        snippet_language = "cpp20"
        """,
    )
    nested = tmp_path / "child"
    nested.mkdir()

    config = load_config(nested)

    assert config.snippet_language == "cpp20"


def test_pyproject_wins_over_dotfile_in_same_directory(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool.header-doc]
        snippet_language = "from-pyproject"
        """,
    )
    _write_dotfile(
        tmp_path,
        """
        [header-doc]
        snippet_language = "from-dotfile"
        """,
    )

    assert load_config(tmp_path).snippet_language == "from-pyproject"


def test_load_config_walks_up_directories(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool.header-doc]
        enum_macros = ["UENUM", "GAME_ENUM"]
        """,
    )
    nested = tmp_path / "Source" / "Public" / "Game"
    nested.mkdir(parents=True)

    config = load_config(nested)

    assert config.enum_macros == ["UENUM", "GAME_ENUM"]


def test_pyproject_without_table_is_skipped(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool.header-doc]
        show_all = false
        """,
    )
    child = tmp_path / "child"
    child.mkdir()
    _write_pyproject(
        child,
        """
        [project]
        name = "unrelated"
        """,
    )

    assert load_config(child).show_all is False


def test_empty_config_table_stops_inheritance(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool.header-doc]
        show_all = false
        """,
    )
    child = tmp_path / "child"
    child.mkdir()
    _write_pyproject(
        child,
        """
        [tool.header-doc]
        """,
    )

    config = load_config(child)

    assert config.show_all is DocConfig().show_all


def test_load_config_returns_defaults_when_missing(tmp_path: Path):
    config = load_config(tmp_path)

    assert config == DocConfig()


def test_export_flags_default_to_keeping_everything():
    config = DocConfig()

    assert config.show_all is True
    assert config.document_protected is True
    assert config.document_private is True


def test_load_config_skips_invalid_toml(tmp_path: Path):
    invalid_dir = tmp_path / "invalid"
    invalid_dir.mkdir()
    _write_pyproject(invalid_dir, "not = {valid")
    _write_pyproject(
        tmp_path,
        """
        [tool.header-doc]
        snippet_info = "from-parent"
        """,
    )

    nested = invalid_dir / "child"
    nested.mkdir()
    config = load_config(nested)

    assert config.snippet_info == "from-parent"


def test_load_config_errors_on_unknown_key(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool.header-doc]
        show_all = true
        unexpected = true
        """,
    )

    with pytest.raises(ConfigError) as error:
        load_config(tmp_path)

    assert "tool.header-doc" in str(error.value)


def test_load_config_errors_on_non_table(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool]
        header-doc = "yes"
        """,
    )

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_partial_config_merges_with_defaults(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool.header-doc]
        function_macros = ["UFUNCTION", "GAME_FUNCTION"]
        """,
    )

    config = load_config(tmp_path)

    assert config.function_macros == ["UFUNCTION", "GAME_FUNCTION"]
    # Defaults preserved
    defaults = DocConfig()
    assert config.doc_prefix == defaults.doc_prefix
    assert config.property_macros == defaults.property_macros


def test_annotation_macros_maps_names_to_kinds():
    config = DocConfig(class_macros=["UCLASS", "UINTERFACE"])

    macros = config.annotation_macros()

    assert macros["UENUM"] == "enum"
    assert macros["USTRUCT"] == "struct"
    assert macros["UINTERFACE"] == "class"
    assert macros["UFUNCTION"] == "function"
    assert macros["UPROPERTY"] == "property"


def test_apply_overrides_ignores_none():
    config = DocConfig()

    assert apply_overrides(config, show_all=None) is config
    assert apply_overrides(config, show_all=False).show_all is False
    assert config.show_all is True


def test_build_config_applies_overrides_and_validates(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool.header-doc]
        document_private = false
        """,
    )

    config = build_config(tmp_path, document_private=True, show_all=None)

    assert config.document_private is True

    with pytest.raises(ConfigError):
        build_config(tmp_path, max_line_length=0)


@pytest.mark.parametrize(
    "config",
    [
        DocConfig(doc_prefix=""),
        DocConfig(tool_prefix="  "),
        DocConfig(snippet_info=""),
        DocConfig(snippet_language=""),
        DocConfig(doc_prefix="///", tool_prefix="///"),
        DocConfig(doc_prefix="////", tool_prefix="///"),
        DocConfig(enum_macros="UENUM"),  # type: ignore[arg-type]
        DocConfig(struct_macros=["NOT AN IDENTIFIER"]),
        DocConfig(class_macros=["UCLASS"], struct_macros=["UCLASS"]),
        DocConfig(show_all="yes"),  # type: ignore[arg-type]
        DocConfig(max_file_size=0),
        DocConfig(max_line_length=-1),
    ],
)
def test_validate_config_rejects_invalid_values(config: DocConfig):
    with pytest.raises(ConfigError):
        validate_config(config)


@pytest.mark.parametrize(
    "config",
    [
        DocConfig(max_file_size="big"),  # type: ignore[arg-type]
        DocConfig(max_line_length="long"),  # type: ignore[arg-type]
        DocConfig(max_file_size=True),
    ],
)
def test_validate_config_rejects_non_numeric_limits(config: DocConfig):
    with pytest.raises(ConfigError):
        validate_config(config)


def test_validate_config_accepts_defaults():
    validate_config(DocConfig())
