"""Configuration loading and management."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
import tomllib

CONFIG_TABLE = "header-doc"


@dataclass
class DocConfig:
    """Configuration for extracting documentation from annotated headers.

    Attributes:
        doc_prefix: Comment prefix of markdown documentation lines.
        tool_prefix: Comment prefix of directive lines. Tested before
            `doc_prefix`, so it may extend it.
        snippet_info: Info string of fenced blocks that reference a snippet.
        snippet_language: Info string given to fences holding substituted snippets.
        enum_macros: Annotation macros that introduce an enum.
        struct_macros: Annotation macros that introduce a struct.
        class_macros: Annotation macros that introduce a class.
        function_macros: Annotation macros that introduce a function.
        property_macros: Annotation macros that introduce a property.
        show_all: Keep top-level declarations without documentation.
        document_protected: Keep protected members.
        document_private: Keep private members.
        max_file_size: Maximum file size in bytes that will be processed.
        max_line_length: Maximum line length allowed during classification.

    The three export flags default to True, so every declaration is kept
    unless the caller narrows the output; pass ``show_all=False`` to keep
    only documented declarations.

    Examples:
        DocConfig(document_private=False, snippet_language="c++")
    """

    # Comment markers
    doc_prefix: str = "///"
    tool_prefix: str = "////"
    snippet_info: str = "snippet"
    snippet_language: str = "cpp"

    # Reflection macros
    enum_macros: list[str] = field(default_factory=lambda: ["UENUM"])
    struct_macros: list[str] = field(default_factory=lambda: ["USTRUCT"])
    class_macros: list[str] = field(default_factory=lambda: ["UCLASS"])
    function_macros: list[str] = field(default_factory=lambda: ["UFUNCTION"])
    property_macros: list[str] = field(default_factory=lambda: ["UPROPERTY"])

    # Export filtering
    show_all: bool = True
    document_protected: bool = True
    document_private: bool = True

    # Limits
    max_file_size: int = 10 * 1024 * 1024
    max_line_length: int = 10_000

    def annotation_macros(self) -> dict[str, str]:
        """Map every annotation macro name to the declaration kind it introduces."""
        macros: dict[str, str] = {}
        for kind, names in (
            ("enum", self.enum_macros),
            ("struct", self.struct_macros),
            ("class", self.class_macros),
            ("function", self.function_macros),
            ("property", self.property_macros),
        ):
            for name in names:
                macros[name] = kind
        return macros


class ConfigError(ValueError):
    """Exception raised when configuration values are invalid.

    Examples:
        raise ConfigError("`doc_prefix` must not be empty")
    """


def load_config(search_path: Path) -> DocConfig:
    """Load configuration from the nearest config file.

    Walks parent directories from `search_path` to the filesystem root, reading
    the ``[tool.header-doc]`` table from `pyproject.toml` and the
    ``[header-doc]`` or ``[tool.header-doc]`` table from `.header-doc.toml`
    when present. TOML files that cannot be read or decoded are skipped.

    Args:
        search_path: Directory used as the starting point for configuration lookup.

    Returns:
        DocConfig: Loaded configuration, or defaults when nothing is found.

    Raises:
        ConfigError: If the table is present but is not a mapping or contains
            unsupported keys.

    Examples:
        load_config(Path("Source/MyGame"))
    """
    current = search_path.resolve()

    while True:
        pyproject_config = _load_from_file(
            current / "pyproject.toml", table_paths=[("tool", CONFIG_TABLE)]
        )
        if pyproject_config is not None:
            return pyproject_config

        dotfile_config = _load_from_file(
            current / f".{CONFIG_TABLE}.toml",
            table_paths=[(CONFIG_TABLE,), ("tool", CONFIG_TABLE)],
        )
        if dotfile_config is not None:
            return dotfile_config

        parent = current.parent
        if parent == current:
            break
        current = parent

    return DocConfig()


_MISSING = object()


def _load_from_file(config_file: Path, table_paths: list[tuple[str, ...]]) -> DocConfig | None:
    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as stream:
            data = tomllib.load(stream)
    except (OSError, tomllib.TOMLDecodeError):
        return None

    for table_path in table_paths:
        raw_config = _extract_table(data, table_path)
        if raw_config is _MISSING:
            continue
        return _build_config_from_raw(raw_config, config_file, table_path)

    return None


def _extract_table(data: object, table_path: tuple[str, ...]) -> object:
    current = data
    for key in table_path:
        if not isinstance(current, dict) or key not in current:
            return _MISSING
        current = current[key]
    return current


def _build_config_from_raw(
    raw_config: object, config_file: Path, table_path: tuple[str, ...]
) -> DocConfig:
    table_display = ".".join(table_path)

    if raw_config is None or raw_config == {}:
        return DocConfig()

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}")

    # TOML keys use dashes or underscores interchangeably
    options = {key.replace("-", "_"): value for key, value in raw_config.items()}
    try:
        return DocConfig(**options)
    except TypeError as error:
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}") from error


def validate_config(config: DocConfig) -> None:
    """Validate a `DocConfig` instance.

    Args:
        config: Configuration to validate.

    Raises:
        ConfigError: If a marker is empty or ambiguous, a macro list is malformed,
            a flag is not a boolean, or a numeric limit is not a positive integer.

    Examples:
        validate_config(DocConfig(tool_prefix="//!"))
    """
    for key in ("doc_prefix", "tool_prefix", "snippet_info", "snippet_language"):
        value = getattr(config, key)
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"`{key}` must not be empty")

    if config.doc_prefix == config.tool_prefix:
        raise ConfigError("`doc_prefix` and `tool_prefix` must differ")
    if config.doc_prefix.startswith(config.tool_prefix):
        # The tool prefix is tested first and would swallow every doc comment
        raise ConfigError("`doc_prefix` must not start with `tool_prefix`")

    seen: dict[str, str] = {}
    for key in (
        "enum_macros",
        "struct_macros",
        "class_macros",
        "function_macros",
        "property_macros",
    ):
        names = getattr(config, key)
        if not isinstance(names, list) or not all(
            isinstance(name, str) and name.isidentifier() for name in names
        ):
            raise ConfigError(f"`{key}` must be a list of identifiers")
        for name in names:
            if name in seen:
                raise ConfigError(f"`{name}` is listed in both `{seen[name]}` and `{key}`")
            seen[name] = key

    for key in ("show_all", "document_protected", "document_private"):
        if not isinstance(getattr(config, key), bool):
            raise ConfigError(f"`{key}` must be a boolean")

    _ensure_integers(
        {
            "max_file_size": config.max_file_size,
            "max_line_length": config.max_line_length,
        }
    )
    _ensure_positive(
        {
            "max_file_size": config.max_file_size,
            "max_line_length": config.max_line_length,
        }
    )


def apply_overrides(config: DocConfig, **overrides: object) -> DocConfig:
    """Apply override values to a `DocConfig`.

    Args:
        config: Base configuration to update.
        overrides: Override values keyed by configuration field name; values set to
            None are ignored.

    Returns:
        DocConfig: New configuration with the provided overrides applied. The
        original configuration is returned when no changes are supplied.

    Raises:
        TypeError: If an override name is not defined on `DocConfig`.

    Examples:
        updated = apply_overrides(config, show_all=False)
    """
    changes = {key: value for key, value in overrides.items() if value is not None}
    if not changes:
        return config
    return replace(config, **changes)


def build_config(search_path: Path, **overrides: object) -> DocConfig:
    """Load, override, and validate configuration.

    Args:
        search_path: Directory where configuration files are resolved.
        overrides: Override values keyed by configuration attributes; None values
            are ignored.

    Returns:
        DocConfig: Validated configuration ready for parsing.

    Raises:
        ConfigError: If configuration loading or validation fails.

    Examples:
        config = build_config(Path.cwd(), document_private=False)
    """
    config = load_config(search_path)
    config = apply_overrides(config, **overrides)
    validate_config(config)
    return config


def _ensure_positive(values: dict[str, int]) -> None:
    for key, value in values.items():
        if value <= 0:
            raise ConfigError(f"`{key}` must be a positive integer")


def _ensure_integers(values: dict[str, object]) -> None:
    for key, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"`{key}` must be an integer")
