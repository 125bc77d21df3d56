from pathlib import Path

import pytest
from click.testing import CliRunner

from header_doc.document import build_document

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Provides a reusable Click CLI runner."""
    return CliRunner()


@pytest.fixture()
def sample_path() -> Path:
    return DATA_DIR / "sample.h"


@pytest.fixture()
def sample_source(sample_path: Path) -> str:
    return sample_path.read_text(encoding="utf-8")


@pytest.fixture()
def sample_model(sample_source: str):
    """Document model of the annotated sample header."""
    return build_document(sample_source, "sample.h")
