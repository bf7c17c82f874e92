"""Shared fixtures for the finledger test suite."""

from pathlib import Path

import pytest

from finledger.db.sqlite import Database


@pytest.fixture
def db(tmp_path: Path) -> Database:
    """A fresh SQLite database in a temporary directory."""
    return Database(tmp_path / "finledger_test.db")


@pytest.fixture
def write_pdf():
    """Create a placeholder PDF file; its text comes from a fake extractor."""

    def _write(path: Path, contents: bytes = b"%PDF-1.4 placeholder") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(contents)
        return path

    return _write


@pytest.fixture
def fake_extractor():
    """Build a text extractor that serves canned text by file name."""

    def _build(texts: dict[str, str]):
        def extract_text(file_path: Path) -> str:
            return texts[Path(file_path).name]

        return extract_text

    return _build
