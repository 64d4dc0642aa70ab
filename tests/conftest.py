"""Pytest configuration and fixtures."""
import os
import sys
from pathlib import Path
from typing import Any, Dict, Generator

import pytest
from unittest.mock import MagicMock, patch

# Make the src layout importable without an editable install
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from bibliography_manager.config import Settings  # noqa: E402
from bibliography_manager.vault import Vault  # noqa: E402


@pytest.fixture
def sample_csl() -> Dict[str, Any]:
    """A CSL-JSON record as returned by CrossRef."""
    return {
        "type": "article-journal",
        "title": "A Sample Publication Title",
        "author": [
            {"family": "Smith", "given": "John"},
            {"family": "Doe", "given": "Jane"},
        ],
        "issued": {"date-parts": [[2023, 4, 12]]},
        "container-title": "Journal of Testing",
        "publisher": "Test Publisher",
        "volume": "12",
        "issue": "3",
        "page": "123-145",
        "DOI": "10.1234/test.2023.456",
        "URL": "https://doi.org/10.1234/test.2023.456",
        "abstract": "<jats:p>An abstract: with a colon.</jats:p>",
    }


@pytest.fixture
def sample_book_csl() -> Dict[str, Any]:
    return {
        "type": "book",
        "title": "Structure and Interpretation of Computer Programs",
        "author": [{"family": "Abelson", "given": "Harold"}],
        "issued": {"date-parts": [[1996]]},
        "publisher": "MIT Press",
        "ISBN": "9780262510875",
    }


@pytest.fixture
def vault(tmp_path) -> Vault:
    """An empty vault in a temporary directory."""
    return Vault(str(tmp_path))


@pytest.fixture
def settings() -> Settings:
    return Settings()


def write_source(vault: Vault, path: str, citekey: str, title: str = "Title",
                 extra: str = "") -> str:
    """Write a minimal source note and return its path."""
    content = (
        "---\n"
        f"citekey: {citekey}\n"
        f"title: \"{title}\"\n"
        "author: [\"Smith, John\"]\n"
        "year: 2023\n"
        f"{extra}"
        "---\n\n"
        f"# {title}\n"
    )
    return vault.write(path, content)


@pytest.fixture
def source_writer():
    return write_source


@pytest.fixture
def mock_requests_get() -> Generator[MagicMock, None, None]:
    """Mock for requests.get as used by the API clients."""
    with patch('bibliography_manager.api.requests.get') as mock_get:
        yield mock_get


@pytest.fixture(autouse=True)
def mock_environment_vars(monkeypatch) -> None:
    """Keep the user's environment out of the tests."""
    for name in ("CROSSREF_MAILTO", "GOOGLE_BOOKS_API_KEY", "BIBLIOGRAPHY_VAULT", "BIBLIOGRAPHY_FORMAT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOG_LEVEL", "WARNING")


@pytest.fixture(autouse=True)
def no_sleep() -> Generator[None, None, None]:
    """Retries and rate limits must not slow the tests down."""
    with patch('bibliography_manager.utils.error_handling.time.sleep'), \
            patch('bibliography_manager.utils.rate_limiter.time.sleep'):
        yield
