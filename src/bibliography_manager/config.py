"""Configuration settings."""
import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Final, List, Optional

from dotenv import load_dotenv

from .errors import SettingsError
from .models import BIBLIOGRAPHY_FORMATS

# Load environment variables from .env file if it exists
load_dotenv()

logger = logging.getLogger(__name__)

SETTINGS_FILENAME: Final[str] = ".bibliography-manager.json"

DEFAULT_SOURCE_NOTE_TEMPLATE: Final[str] = """---
citekey: {{citekeyYaml}}
title: {{titleYaml}}
author: {{authorArray}}
keywords: {{keywordsArray}}
bibtype: {{bibtype}}
aliases: [{{atcitekeyYaml}}]
filename: {{filenameYaml}}
doi: {{doiYaml}}
isbn: {{isbn}}
publisher: {{publisherYaml}}
journal: {{journalYaml}}
volume: {{volume}}
number: {{number}}
pages: {{pages}}
abstract: {{abstractYaml}}
year: {{year}}
url: {{urlYaml}}
downloadurl: {{downloadurlYaml}}
imageurl: {{imageurlYaml}}
---

# {{title}}

{{authorList}}

({{year}})

## Abstract
{{abstract}}

{{abstractmd}}

**Keywords:** {{keywords}}

**File:** [{{filename}}.pdf](./{{filename}}.pdf)

DOI: {{doi}}
URL: {{url}}
"""

# Bibliography field -> frontmatter key
DEFAULT_FIELD_MAPPINGS: Final[Dict[str, str]] = {
    "id": "citekey",
    "type": "bibtype",
    "title": "title",
    "author": "author",
    "editor": "editor",
    "translator": "translator",
    "publisher": "publisher",
    "publisher-place": "publisher-place",
    "container-title": "journal",
    "volume": "volume",
    "issue": "number",
    "page": "pages",
    "issued": "year",
    "DOI": "doi",
    "ISBN": "isbn",
    "ISSN": "issn",
    "URL": "url",
    "abstract": "abstract",
    "keyword": "keywords",
    "note": "note",
    "language": "language",
    "edition": "edition",
    "series": "series",
    "chapter-number": "chapter",
    "event-title": "booktitle",
    "genre": "genre",
    "accessed": "accessed",
}


@dataclass
class Settings:
    """Settings for a vault, persisted next to the notes."""

    sources_folder: str = "sources"
    bibliography_filename: str = "bibliography"
    bibliography_output_folder: str = ""
    bibliography_format: str = "bibtex"
    auto_generate: bool = False
    supported_file_types: List[str] = field(default_factory=lambda: ["pdf", "epub", "txt"])
    crossref_email: str = ""
    google_books_api_key: str = ""
    source_note_template: str = DEFAULT_SOURCE_NOTE_TEMPLATE
    template_file: str = ""
    field_mappings: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_FIELD_MAPPINGS))

    def __post_init__(self):
        if self.bibliography_format not in BIBLIOGRAPHY_FORMATS:
            raise SettingsError(
                f"Unsupported bibliography format: {self.bibliography_format}. "
                f"Supported formats: {', '.join(BIBLIOGRAPHY_FORMATS)}"
            )

    @property
    def output_folder(self) -> str:
        """Folder the bibliography file is written to."""
        return self.bibliography_output_folder or self.sources_folder

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        """Build settings from stored data; missing keys take their defaults."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.debug(f"Ignoring unknown settings: {', '.join(unknown)}")
        if "field_mappings" in values:
            mappings = dict(DEFAULT_FIELD_MAPPINGS)
            mappings.update(values["field_mappings"] or {})
            values["field_mappings"] = mappings
        return cls(**values)


def get_settings_path(vault_root: str) -> Path:
    return Path(vault_root) / SETTINGS_FILENAME


def apply_environment(settings: Settings) -> Settings:
    """Override selected settings from environment variables."""
    email = os.getenv("CROSSREF_MAILTO")
    if email and not settings.crossref_email:
        settings.crossref_email = email

    api_key = os.getenv("GOOGLE_BOOKS_API_KEY")
    if api_key and not settings.google_books_api_key:
        settings.google_books_api_key = api_key

    bib_format = os.getenv("BIBLIOGRAPHY_FORMAT")
    if bib_format:
        if bib_format not in BIBLIOGRAPHY_FORMATS:
            raise SettingsError(f"Unsupported bibliography format in BIBLIOGRAPHY_FORMAT: {bib_format}")
        settings.bibliography_format = bib_format
    return settings


def load_settings(vault_root: str, use_environment: bool = True) -> Settings:
    """Load settings for a vault, falling back to defaults."""
    path = get_settings_path(vault_root)
    data: Dict[str, Any] = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                logger.error(f"Settings file {path} does not contain an object, using defaults")
                data = {}
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading settings from {path}: {e}")
            data = {}

    settings = Settings.from_dict(data)
    if use_environment:
        settings = apply_environment(settings)
    return settings


def save_settings(settings: Settings, vault_root: str) -> Path:
    """Write settings as JSON into the vault."""
    path = get_settings_path(vault_root)
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2, ensure_ascii=False)
    except OSError as e:
        raise SettingsError(f"Could not save settings to {path}: {e}") from e
    return path


def resolve_vault_root(vault: Optional[str] = None) -> str:
    """Vault directory from the argument, ``BIBLIOGRAPHY_VAULT`` or the cwd."""
    return str(Path(vault or os.getenv("BIBLIOGRAPHY_VAULT") or os.getcwd()).resolve())


def set_setting(settings: Settings, key: str, raw_value: str) -> Settings:
    """Set a single setting from its command line string form."""
    known = {f.name: f for f in fields(Settings)}
    if key not in known:
        raise SettingsError(f"Unknown setting: {key}")

    current = getattr(settings, key)
    if isinstance(current, bool):
        value: Any = raw_value.strip().lower() in ("1", "true", "yes", "on")
    elif isinstance(current, list):
        value = [item.strip() for item in raw_value.split(",") if item.strip()]
    elif isinstance(current, dict):
        try:
            value = json.loads(raw_value)
        except json.JSONDecodeError as e:
            raise SettingsError(f"{key} expects a JSON object: {e}") from e
        if not isinstance(value, dict):
            raise SettingsError(f"{key} expects a JSON object")
    else:
        value = raw_value

    data = settings.to_dict()
    data[key] = value
    return Settings.from_dict(data)
