"""Data models for the bibliography manager."""
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

BIBLIOGRAPHY_FORMATS = ("bibtex", "csl-json", "hayagriva")

# Extension -> format, used to detect the format from an output filename
BIBLIOGRAPHY_FORMAT_MAPPING: Dict[str, str] = {
    ".bib": "bibtex",
    ".bibtex": "bibtex",
    ".json": "csl-json",
    ".yaml": "hayagriva",
    ".yml": "hayagriva",
}

FORMAT_EXTENSION_MAPPING: Dict[str, str] = {
    "bibtex": ".bib",
    "csl-json": ".json",
    "hayagriva": ".yaml",
}

# Sub folder of the sources folder for each source type
SOURCE_TYPE_FOLDERS: Dict[str, str] = {
    "book": "Books",
    "paper": "Papers",
    "website": "Websites",
    "thesis": "Theses",
    "report": "Reports",
}
DEFAULT_SOURCE_TYPE_FOLDER = "Other"

# Standard bibliography fields copied from frontmatter through the field mapping
BIB_FIELDS = [
    "title",
    "author",
    "year",
    "publisher",
    "journal",
    "booktitle",
    "doi",
    "url",
    "isbn",
    "issn",
    "pages",
    "volume",
    "number",
    "keywords",
    "abstract",
    "note",
    "language",
    "editor",
    "series",
    "edition",
    "chapter",
    "institution",
    "organization",
    "school",
    "address",
    "month",
    "day",
]


@dataclass
class SourceData:
    """A bibliographic source as stored in a note's frontmatter."""
    citekey: str
    title: str
    author: List[str] = field(default_factory=list)
    category: List[str] = field(default_factory=list)
    bibtype: str = "misc"
    year: Optional[str] = None

    # File and media fields
    downloadurl: Optional[str] = None
    imageurl: Optional[str] = None
    filelink: Optional[str] = None
    filepath: Optional[str] = None

    # Reading progress fields
    added: Optional[str] = None
    started: Optional[str] = None
    ended: Optional[str] = None
    rating: Optional[str] = None
    pages: Optional[int] = None
    currentpage: Optional[int] = None
    status: Optional[str] = None

    # Bibliographic fields
    abstract: Optional[str] = None
    abstractmd: Optional[str] = None
    publisher: Optional[str] = None
    journal: Optional[str] = None
    volume: Optional[str] = None
    number: Optional[str] = None
    doi: Optional[str] = None
    isbn: Optional[str] = None
    url: Optional[str] = None

    aliases: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    note: Optional[str] = None
    issue: Optional[str] = None

    @property
    def source_type(self) -> str:
        return self.category[0].lower() if self.category else "other"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceData':
        """Create a SourceData from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values.setdefault("citekey", "")
        values.setdefault("title", "")
        return cls(**values)


@dataclass
class SourceEntry:
    """A source read back from a note for per-document export."""
    citekey: str
    title: str
    author: List[str]
    year: Any
    type: str = "misc"
    journal: Optional[str] = None
    publisher: Optional[str] = None
    pages: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    doi: Optional[str] = None
    isbn: Optional[str] = None
    url: Optional[str] = None
    abstract: Optional[str] = None
    keywords: Optional[List[str]] = None
    note: Optional[str] = None
    filepath: str = ""


@dataclass
class BibliographyConfig:
    """Where a document takes its bibliography from (``typst_bib``)."""
    mode: str  # "directory" or "file"
    path: str


@dataclass
class DeduplicationResult:
    unique_sources: List[SourceEntry]
    duplicates_found: int
    duplicate_citekeys: Dict[str, List[SourceEntry]]
