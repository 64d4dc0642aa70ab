"""
Import sources from DOIs, ISBNs, URLs and BibTeX.

Every import path ends in ``convert_citation_data_to_source_data``, which
turns a CSL-JSON record into the flat record stored in a note.
"""
import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from .api import CrossRefAPI, GoogleBooksAPI, OpenLibraryAPI, WebPageAPI, clean_doi, clean_isbn
from .citekey import CitekeyGenerator
from .config import Settings
from .errors import BibliographyFormatError, SourceImportError
from .formats import parse_bibtex
from .formats.csl import as_text, get_year
from .jats import format_jats_to_markdown
from .models import SourceData

logger = logging.getLogger(__name__)


class SourceImporter:
    """Looks up metadata and builds ``SourceData`` records."""

    def __init__(self, settings: Optional[Settings] = None,
                 crossref: Optional[CrossRefAPI] = None,
                 google_books: Optional[GoogleBooksAPI] = None,
                 open_library: Optional[OpenLibraryAPI] = None,
                 web: Optional[WebPageAPI] = None):
        self.settings = settings or Settings()
        email = self.settings.crossref_email
        self.crossref = crossref or CrossRefAPI(email)
        self.google_books = google_books or GoogleBooksAPI(self.settings.google_books_api_key, email)
        self.open_library = open_library or OpenLibraryAPI(email)
        self.web = web or WebPageAPI(email)

    def import_source(self, method: str, value: str) -> SourceData:
        """Dispatch to the importer for ``method`` (doi, isbn, url or bibtex)."""
        importers = {
            "doi": self.import_from_doi,
            "isbn": self.import_from_isbn,
            "url": self.import_from_url,
            "bibtex": self.import_from_bibtex,
        }
        importer = importers.get(method)
        if importer is None:
            raise SourceImportError(f"Unsupported import method: {method}")
        return importer(value)

    def import_from_doi(self, doi: str) -> SourceData:
        doi = clean_doi(doi)
        logger.info(f"Importing DOI {doi}")
        try:
            data = self.crossref.lookup_doi(doi)
        except requests.RequestException as e:
            raise SourceImportError(f"DOI lookup failed: {e}") from e
        if not data:
            raise SourceImportError("DOI lookup failed: No data found for this DOI")
        return self.convert_citation_data_to_source_data(data)

    def import_from_isbn(self, isbn: str) -> SourceData:
        isbn = clean_isbn(isbn)
        logger.info(f"Importing ISBN {isbn}")
        try:
            data = self.google_books.lookup_isbn(isbn) or self.open_library.lookup_isbn(isbn)
        except requests.RequestException as e:
            raise SourceImportError(f"ISBN lookup failed: {e}") from e
        if not data:
            raise SourceImportError("ISBN lookup failed: No data found for this ISBN")
        return self.convert_citation_data_to_source_data(data)

    def import_from_url(self, url: str) -> SourceData:
        """Import a web page; falls back to a basic website source."""
        url = url.strip()
        logger.info(f"Importing URL {url}")
        try:
            data = self.web.lookup_url(url)
            if data and data.get("DOI"):
                # the DOI record is usually richer than the page's meta tags
                data = self.crossref.lookup_doi(data["DOI"]) or data
        except requests.RequestException as e:
            logger.warning(f"URL lookup failed for {url}: {e}")
            data = None

        if not data:
            logger.info(f"No metadata found for {url}, creating basic website source")
            return self.create_basic_website_source(url)
        data.setdefault("URL", url)
        return self.convert_citation_data_to_source_data(data)

    def import_from_bibtex(self, bibtex: str) -> SourceData:
        """Import the first entry of a BibTeX snippet."""
        try:
            entries = parse_bibtex(bibtex)
        except BibliographyFormatError as e:
            raise SourceImportError(f"BibTeX parsing failed: {e}") from e
        if len(entries) > 1:
            logger.warning(f"BibTeX contains {len(entries)} entries, importing the first one")
        return self.convert_citation_data_to_source_data(entries[0])

    def import_manual(self, title: str, authors: List[str], year: Any,
                      journal: Optional[str] = None) -> SourceData:
        """Build a source from values typed in by the user."""
        if not title or not title.strip():
            raise SourceImportError("Title is required")
        year = year or date.today().year
        csl: Dict[str, Any] = {
            "type": "article-journal" if journal else "document",
            "title": title.strip(),
            "author": [{"literal": a} for a in authors if a.strip()],
            "issued": {"date-parts": [[int(year)]]},
        }
        if journal:
            csl["container-title"] = journal
        return self.convert_citation_data_to_source_data(csl)

    def convert_citation_data_to_source_data(self, citation_data: Dict[str, Any]) -> SourceData:
        authors = CitekeyGenerator.extract_authors_from_citation_data(citation_data)
        year = get_year(citation_data) or date.today().year
        title = as_text(citation_data.get("title")) or "Untitled Source"
        citekey = as_text(citation_data.get("citation-key")) or \
            CitekeyGenerator.generate_from_title_and_authors(title, authors, year)

        abstract = as_text(citation_data.get("abstract")) or None
        url = as_text(citation_data.get("URL") or citation_data.get("url")) or None
        keywords = [k.strip() for k in re.split(r"[,;]", as_text(citation_data.get("keyword")))
                    if k.strip()]

        return SourceData(
            citekey=citekey,
            title=title,
            author=authors,
            category=[self.detect_source_type(citation_data)],
            bibtype=as_text(citation_data.get("type")) or "misc",
            year=str(year),
            downloadurl=url,
            added=date.today().isoformat(),
            aliases=[f"@{citekey}"],
            abstract=abstract,
            abstractmd=format_jats_to_markdown(abstract) if abstract else None,
            publisher=as_text(citation_data.get("publisher")) or None,
            journal=as_text(citation_data.get("container-title")) or None,
            volume=as_text(citation_data.get("volume")) or None,
            number=as_text(citation_data.get("issue")) or None,
            doi=as_text(citation_data.get("DOI")) or None,
            isbn=as_text(citation_data.get("ISBN")) or None,
            url=url,
            pages=self._first_page_number(citation_data.get("page")),
            keywords=keywords,
        )

    @staticmethod
    def _first_page_number(page: Any) -> Optional[int]:
        match = re.match(r"^\s*(\d+)", as_text(page))
        return int(match.group(1)) if match else None

    @staticmethod
    def detect_source_type(citation_data: Dict[str, Any]) -> str:
        source_type = as_text(citation_data.get("type")).lower()
        container = as_text(citation_data.get("container-title")).lower()

        if source_type == "article-journal" or "journal" in container:
            return "paper"
        if source_type in ("book", "book-chapter"):
            return "book"
        if source_type == "thesis":
            return "thesis"
        if source_type == "report":
            return "report"
        if source_type == "webpage" or citation_data.get("URL"):
            return "website"
        return "other"

    @staticmethod
    def create_basic_website_source(url: str) -> SourceData:
        title = CitekeyGenerator.extract_title_from_url(url)
        year = date.today().year
        citekey = CitekeyGenerator.generate_from_title_and_authors(title, [], year)
        return SourceData(
            citekey=citekey,
            title=title,
            author=[],
            category=["website"],
            bibtype="webpage",
            year=str(year),
            downloadurl=url,
            added=date.today().isoformat(),
            aliases=[f"@{citekey}"],
            url=url,
        )
