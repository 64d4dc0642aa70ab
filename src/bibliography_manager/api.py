"""API client classes for external metadata services.

Every client returns CSL-JSON records (plain dicts) or None when nothing was
found.
"""
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from bs4 import BeautifulSoup

from .name_utils import split_name
from .utils.error_handling import handle_api_errors
from .utils.logging_setup import log_api_call
from .utils.rate_limiter import (
    CROSSREF_RATE_LIMITER,
    GOOGLE_BOOKS_RATE_LIMITER,
    OPEN_LIBRARY_RATE_LIMITER,
    WEB_RATE_LIMITER,
    RateLimiter,
)

logger = logging.getLogger(__name__)

CSL_JSON_MIME = "application/vnd.citationstyles.csl+json"
DOI_PREFIX_RE = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:\s*)", re.IGNORECASE)


def build_user_agent(email: str) -> str:
    """User-Agent that puts requests into CrossRef's polite pool."""
    agent = f"Bibliography-Manager python-requests/{requests.__version__}"
    if email:
        agent = f"Bibliography-Manager (mailto:{email}) python-requests/{requests.__version__}"
    return agent


def warn_missing_email(email: str) -> bool:
    """Log a warning when no CrossRef email is configured."""
    if email:
        return False
    logger.warning(
        "No Crossref email provided. DOI lookups may have lower rate limits. "
        "Set crossref_email (or CROSSREF_MAILTO) for better performance."
    )
    return True


def clean_doi(doi: str) -> str:
    return DOI_PREFIX_RE.sub("", doi.strip()).strip()


def clean_isbn(isbn: str) -> str:
    return re.sub(r"[-\s]", "", isbn.strip())


def _date_parts(value: str) -> Optional[Dict[str, List[List[int]]]]:
    """``"2004-05-01"`` / ``"May 2004"`` -> CSL ``issued``."""
    if not value:
        return None
    match = re.match(r"^(\d{4})(?:-(\d{1,2}))?(?:-(\d{1,2}))?", str(value).strip())
    if match:
        parts = [int(p) for p in match.groups() if p]
        return {"date-parts": [parts]}
    year = re.search(r"\d{4}", str(value))
    if year:
        return {"date-parts": [[int(year.group(0))]]}
    return None


class BaseAPI:
    """Base class for API clients."""
    name = "base"

    def __init__(self, base_url: str, mailto: str = "", timeout: int = 10,
                 rate_limiter: Optional[RateLimiter] = None):
        self.base_url = base_url
        self.mailto = mailto
        self.timeout = timeout
        self.rate_limiter = rate_limiter

    def _headers(self, accept: str = "application/json") -> Dict[str, str]:
        return {"User-Agent": build_user_agent(self.mailto), "Accept": accept}

    @handle_api_errors(max_retries=2)
    def _make_request(self, url: str, params: Optional[Dict] = None,
                      accept: str = "application/json") -> Optional[requests.Response]:
        """GET a URL; 404 means "not found" and yields None."""
        log_api_call(self.name, "get", {"url": url, **(params or {})})
        if self.rate_limiter is not None:
            with self.rate_limiter:
                response = requests.get(url, params=params, headers=self._headers(accept),
                                        timeout=self.timeout)
        else:
            response = requests.get(url, params=params, headers=self._headers(accept),
                                    timeout=self.timeout)
        if response.status_code == 404:
            logger.info(f"{self.name}: nothing found at {url}")
            return None
        response.raise_for_status()
        return response

    def _get_json(self, url: str, params: Optional[Dict] = None,
                  accept: str = "application/json") -> Optional[Any]:
        response = self._make_request(url, params, accept)
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{self.name}: invalid JSON from {url}: {e}")
            return None


class CrossRefAPI(BaseAPI):
    """CrossRef client for DOI metadata."""
    name = "crossref"

    def __init__(self, mailto: str = "", timeout: int = 10):
        super().__init__("https://api.crossref.org/works", mailto, timeout, CROSSREF_RATE_LIMITER)

    def lookup_doi(self, doi: str) -> Optional[Dict[str, Any]]:
        """Look up a DOI and return its CSL-JSON record."""
        doi = clean_doi(doi)
        if not doi:
            return None

        url = f"{self.base_url}/{quote(doi, safe='/')}/transform/{CSL_JSON_MIME}"
        params = {"mailto": self.mailto} if self.mailto else None
        data = self._get_json(url, params)
        if not data:
            # DOIs registered outside CrossRef (DataCite, mEDRA) resolve through doi.org
            data = self._get_json(f"https://doi.org/{quote(doi, safe='/')}", accept=CSL_JSON_MIME)
        if not isinstance(data, dict) or not data:
            return None
        return self._normalize(data)

    @staticmethod
    def _normalize(item: Dict[str, Any]) -> Dict[str, Any]:
        """Flatten the few fields CrossRef returns as lists."""
        for key in ("title", "container-title", "ISBN", "ISSN", "subtitle"):
            value = item.get(key)
            if isinstance(value, list):
                item[key] = value[0] if value else ""
        if item.get("subtitle") and item.get("title"):
            item["title"] = f"{item['title']}: {item['subtitle']}"
        item.pop("subtitle", None)
        return item


class GoogleBooksAPI(BaseAPI):
    """Google Books client for ISBN metadata."""
    name = "google_books"

    def __init__(self, api_key: str = "", mailto: str = "", timeout: int = 10):
        super().__init__("https://www.googleapis.com/books/v1/volumes", mailto, timeout,
                         GOOGLE_BOOKS_RATE_LIMITER)
        self.api_key = api_key

    def lookup_isbn(self, isbn: str) -> Optional[Dict[str, Any]]:
        isbn = clean_isbn(isbn)
        params = {"q": f"isbn:{isbn}"}
        if self.api_key:
            params["key"] = self.api_key

        data = self._get_json(self.base_url, params)
        if not data:
            return None
        items = data.get("items") or []
        if not items:
            return None
        return self._parse_response(items[0], isbn)

    def _parse_response(self, item: Dict, isbn: str) -> Dict[str, Any]:
        """Parse a Google Books volume into CSL-JSON."""
        v = item.get("volumeInfo", {})
        title = v.get("title", "")
        if v.get("subtitle"):
            title = f"{title}: {v['subtitle']}"

        identifiers = {i.get("type"): i.get("identifier") for i in v.get("industryIdentifiers", [])}
        csl: Dict[str, Any] = {
            "type": "book",
            "title": title,
            "author": [split_name(a) for a in v.get("authors", [])],
            "ISBN": identifiers.get("ISBN_13") or identifiers.get("ISBN_10") or isbn,
        }
        issued = _date_parts(v.get("publishedDate", ""))
        if issued:
            csl["issued"] = issued
        if v.get("publisher"):
            csl["publisher"] = v["publisher"]
        if v.get("pageCount"):
            csl["number-of-pages"] = str(v["pageCount"])
        if v.get("description"):
            csl["abstract"] = v["description"]
        if v.get("language"):
            csl["language"] = v["language"]
        return csl


class OpenLibraryAPI(BaseAPI):
    """Open Library client, used when Google Books has no record."""
    name = "open_library"

    def __init__(self, mailto: str = "", timeout: int = 10):
        super().__init__("https://openlibrary.org/api/books", mailto, timeout,
                         OPEN_LIBRARY_RATE_LIMITER)

    def lookup_isbn(self, isbn: str) -> Optional[Dict[str, Any]]:
        isbn = clean_isbn(isbn)
        key = f"ISBN:{isbn}"
        data = self._get_json(self.base_url, {"bibkeys": key, "format": "json", "jscmd": "data"})
        if not data or key not in data:
            return None

        book = data[key]
        title = book.get("title", "")
        if book.get("subtitle"):
            title = f"{title}: {book['subtitle']}"
        csl: Dict[str, Any] = {
            "type": "book",
            "title": title,
            "author": [split_name(a.get("name", "")) for a in book.get("authors", []) if a.get("name")],
            "ISBN": isbn,
        }
        issued = _date_parts(book.get("publish_date", ""))
        if issued:
            csl["issued"] = issued
        publishers = [p.get("name") for p in book.get("publishers", []) if p.get("name")]
        if publishers:
            csl["publisher"] = publishers[0]
        places = [p.get("name") for p in book.get("publish_places", []) if p.get("name")]
        if places:
            csl["publisher-place"] = places[0]
        if book.get("number_of_pages"):
            csl["number-of-pages"] = str(book["number_of_pages"])
        return csl


class WebPageAPI(BaseAPI):
    """Reads citation metadata embedded in a web page."""
    name = "web"

    def __init__(self, mailto: str = "", timeout: int = 10):
        super().__init__("", mailto, timeout, WEB_RATE_LIMITER)

    def lookup_url(self, url: str) -> Optional[Dict[str, Any]]:
        response = self._make_request(url, accept="text/html,application/xhtml+xml")
        if response is None:
            return None
        return self.parse_html(response.text, url)

    @staticmethod
    def parse_html(html: str, url: str) -> Optional[Dict[str, Any]]:
        """
        Build a CSL-JSON record from Highwire (``citation_*``) and OpenGraph
        meta tags. Returns None when the page has no usable title.
        """
        soup = BeautifulSoup(html, "html.parser")
        meta: Dict[str, List[str]] = {}
        for tag in soup.find_all("meta"):
            key = (tag.get("name") or tag.get("property") or "").strip().lower()
            content = (tag.get("content") or "").strip()
            if key and content:
                meta.setdefault(key, []).append(content)

        def first(*keys: str) -> str:
            for key in keys:
                if meta.get(key):
                    return meta[key][0]
            return ""

        title = first("citation_title", "dc.title", "og:title")
        if not title:
            return None

        journal = first("citation_journal_title")
        csl: Dict[str, Any] = {
            "type": "article-journal" if journal else "webpage",
            "title": title,
            "URL": first("og:url") or url,
        }
        authors = meta.get("citation_author") or meta.get("dc.creator") or []
        if authors:
            csl["author"] = [split_name(a) for a in authors]
        issued = _date_parts(first("citation_publication_date", "citation_date", "citation_year",
                                   "dc.date", "article:published_time"))
        if issued:
            csl["issued"] = issued
        if journal:
            csl["container-title"] = journal
        elif first("og:site_name"):
            csl["container-title"] = first("og:site_name")
        for csl_key, meta_key in (("publisher", "citation_publisher"), ("volume", "citation_volume"),
                                  ("issue", "citation_issue"), ("DOI", "citation_doi"),
                                  ("ISBN", "citation_isbn"), ("ISSN", "citation_issn")):
            value = first(meta_key)
            if value:
                csl[csl_key] = clean_doi(value) if csl_key == "DOI" else value
        first_page, last_page = first("citation_firstpage"), first("citation_lastpage")
        if first_page:
            csl["page"] = f"{first_page}-{last_page}" if last_page else first_page
        abstract = first("citation_abstract", "description", "og:description")
        if abstract:
            csl["abstract"] = abstract
        return csl
